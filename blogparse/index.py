"""Index building for blogparse.

The index lists summary metadata of every successfully built document. It
is independent of document bodies, which can be discarded once written.

Key objects:
- IndexEntry: Copy of a document's metadata without the HTML body.
- IndexBuilder: Collects entries, enforces slug uniqueness and orders them.
- SORT_KEYS: Registered orderings for the index.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from .content import Document
from .errors import SlugCollision
from .header import Author, EditRecord


@dataclass(frozen=True)
class IndexEntry:
    """Index projection of a Document.

    Attributes:
        slug: Unique document identifier.
        title: Document title.
        description: Optional description.
        tags: Document tags.
        author: Author display string.
        authors: Structured author records.
        edits: Resolved edit trail, oldest first.
        output: Output file name, relative to the output directory.
        source: Source path, relative to the source root when possible.
    """

    slug: str
    title: str
    description: str | None
    tags: tuple[str, ...]
    author: str | None
    authors: tuple[Author, ...]
    edits: tuple[EditRecord, ...]
    output: str
    source: str

    @classmethod
    def from_document(cls, document: Document, root: Path | None = None) -> IndexEntry:
        """Project a Document into an IndexEntry.

        Args:
            document: Built document.
            root: Source root used to relativize the source path.

        Returns:
            New IndexEntry holding its own copies of the metadata.
        """
        source = document.source_path
        if root is not None and source.is_relative_to(root):
            source = source.relative_to(root)
        header = document.header
        return cls(
            slug=header.slug,
            title=header.title,
            description=header.description,
            tags=tuple(header.tags),
            author=header.author,
            authors=tuple(header.authors),
            edits=tuple(document.history),
            output=document.output_name,
            source=source.as_posix(),
        )

    @property
    def created(self) -> datetime | None:
        return self.edits[0].time if self.edits else None

    @property
    def updated(self) -> datetime | None:
        """Most recent effective edit time."""
        return max((edit.time for edit in self.edits), default=None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "title": self.title,
            "description": self.description,
            "tags": list(self.tags),
            "author": self.author,
            "authors": [author.to_dict() for author in self.authors],
            "edits": [edit.to_dict() for edit in self.edits],
            "output": self.output,
            "source": self.source,
        }


def _by_updated(entries: Sequence[IndexEntry]) -> list[IndexEntry]:
    return _by_time(entries, lambda entry: entry.updated)


def _by_created(entries: Sequence[IndexEntry]) -> list[IndexEntry]:
    return _by_time(entries, lambda entry: entry.created)


def _by_time(
    entries: Sequence[IndexEntry], key: Callable[[IndexEntry], datetime | None]
) -> list[IndexEntry]:
    """Newest first; undated entries last; ties by slug."""
    dated = sorted(
        (entry for entry in entries if key(entry) is not None),
        key=lambda entry: entry.slug,
    )
    dated.sort(key=key, reverse=True)
    undated = sorted(
        (entry for entry in entries if key(entry) is None),
        key=lambda entry: entry.slug,
    )
    return dated + undated


def _by_title(entries: Sequence[IndexEntry]) -> list[IndexEntry]:
    return sorted(entries, key=lambda entry: (entry.title.lower(), entry.slug))


def _by_slug(entries: Sequence[IndexEntry]) -> list[IndexEntry]:
    return sorted(entries, key=lambda entry: entry.slug)


SORT_KEYS: dict[str, Callable[[Sequence[IndexEntry]], list[IndexEntry]]] = {
    "updated": _by_updated,
    "created": _by_created,
    "title": _by_title,
    "slug": _by_slug,
}


class Index(Sequence[IndexEntry]):
    """Ordered, immutable sequence of index entries."""

    def __init__(self, entries: Iterable[IndexEntry]):
        self._entries = tuple(entries)

    def __iter__(self) -> Iterator[IndexEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, item):
        return self._entries[item]

    def get(self, slug: str) -> IndexEntry | None:
        return next((entry for entry in self._entries if entry.slug == slug), None)

    def with_tag(self, tag: str) -> Index:
        return Index(entry for entry in self._entries if tag in entry.tags)

    def to_dict(self) -> dict[str, Any]:
        return {"documents": [entry.to_dict() for entry in self._entries]}

    def to_json(self) -> str:
        """Serialize the index; equal indexes serialize to identical text."""
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False) + "\n"

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"Index({len(self._entries)} entries)"


class IndexBuilder:
    """Collects index entries for one build.

    Attributes:
        root: Source root used to relativize source paths.
    """

    def __init__(self, root: Path | None = None):
        self.root = root
        self._entries: dict[str, IndexEntry] = {}
        self._sources: dict[str, Path] = {}

    def add(self, document: Document) -> IndexEntry:
        """Add a document to the index.

        Args:
            document: Successfully built document.

        Returns:
            The entry added.

        Raises:
            SlugCollision: If another document already uses the same slug.
        """
        slug = document.header.slug
        if slug in self._sources:
            raise SlugCollision(slug, self._sources[slug], document.source_path)
        entry = IndexEntry.from_document(document, self.root)
        self._entries[slug] = entry
        self._sources[slug] = document.source_path
        return entry

    def build(self, sort_key: str = "updated") -> Index:
        """Return the ordered index.

        Args:
            sort_key: Name of an ordering in SORT_KEYS.

        Returns:
            Index ordered by the sort key.
        """
        try:
            order = SORT_KEYS[sort_key]
        except KeyError:
            raise ValueError(
                f"unknown sort key '{sort_key}', expected one of "
                f"{', '.join(sorted(SORT_KEYS))}"
            ) from None
        return Index(order(list(self._entries.values())))
