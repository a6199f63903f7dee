"""Document header handling for blogparse.

A document may start with a YAML header delimited by lines containing only
``---``. This module separates that header from the body and decodes it into
a typed Header record.

Key objects:
- split_header: Separates header text from body text.
- HeaderParser: Decodes header text into a Header.
- Header, Author, EditRecord: The decoded records.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone, tzinfo
from pathlib import Path
from typing import Any

import yaml

from .errors import HeaderDecodeError, InvalidEditRecord, MalformedHeader
from .utils import is_url_safe, slugify, titleize, unique

logger = logging.getLogger(__name__)

HEADER_MARKER = "---"

EXPLICIT = "explicit"
IMPLICIT = "implicit"


class HeaderLoader(yaml.SafeLoader):
    """SafeLoader that keeps impossible timestamps (e.g. 2023-02-30) as strings.

    The value then fails where it is used, so the error names its key.
    """


def _construct_timestamp(loader: HeaderLoader, node: yaml.ScalarNode) -> Any:
    try:
        return loader.construct_yaml_timestamp(node)
    except ValueError:
        return loader.construct_scalar(node)


HeaderLoader.add_constructor("tag:yaml.org,2002:timestamp", _construct_timestamp)


@dataclass(frozen=True)
class EditRecord:
    """One entry in a document's edit trail.

    Attributes:
        summary: Short description of the change.
        time: Timezone-aware time of the change.
        origin: "explicit" when declared in the header, "implicit" when
            derived from a git commit.
    """

    summary: str
    time: datetime
    origin: str = EXPLICIT

    @property
    def identity(self) -> tuple[str, datetime]:
        return (self.summary, self.time)

    def to_dict(self) -> dict[str, str]:
        return {
            "summary": self.summary,
            "time": self.time.isoformat(),
            "origin": self.origin,
        }


@dataclass(frozen=True)
class Author:
    """Author of a document.

    Attributes:
        name: Display name.
        email: Optional contact address.
        web: Optional homepage.
    """

    name: str
    email: str | None = None
    web: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {"name": self.name, "email": self.email, "web": self.web}


@dataclass(frozen=True)
class Header:
    """Typed metadata decoded from a document header.

    Attributes:
        title: Human-readable title.
        slug: Unique, URL-safe identifier of the document.
        description: Optional short description ("desc" in the header).
        tags: Tags in declaration order, without duplicates.
        author: Author display string as declared, or joined author names.
        authors: Structured author records.
        edits: Explicit edit records in declaration order.
    """

    title: str
    slug: str
    description: str | None = None
    tags: tuple[str, ...] = ()
    author: str | None = None
    authors: tuple[Author, ...] = ()
    edits: tuple[EditRecord, ...] = field(default_factory=tuple)


def split_header(text: str) -> tuple[str, str]:
    """Separate the structured header from the body.

    The header must start on the first line of the file with a line that is
    exactly ``---`` and ends at the next such line.

    Args:
        text: Raw document text.

    Returns:
        Tuple of (header text, body text). The header text is empty when the
        document has no header.

    Raises:
        MalformedHeader: If the opening marker is never closed.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != HEADER_MARKER:
        return "", text
    for index in range(1, len(lines)):
        if lines[index].rstrip() == HEADER_MARKER:
            return "".join(lines[1:index]), "".join(lines[index + 1 :])
    raise MalformedHeader("header opened with '---' is never closed")


def parse_time(value: Any) -> datetime:
    """Parse a timezone-aware timestamp.

    Args:
        value: A datetime (as produced by the YAML loader) or an ISO 8601 string.

    Returns:
        Aware datetime.

    Raises:
        ValueError: If the value is not a timestamp or carries no timezone.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        raise ValueError(f"'{value}' is a date, a time with timezone is required")
    elif isinstance(value, str):
        text = value.strip()
        # fromisoformat only accepts "Z" from Python 3.11
        if text[-1:] in ("Z", "z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"unsupported time value {value!r}")
    if parsed.tzinfo is None or parsed.utcoffset() is None:
        raise ValueError(f"'{value}' has no timezone")
    return parsed


class HeaderParser:
    """Decodes header text into a Header.

    Each recognized key has its own decoder method. Keys that are not
    recognized are logged and ignored.

    Attributes:
        reference_tz: Timezone explicit edit times are converted to.
    """

    ALIASES = {"description": "desc"}

    def __init__(self, reference_tz: tzinfo = timezone.utc):
        self.reference_tz = reference_tz
        self._decoders = {
            "title": self._decode_title,
            "desc": self._decode_desc,
            "tags": self._decode_tags,
            "slug": self._decode_slug,
            "author": self._decode_author,
            "edits": self._decode_edits,
        }

    def parse(self, header_text: str, path: Path) -> Header:
        """Decode header text.

        Args:
            header_text: YAML text between the header markers (may be empty).
            path: Source path, used for defaults and error reporting.

        Returns:
            Decoded Header.

        Raises:
            HeaderDecodeError: If the header or one of its values has the wrong shape.
            InvalidEditRecord: If an edit record has no usable time.
        """
        data = self._load(header_text, path)
        values: dict[str, Any] = {
            "title": titleize(path.name),
            "slug": slugify(path.stem),
        }
        for raw_key, raw_value in data.items():
            key = self.ALIASES.get(str(raw_key).lower(), str(raw_key).lower())
            decoder = self._decoders.get(key)
            if decoder is None:
                logger.warning("%s: ignoring unused header attribute '%s'", path, raw_key)
                continue
            if raw_value is None:
                continue
            values.update(decoder(raw_value, path))
        return Header(**values)

    def _load(self, header_text: str, path: Path) -> dict[Any, Any]:
        if not header_text.strip():
            return {}
        try:
            data = yaml.load(header_text, Loader=HeaderLoader)
        except (yaml.YAMLError, ValueError) as exc:
            raise HeaderDecodeError(None, f"invalid YAML header: {exc}", path) from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise HeaderDecodeError(
                None, f"header must be a mapping, got {type(data).__name__}", path
            )
        return data

    def _decode_title(self, value: Any, path: Path) -> dict[str, Any]:
        return {"title": _expect_str("title", value, path)}

    def _decode_desc(self, value: Any, path: Path) -> dict[str, Any]:
        return {"description": _expect_str("desc", value, path)}

    def _decode_slug(self, value: Any, path: Path) -> dict[str, Any]:
        slug = _expect_str("slug", value, path)
        if not is_url_safe(slug):
            raise HeaderDecodeError("slug", f"'{slug}' is not URL-safe", path)
        return {"slug": slug}

    def _decode_tags(self, value: Any, path: Path) -> dict[str, Any]:
        if not isinstance(value, list):
            raise HeaderDecodeError(
                "tags", f"expected a sequence, got {type(value).__name__}", path
            )
        return {"tags": unique(_expect_str("tags", tag, path) for tag in value)}

    def _decode_author(self, value: Any, path: Path) -> dict[str, Any]:
        if isinstance(value, str):
            return {"author": value, "authors": (Author(name=value),)}
        entries = value if isinstance(value, list) else [value]
        authors = tuple(_decode_author_entry(entry, path) for entry in entries)
        return {
            "author": ", ".join(author.name for author in authors) or None,
            "authors": authors,
        }

    def _decode_edits(self, value: Any, path: Path) -> dict[str, Any]:
        if not isinstance(value, list):
            raise HeaderDecodeError(
                "edits", f"expected a sequence, got {type(value).__name__}", path
            )
        edits = []
        for index, entry in enumerate(value):
            if not isinstance(entry, dict):
                raise HeaderDecodeError(
                    "edits", f"entry #{index + 1} must be a mapping", path
                )
            if entry.get("time") is None:
                raise InvalidEditRecord(index, "missing 'time'", path)
            try:
                time = parse_time(entry["time"])
            except ValueError as exc:
                raise InvalidEditRecord(index, str(exc), path) from exc
            summary = entry.get("summary") or ""
            if not isinstance(summary, str):
                raise HeaderDecodeError(
                    "edits", f"entry #{index + 1} summary must be a string", path
                )
            edits.append(
                EditRecord(
                    summary=summary,
                    time=time.astimezone(self.reference_tz),
                    origin=EXPLICIT,
                )
            )
        return {"edits": tuple(edits)}


def _expect_str(key: str, value: Any, path: Path) -> str:
    if not isinstance(value, str):
        raise HeaderDecodeError(
            key, f"expected a string, got {type(value).__name__}", path
        )
    if not value.strip():
        raise HeaderDecodeError(key, "must not be empty", path)
    return value


def _decode_author_entry(entry: Any, path: Path) -> Author:
    if isinstance(entry, str):
        return Author(name=entry)
    if not isinstance(entry, dict):
        raise HeaderDecodeError(
            "author", f"expected a name or mapping, got {type(entry).__name__}", path
        )
    name = _expect_str("author", entry.get("name"), path)
    email = entry.get("email")
    web = entry.get("web")
    for optional in (email, web):
        if optional is not None and not isinstance(optional, str):
            raise HeaderDecodeError("author", "email and web must be strings", path)
    return Author(name=name, email=email, web=web)


def parse_header(
    header_text: str, path: Path, reference_tz: tzinfo = timezone.utc
) -> Header:
    """Decode header text with a default HeaderParser.

    Args:
        header_text: YAML header text.
        path: Source path of the document.
        reference_tz: Timezone explicit edit times are converted to.

    Returns:
        Decoded Header.
    """
    return HeaderParser(reference_tz).parse(header_text, path)
