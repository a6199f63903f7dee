"""Content loading and document assembly for blogparse.

Key classes:
- RawSource: A source file as read from disk.
- Document: A fully built document, ready for the writer.
- FileSourceLoader: Discovers and reads Markdown sources under a root.
- DocumentAssembler: Combines header, history and rendered body into a Document.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from .header import EditRecord, Header
from .renderers import RenderedBody, TocEntry
from .utils import is_internal_path, is_markdown

if TYPE_CHECKING:
    from .protocols import HistorySource


@dataclass(frozen=True)
class RawSource:
    """Input unit of the pipeline.

    Attributes:
        path: Path to the source file.
        raw_text: Full file content.
        root: Source root the file was found under.
        repository: Repository the root lives in, if version controlled.
    """

    path: Path
    raw_text: str
    root: Path
    repository: HistorySource | None = None

    @property
    def relative_path(self) -> Path:
        return self.path.relative_to(self.root)


@dataclass(frozen=True)
class Document:
    """A built document.

    Attributes:
        header: Decoded header.
        body_html: Rendered body.
        history: Resolved edit trail, oldest first.
        source_path: Path of the source file.
        toc: Headings of the body, for tables of contents.
    """

    header: Header
    body_html: str
    history: tuple[EditRecord, ...]
    source_path: Path
    toc: tuple[TocEntry, ...] = ()

    @property
    def slug(self) -> str:
        return self.header.slug

    @property
    def output_name(self) -> str:
        """Name of the HTML file written for this document."""
        return f"{self.header.slug}.html"


class FileSourceLoader:
    """Loads Markdown sources from a directory.

    Files inside hidden or underscore-prefixed directories are skipped, as is
    anything under the excluded directories (typically the output directory).

    Attributes:
        root: Directory containing the sources.
        repository: Repository handle attached to every loaded source.
        exclude: Directories whose contents are never loaded.
    """

    def __init__(
        self,
        root: Path,
        repository: HistorySource | None = None,
        exclude: Sequence[Path] = (),
    ):
        """Initialize the source loader.

        Args:
            root: Path to the source directory.
            repository: Optional repository handle for the root.
            exclude: Directories to skip.
        """
        self.root = root
        self.repository = repository
        self.exclude = [path.resolve() for path in exclude]

    def iter_paths(self) -> list[Path]:
        """List all source files, sorted by path.

        Returns:
            Paths of the Markdown files under the root.
        """
        paths: list[Path] = []
        for path in self.root.rglob("*"):
            if path.is_dir() or not is_markdown(path):
                continue
            if is_internal_path(path.relative_to(self.root)):
                continue
            if self._is_excluded(path):
                continue
            paths.append(path)
        return sorted(paths)

    def load(self, path: Path) -> RawSource:
        """Read one source file.

        Args:
            path: Path returned by iter_paths().

        Returns:
            RawSource for the file.

        Raises:
            OSError: If the file cannot be read.
            UnicodeDecodeError: If the file is not valid UTF-8.
        """
        return RawSource(
            path=path,
            raw_text=path.read_text(encoding="utf-8"),
            root=self.root,
            repository=self.repository,
        )

    def _is_excluded(self, path: Path) -> bool:
        resolved = path.resolve()
        return any(resolved.is_relative_to(excluded) for excluded in self.exclude)


class DocumentAssembler:
    """Combines the outputs of the pipeline stages into a Document.

    Assembly has no failure modes of its own.
    """

    def assemble(
        self,
        header: Header,
        body: RenderedBody,
        history: Sequence[EditRecord],
        source_path: Path,
    ) -> Document:
        """Build a Document.

        Args:
            header: Decoded header.
            body: Rendered body.
            history: Resolved edit trail.
            source_path: Path of the source file.

        Returns:
            The assembled Document.
        """
        return Document(
            header=header,
            body_html=body.html,
            history=tuple(history),
            source_path=source_path,
            toc=body.toc,
        )
