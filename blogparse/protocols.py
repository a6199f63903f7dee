"""Protocol definitions for blogparse.

This module defines the interfaces of the collaborators around the document
pipeline, so alternative implementations (in-memory sources, fake
repositories in tests, other output formats) can be plugged in.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .content import Document, RawSource
    from .history import Commit
    from .index import Index
    from .renderers import RenderContext


@runtime_checkable
class SourceLoader(Protocol):
    """Protocol for discovering and reading source documents."""

    @abstractmethod
    def iter_paths(self) -> list[Path]:
        """Return the paths of all sources, in a stable order."""
        ...

    @abstractmethod
    def load(self, path: Path) -> RawSource:
        """Read one source.

        Args:
            path: Path returned by iter_paths().

        Returns:
            RawSource for the path.
        """
        ...


@runtime_checkable
class HistorySource(Protocol):
    """Protocol for version-control history of files.

    Implementations must be safe to call from several threads.
    """

    @abstractmethod
    def log(self, path: Path) -> list[Commit]:
        """List commits touching a file, oldest first.

        Args:
            path: Path of the file.

        Returns:
            Commits touching the file.

        Raises:
            RepositoryAccessError: If history is unavailable for the file.
            RepositoryCorrupt: If the repository cannot be read at all.
        """
        ...


@runtime_checkable
class BlockHandler(Protocol):
    """Protocol for functions rendering one kind of block."""

    def __call__(self, block, ctx: RenderContext) -> str:
        """Render a block to HTML."""
        ...


@runtime_checkable
class DocumentWriter(Protocol):
    """Protocol for persisting build output."""

    @abstractmethod
    def write_document(self, document: Document) -> Path:
        """Write one document and return the written path."""
        ...

    @abstractmethod
    def write_index(self, index: Index) -> Path:
        """Write the index artifact and return the written path."""
        ...
