"""Error types for blogparse.

Errors fall into two families:

- DocumentError: a single document cannot be built. The build driver records
  the failure and continues with the remaining documents.
- BuildError: the build as a whole cannot continue (slug collisions, a corrupt
  repository). Nothing is written when one of these is raised.

HistoryResolutionWarning is not raised; it is logged and attached to the
document result when git history cannot be queried for a file.
"""

from __future__ import annotations

from pathlib import Path


class BlogparseError(Exception):
    """Base class for all blogparse errors."""


class DocumentError(BlogparseError):
    """Error that excludes one document from the build.

    Attributes:
        source_path: Path to the offending source file, when known.
        message: Human-readable error message.
    """

    def __init__(self, message: str, source_path: Path | None = None):
        self.message = message
        self.source_path = source_path
        super().__init__(message)

    def __str__(self) -> str:
        if self.source_path is not None:
            return f"{self.source_path}: {self.message}"
        return self.message


class MalformedHeader(DocumentError):
    """Opening header delimiter without a matching closing delimiter."""


class HeaderDecodeError(DocumentError):
    """Header content has the wrong shape.

    Attributes:
        key: Header key whose value is invalid, or None when the header
            as a whole could not be decoded.
    """

    def __init__(self, key: str | None, message: str, source_path: Path | None = None):
        self.key = key
        if key is not None:
            message = f"invalid '{key}': {message}"
        super().__init__(message, source_path)


class InvalidEditRecord(DocumentError):
    """Edit record with a missing or unparseable time.

    Attributes:
        index: Position of the record in the header's edits list.
    """

    def __init__(self, index: int, message: str, source_path: Path | None = None):
        self.index = index
        super().__init__(f"edit #{index + 1}: {message}", source_path)


class RenderError(DocumentError):
    """Body could not be rendered (e.g. a block kind without a handler)."""


class BuildError(BlogparseError):
    """Fatal error that aborts the whole build."""


class SlugCollision(BuildError):
    """Two documents resolve to the same slug.

    Attributes:
        slug: The duplicated slug.
        first_path: Source of the document that claimed the slug first.
        second_path: Source of the conflicting document.
    """

    def __init__(self, slug: str, first_path: Path, second_path: Path):
        self.slug = slug
        self.first_path = first_path
        self.second_path = second_path
        super().__init__(
            f"slug '{slug}' is declared by both {first_path} and {second_path}"
        )


class RepositoryCorrupt(BuildError):
    """The git object database cannot be read.

    Attributes:
        root: Work tree of the repository.
        detail: Error output reported by git.
    """

    def __init__(self, root: Path, detail: str):
        self.root = root
        self.detail = detail
        super().__init__(f"repository at {root} is corrupt: {detail}")


class RepositoryAccessError(BlogparseError):
    """Non-fatal failure to query git for a file's history."""


class HistoryResolutionWarning(UserWarning):
    """History for a document degraded to explicit header edits only."""
