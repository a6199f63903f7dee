"""Edit history resolution for blogparse.

A document's edit trail combines the edits declared in its header (explicit)
with the commits touching its source file in git (implicit).

Key classes:
- GitRepository: Serialized, read-only access to a git work tree.
- HistoryResolver: Merges explicit and implicit records into one trail.

All git reads go through a single lock per repository, so documents can be
processed on several worker threads without interleaving repository reads.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .errors import (
    HistoryResolutionWarning,
    RepositoryAccessError,
    RepositoryCorrupt,
)
from .header import IMPLICIT, EditRecord

if TYPE_CHECKING:
    from .protocols import HistorySource

logger = logging.getLogger(__name__)

_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = f"--format=%aI{_FIELD_SEP}%s{_RECORD_SEP}"

# git error output that points at a damaged object database
_CORRUPT_RE = re.compile(
    r"corrupt|bad object|unable to read|invalid object|inflate|packfile|is empty",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class Commit:
    """A commit touching a file.

    Attributes:
        time: Author time, with the offset it was authored in.
        subject: First line of the commit message.
    """

    time: datetime
    subject: str


class GitRepository:
    """Read-only handle to a git work tree.

    Every git invocation is serialized through an internal lock, so one
    handle can be shared by all workers of a build.

    Attributes:
        root: Top-level directory of the work tree.
        git_bin: Path to the git executable.
    """

    def __init__(self, root: Path, git_bin: str = "git"):
        self.root = root
        self.git_bin = git_bin
        self._lock = threading.Lock()

    @classmethod
    def discover(cls, path: Path) -> GitRepository | None:
        """Find the repository containing a directory.

        Args:
            path: Directory to look from.

        Returns:
            A repository handle, or None when git is unavailable or the
            directory is not version controlled.
        """
        git_bin = shutil.which("git")
        if not git_bin:
            logger.info("git executable not found; edit history limited to headers")
            return None
        try:
            result = subprocess.run(
                [git_bin, "rev-parse", "--show-toplevel"],
                cwd=path,
                capture_output=True,
                text=True,
            )
        except OSError:
            return None
        if result.returncode != 0:
            logger.debug("%s is not inside a git repository", path)
            return None
        root = Path(result.stdout.strip())
        logger.debug("using git repository at %s", root)
        return cls(root, git_bin)

    def log(self, path: Path) -> list[Commit]:
        """List the commits touching a file, oldest first.

        Args:
            path: Path of a file inside the work tree.

        Returns:
            Commits in chronological (topological) order.

        Raises:
            RepositoryAccessError: If the history cannot be queried.
            RepositoryCorrupt: If git reports a damaged object database.
        """
        try:
            rel = path.resolve().relative_to(self.root.resolve())
        except ValueError as exc:
            raise RepositoryAccessError(
                f"{path} is outside the repository at {self.root}"
            ) from exc
        cmd = [self.git_bin, "log", "--reverse", _LOG_FORMAT, "--", rel.as_posix()]
        with self._lock:
            try:
                result = subprocess.run(
                    cmd,
                    cwd=self.root,
                    capture_output=True,
                    encoding="utf-8",
                    errors="replace",
                )
            except OSError as exc:
                raise RepositoryAccessError(str(exc)) from exc
        if result.returncode != 0:
            detail = result.stderr.strip()
            if _CORRUPT_RE.search(detail):
                raise RepositoryCorrupt(self.root, detail)
            raise RepositoryAccessError(detail or f"git exited with {result.returncode}")
        return _parse_log(result.stdout)


def _parse_log(output: str) -> list[Commit]:
    commits = []
    for record in output.split(_RECORD_SEP):
        record = record.strip("\n")
        if not record:
            continue
        stamp, _, subject = record.partition(_FIELD_SEP)
        commits.append(Commit(time=datetime.fromisoformat(stamp), subject=subject))
    return commits


def _exact_identity(record: EditRecord) -> Any:
    return record.identity


# Policies for dropping edits that were declared in a header and also
# recovered from a commit. None keeps every record.
DEDUPE_POLICIES: dict[str, Callable[[EditRecord], Any] | None] = {
    "exact": _exact_identity,
    "none": None,
}


def merge_history(
    explicit: Iterable[EditRecord],
    implicit: Iterable[EditRecord],
    identity: Callable[[EditRecord], Any] | None = _exact_identity,
) -> tuple[EditRecord, ...]:
    """Merge explicit and implicit records into a chronological trail.

    Records are sorted by time; the sort is stable, so records at the same
    instant keep declaration order with explicit records first. A record with
    the same identity as the record right before it is dropped.

    Args:
        explicit: Records declared in the header.
        implicit: Records derived from commits.
        identity: Key identifying duplicates, or None to keep all records.

    Returns:
        The merged, ordered edit trail.
    """
    merged = sorted([*explicit, *implicit], key=lambda record: record.time)
    if identity is None:
        return tuple(merged)
    trail: list[EditRecord] = []
    previous = None
    for record in merged:
        key = identity(record)
        if trail and key == previous:
            continue
        previous = key
        trail.append(record)
    return tuple(trail)


@dataclass(frozen=True)
class ResolvedHistory:
    """Outcome of history resolution for one document.

    Attributes:
        edits: Ordered edit trail.
        warnings: Non-fatal problems met while querying git.
    """

    edits: tuple[EditRecord, ...]
    warnings: tuple[HistoryResolutionWarning, ...] = ()


class HistoryResolver:
    """Produces the authoritative edit trail of a document.

    Attributes:
        dedupe: Name of the de-duplication policy in DEDUPE_POLICIES.
    """

    def __init__(self, dedupe: str = "exact"):
        if dedupe not in DEDUPE_POLICIES:
            raise ValueError(
                f"unknown dedupe policy '{dedupe}', expected one of "
                f"{', '.join(sorted(DEDUPE_POLICIES))}"
            )
        self.dedupe = dedupe

    def resolve(
        self,
        explicit: Sequence[EditRecord],
        source_path: Path,
        repository: HistorySource | None = None,
    ) -> ResolvedHistory:
        """Resolve the edit trail for a document.

        Args:
            explicit: Edits declared in the document header.
            source_path: Path of the source file.
            repository: Repository the source lives in, if any.

        Returns:
            ResolvedHistory with the merged trail and any warnings.

        Raises:
            RepositoryCorrupt: If the repository object database is unreadable.
        """
        warnings: list[HistoryResolutionWarning] = []
        implicit: list[EditRecord] = []
        if repository is not None:
            try:
                commits = repository.log(source_path)
            except RepositoryAccessError as exc:
                warnings.append(
                    HistoryResolutionWarning(
                        f"{source_path}: git history unavailable ({exc}); "
                        "using header edits only"
                    )
                )
            else:
                if not commits:
                    warnings.append(
                        HistoryResolutionWarning(
                            f"{source_path}: no commits touch this file; "
                            "using header edits only"
                        )
                    )
                implicit = [
                    EditRecord(summary=commit.subject, time=commit.time, origin=IMPLICIT)
                    for commit in commits
                ]
        for warning in warnings:
            logger.warning("%s", warning)
        edits = merge_history(explicit, implicit, DEDUPE_POLICIES[self.dedupe])
        return ResolvedHistory(edits=edits, warnings=tuple(warnings))
