"""Utility functions for blogparse.

This module contains small string and path helpers used throughout the
codebase.

Key functions:
    slugify: Default document slug from a file name.
    titleize: Default document title from a file name.
    is_url_safe: Check that a declared slug can be used as a file/URL name.
    unique: De-duplicate a sequence keeping first occurrences.
    is_markdown: Check if a path is a Markdown source.
    is_internal_path: Check if a path lies in a hidden or underscore directory.
    ensure_clean_dir: Empty (or create) the output directory.
"""

from __future__ import annotations

import re
import shutil
from collections.abc import Iterable
from pathlib import Path

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_URL_SAFE_RE = re.compile(r"^[A-Za-z0-9._~-]+$")


def slugify(name: str) -> str:
    """Convert a filename stem to a slug.

    The name is lowercased and every run of non-alphanumeric characters is
    collapsed into a single hyphen.

    Args:
        name: Filename stem.

    Returns:
        URL-friendly slug, or "index" if nothing usable remains.

    Examples:
        >>> slugify("My First Post!")
        'my-first-post'
    """
    cleaned = _NON_ALNUM_RE.sub("-", name.lower())
    return cleaned.strip("-") or "index"


def titleize(filename: str) -> str:
    """Derive a default document title from its file name.

    Words are split on whitespace, hyphens and underscores and capitalized.

    Examples:
        >>> titleize("hello-world.md")
        'Hello World'
    """
    base = Path(filename).stem
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def is_url_safe(slug: str) -> bool:
    """Check if a slug only contains unreserved URL characters.

    Args:
        slug: Slug to check.

    Returns:
        True if the slug is non-empty and URL-safe.
    """
    return bool(_URL_SAFE_RE.match(slug)) and slug not in (".", "..")


def unique(items: Iterable[str]) -> tuple[str, ...]:
    """Return items with duplicates removed, keeping declaration order."""
    seen: list[str] = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return tuple(seen)


def is_markdown(path: Path) -> bool:
    """Return True for `.md` sources, whatever the case of the suffix."""
    return path.suffix.lower() == ".md"


def is_internal_path(path: Path) -> bool:
    """Check if a path lies in a hidden or internal directory.

    Directories starting with "." (such as .git) or "_" (layouts, drafts)
    are never treated as content.

    Args:
        path: Path relative to the source root.

    Returns:
        True if any directory component starts with "." or "_".
    """
    return any(part.startswith((".", "_")) for part in path.parts[:-1])


def ensure_clean_dir(path: Path) -> None:
    """Remove everything under an output directory and recreate it empty."""
    if path.exists():
        shutil.rmtree(str(path))
    path.mkdir(parents=True, exist_ok=True)
