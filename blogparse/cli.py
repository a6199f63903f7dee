"""Command-line interface for blogparse.

This module defines the CLI commands using the Click framework.

Commands:
- build: Build HTML documents and the index into the output directory.
- posts: List indexed documents matching a query.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

import click

from . import __version__
from .index import SORT_KEYS, IndexEntry

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


@click.group()
@click.version_option(version=__version__, prog_name="blogparse")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """Git based blog builder."""
    _configure_logging(verbose)


@cli.command()
@click.option(
    "--work-dir",
    "-w",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    help="Project directory containing blogparse.yaml and the sources",
)
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output directory (overrides blogparse.yaml)",
)
@click.option("--stdout", "print_output", is_flag=True, help="Print the index instead of writing files")
@click.option("--jobs", "-j", type=int, default=None, help="Number of worker threads")
@click.option("--sort-key", type=click.Choice(sorted(SORT_KEYS)), default=None, help="Index ordering")
@click.option("--no-git", is_flag=True, help="Ignore git history")
def build(
    work_dir: Path,
    output_dir: Path | None,
    print_output: bool,
    jobs: int | None,
    sort_key: str | None,
    no_git: bool,
):
    """Build documents and the index into the output directory."""
    from .build import build_site
    from .errors import BuildError

    project_root = work_dir.resolve()
    try:
        result = build_site(
            project_root,
            output_dir_override=output_dir,
            write=not print_output,
            workers=jobs,
            sort_key=sort_key,
            git=False if no_git else None,
        )
    except BuildError as exc:
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        click.echo(click.style(f"  Error: {exc}", fg="white"), err=True)
        raise SystemExit(1) from None

    if print_output:
        click.echo(result.index.to_json(), nl=False)
    else:
        click.echo(f"Built {len(result.index)} documents into {result.output_dir}")

    if result.failures:
        click.echo(
            click.style(f"Skipped {len(result.failures)} documents:", fg="yellow"),
            err=True,
        )
        for failure in result.failures:
            click.echo(f"  {failure.source_path}: [{failure.kind}] {failure.message}", err=True)


def _entry_date(entry: IndexEntry):
    updated = entry.updated
    return updated.date() if updated is not None else None


@cli.command()
@click.option(
    "--work-dir",
    "-w",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    help="Project directory containing blogparse.yaml and the sources",
)
@click.option("--start", "-s", type=click.DateTime(["%Y-%m-%d"]), default=None, help="Only posts edited on or after this date")
@click.option("--end", "-e", type=click.DateTime(["%Y-%m-%d"]), default=None, help="Only posts edited on or before this date")
@click.option("--tags", "-t", default=None, help="Comma separated tags; all must be present")
@click.option("--query", "-q", default=None, help="Text contained in the title or body")
def posts(
    work_dir: Path,
    start: datetime | None,
    end: datetime | None,
    tags: str | None,
    query: str | None,
):
    """Print a list of posts matching a query."""
    from .build import build_site
    from .errors import BuildError

    try:
        result = build_site(work_dir.resolve(), write=False)
    except BuildError as exc:
        raise click.ClickException(str(exc)) from None

    wanted_tags = [tag.strip() for tag in tags.split(",") if tag.strip()] if tags else []
    bodies = {document.slug: document.body_html for document in result.documents}
    needle = query.lower() if query else None

    for entry in result.index:
        date = _entry_date(entry)
        if start is not None and (date is None or date < start.date()):
            continue
        if end is not None and (date is None or date > end.date()):
            continue
        if any(tag not in entry.tags for tag in wanted_tags):
            continue
        if needle and needle not in entry.title.lower() and needle not in bodies.get(entry.slug, "").lower():
            continue
        stamp = date.isoformat() if date else "----------"
        click.echo(f"{stamp}  {entry.slug}  {entry.title}")


def main():
    """Entry point for the CLI application."""
    cli()
