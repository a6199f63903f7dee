"""Build orchestration for blogparse.

This module runs the document pipeline over every source file, builds the
index and hands the results to the output writer.

Key objects:
- load_config: Loads configuration from blogparse.yaml.
- DocumentPipeline: Turns one RawSource into a DocumentResult.
- run_pipeline: Processes all sources on a worker pool.
- OutputWriter: Writes document pages and the index artifact.
- build_site: Main function running a complete build.

Per-document failures are collected as DocumentResult values and reported;
only build-level errors (slug collisions, corrupt repositories) abort the
build, in which case nothing is written.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import timezone, tzinfo
from pathlib import Path
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from .content import Document, DocumentAssembler, FileSourceLoader, RawSource
from .errors import BuildError, DocumentError
from .header import HeaderParser, split_header
from .history import GitRepository, HistoryResolver
from .index import SORT_KEYS, Index, IndexBuilder
from .renderers import BlockRenderer
from .templates import TemplateEngine
from .utils import ensure_clean_dir

if TYPE_CHECKING:
    from .protocols import DocumentWriter, SourceLoader

logger = logging.getLogger(__name__)

CONFIG_FILE = "blogparse.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "source_dir": ".",
    "output_dir": ".blog-meta",
    "index_file": "index.json",
    "sort_key": "updated",
    "workers": 4,
    "timezone": "UTC",
    "dedupe_edits": "exact",
    "git": True,
    "template_dir": None,
    "clean_output": True,
}


def load_config(project_root: Path) -> dict[str, Any]:
    """Load build configuration from blogparse.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        Dictionary containing configuration values, with defaults applied.
    """
    config_path = project_root / CONFIG_FILE
    config = DEFAULT_CONFIG.copy()
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except (yaml.YAMLError, ValueError) as exc:
            raise BuildError(f"{config_path}: invalid configuration: {exc}") from exc
        if not isinstance(loaded, dict):
            raise BuildError(f"{config_path}: configuration must be a mapping")
        config.update(loaded)
    return config


def resolve_timezone(name: str) -> tzinfo:
    """Resolve the reference timezone used for explicit edit times.

    Args:
        name: IANA timezone name, e.g. "UTC" or "Europe/Zagreb".

    Returns:
        The timezone.

    Raises:
        BuildError: If the timezone is unknown.
    """
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise BuildError(f"unknown timezone '{name}'") from exc


@dataclass(frozen=True)
class DocumentFailure:
    """Reason a document was excluded from the build.

    Attributes:
        source_path: Path to the source file.
        kind: Error type name (e.g. "MalformedHeader").
        message: Human-readable error message.
    """

    source_path: Path
    kind: str
    message: str

    @classmethod
    def from_error(cls, source_path: Path, error: Exception) -> DocumentFailure:
        message = error.message if isinstance(error, DocumentError) else str(error)
        return cls(source_path=source_path, kind=type(error).__name__, message=message)


@dataclass(frozen=True)
class DocumentResult:
    """Outcome of processing one source.

    Exactly one of document and failure is set.

    Attributes:
        source_path: Path to the source file.
        document: Built document on success.
        failure: Failure reason otherwise.
        warnings: Non-fatal problems met while building.
    """

    source_path: Path
    document: Document | None = None
    failure: DocumentFailure | None = None
    warnings: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.document is not None


class DocumentPipeline:
    """Runs the per-document stages: split, parse, render, resolve, assemble.

    Instances hold no per-document state and can be shared across threads.
    """

    def __init__(
        self,
        header_parser: HeaderParser | None = None,
        renderer: BlockRenderer | None = None,
        resolver: HistoryResolver | None = None,
        assembler: DocumentAssembler | None = None,
    ):
        self.header_parser = header_parser or HeaderParser()
        self.renderer = renderer or BlockRenderer()
        self.resolver = resolver or HistoryResolver()
        self.assembler = assembler or DocumentAssembler()

    def process(self, source: RawSource) -> DocumentResult:
        """Build one document.

        Args:
            source: Source to build.

        Returns:
            DocumentResult carrying the document or the failure reason.

        Raises:
            RepositoryCorrupt: If the source's repository cannot be read.
        """
        try:
            header_text, body = split_header(source.raw_text)
            header = self.header_parser.parse(header_text, source.path)
            rendered = self.renderer.render(body)
        except DocumentError as exc:
            return DocumentResult(
                source_path=source.path,
                failure=DocumentFailure.from_error(source.path, exc),
            )
        history = self.resolver.resolve(header.edits, source.path, source.repository)
        document = self.assembler.assemble(header, rendered, history.edits, source.path)
        return DocumentResult(
            source_path=source.path,
            document=document,
            warnings=tuple(str(warning) for warning in history.warnings),
        )


def _load_and_process(
    loader: SourceLoader, pipeline: DocumentPipeline, path: Path
) -> DocumentResult:
    try:
        source = loader.load(path)
    except (OSError, UnicodeDecodeError) as exc:
        return DocumentResult(
            source_path=path, failure=DocumentFailure.from_error(path, exc)
        )
    return pipeline.process(source)


def run_pipeline(
    loader: SourceLoader, pipeline: DocumentPipeline, workers: int = 1
) -> list[DocumentResult]:
    """Process every source from the loader.

    Documents are processed independently on a thread pool; results are
    returned in source order regardless of completion order.

    Args:
        loader: Source loader.
        pipeline: Document pipeline.
        workers: Number of worker threads (1 processes sequentially).

    Returns:
        One DocumentResult per source, in source order.

    Raises:
        BuildError: If a build-level error occurs; pending documents are
            abandoned.
    """
    paths = loader.iter_paths()
    if workers <= 1:
        return [_load_and_process(loader, pipeline, path) for path in paths]
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="blogparse") as executor:
        futures = [
            executor.submit(_load_and_process, loader, pipeline, path) for path in paths
        ]
        try:
            return [future.result() for future in futures]
        except BuildError:
            for future in futures:
                future.cancel()
            raise


class OutputWriter:
    """Writes built documents and the index to the output directory.

    Attributes:
        output_dir: Directory receiving the output.
        engine: Template engine wrapping document bodies.
        index_file: Name of the index artifact.
    """

    def __init__(
        self,
        output_dir: Path,
        engine: TemplateEngine | None = None,
        index_file: str = "index.json",
    ):
        self.output_dir = output_dir
        self.engine = engine or TemplateEngine()
        self.index_file = index_file

    def write_document(self, document: Document) -> Path:
        """Write a document page.

        Args:
            document: Built document.

        Returns:
            Path of the written file.
        """
        target = self.output_dir / document.output_name
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            f.write(self.engine.render_document(document))
        return target

    def write_index(self, index: Index) -> Path:
        """Write the index artifact.

        The index is written to a temporary file and moved into place, so a
        reader never sees a partial index.

        Args:
            index: Ordered index.

        Returns:
            Path of the index file.
        """
        target = self.output_dir / self.index_file
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_name(f".{target.name}.tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(index.to_json())
        os.replace(tmp, target)
        return target


@dataclass
class BuildResult:
    """Result of a build.

    Attributes:
        index: Ordered index of the built documents.
        results: Per-document results, in source order.
        output_dir: Directory the output was (or would be) written to.
        written: Whether output files were written.
    """

    index: Index
    results: list[DocumentResult]
    output_dir: Path
    written: bool = True
    documents: list[Document] = field(default_factory=list)

    @property
    def failures(self) -> list[DocumentFailure]:
        return [result.failure for result in self.results if result.failure is not None]

    @property
    def warnings(self) -> list[str]:
        return [warning for result in self.results for warning in result.warnings]


def build_site(
    project_root: Path,
    output_dir_override: Path | None = None,
    write: bool = True,
    **overrides: Any,
) -> BuildResult:
    """Build all documents under a project.

    Args:
        project_root: Root directory of the project.
        output_dir_override: Optional path to write the output instead of
            the configured output_dir.
        write: Whether to write output files.
        **overrides: Configuration values overriding blogparse.yaml.

    Returns:
        BuildResult with the index and per-document results.

    Raises:
        BuildError: If the build cannot complete. Nothing is written.
    """
    config = load_config(project_root)
    config.update({key: value for key, value in overrides.items() if value is not None})

    source_dir = (project_root / config["source_dir"]).resolve()
    if not source_dir.is_dir():
        raise BuildError(f"expected source directory at {source_dir}")
    output_dir = (output_dir_override or project_root / config["output_dir"]).resolve()
    if source_dir.is_relative_to(output_dir):
        raise BuildError(f"output directory {output_dir} must not contain the sources")

    repository = GitRepository.discover(source_dir) if config["git"] else None
    loader = FileSourceLoader(source_dir, repository, exclude=[output_dir])
    sort_key = str(config["sort_key"])
    if sort_key not in SORT_KEYS:
        raise BuildError(
            f"unknown sort_key '{sort_key}', expected one of {', '.join(sorted(SORT_KEYS))}"
        )
    try:
        resolver = HistoryResolver(dedupe=str(config["dedupe_edits"]))
    except ValueError as exc:
        raise BuildError(str(exc)) from exc
    pipeline = DocumentPipeline(
        header_parser=HeaderParser(resolve_timezone(str(config["timezone"]))),
        resolver=resolver,
    )
    results = run_pipeline(loader, pipeline, workers=int(config["workers"]))

    builder = IndexBuilder(source_dir)
    documents = [result.document for result in results if result.document is not None]
    for document in documents:
        builder.add(document)
    index = builder.build(sort_key)

    for failure in (result.failure for result in results if result.failure):
        logger.warning("skipped %s: %s", failure.source_path, failure.message)

    if write:
        if config["clean_output"]:
            ensure_clean_dir(output_dir)
        template_dir = config.get("template_dir")
        engine = TemplateEngine(project_root / template_dir if template_dir else None)
        writer: DocumentWriter = OutputWriter(
            output_dir, engine, str(config["index_file"])
        )
        for document in documents:
            writer.write_document(document)
        writer.write_index(index)
        logger.info("wrote %d documents to %s", len(documents), output_dir)

    return BuildResult(
        index=index,
        results=results,
        output_dir=output_dir,
        written=write,
        documents=documents,
    )
