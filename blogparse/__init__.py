"""Blogparse: git-aware Markdown blog builder.

This package turns a directory of Markdown documents with YAML headers into
rendered HTML documents and a JSON index. Edit history declared in headers is
merged with commit history from the git repository backing the directory.

The main entry point is the CLI module, which provides commands for building
the output and for querying the resulting index.

Architecture:
- header: splits and decodes the structured header of a document.
- history: resolves the edit trail against git commit metadata.
- blocks / renderers: turn the body into HTML through an open block registry.
- content / index: assemble documents and aggregate the index.
- build: runs the pipeline over a worker pool and hands results to the writer.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
