"""Block renderers for blogparse.

Rendering dispatches every Block to a handler function looked up by the
block's tag in a BlockRendererRegistry. Registering a handler for a new tag
adds a block kind without touching the existing handlers.

Key objects:
- BlockRendererRegistry: Maps block tags to handler functions.
- RenderContext: Per-document rendering state passed to handlers.
- BlockRenderer: Parses a body and renders it through the registry.
- highlight_code: Pygments highlighting with a plain fallback.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import mistune
from mistune.util import escape
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .blocks import (
    MARKDOWN_PLUGINS,
    Block,
    BlockQuote,
    CodeFence,
    Heading,
    List,
    Markup,
    MathBlock,
    Paragraph,
    RawHtmlPassthrough,
    TextBlock,
    ThematicBreak,
    Token,
    create_parser,
    parse_blocks,
)
from .errors import RenderError

if TYPE_CHECKING:
    from .protocols import BlockHandler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TocEntry:
    """A heading collected for the table of contents.

    Attributes:
        id: Anchor ID for the heading (URL-friendly slug).
        text: The text content of the heading.
        level: Heading level (1-6).
    """

    id: str
    text: str
    level: int


def _generate_heading_id(text: str) -> str:
    """Generate a URL-friendly ID from heading text.

    Args:
        text: The heading text.

    Returns:
        URL-friendly slug suitable for anchor links.
    """
    slug = text.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-")


def _plain_text(tokens: Iterable[Token]) -> str:
    parts = []
    for token in tokens:
        if "children" in token:
            parts.append(_plain_text(token["children"]))
        elif token.get("raw") and token["type"] in ("text", "codespan", "inline_html"):
            parts.append(token["raw"])
    return "".join(parts)


def highlight_code(code: str, language: str | None) -> str:
    """Render code with Pygments syntax highlighting.

    Unknown or missing languages fall back to an escaped, unhighlighted
    preformatted block.

    Args:
        code: The code content.
        language: Language identifier (e.g., 'python', 'rust').

    Returns:
        HTML string with the (possibly highlighted) code.
    """
    if language:
        try:
            lexer = get_lexer_by_name(language, stripall=True)
        except ClassNotFound:
            logger.debug("no lexer for language '%s', rendering plain", language)
        else:
            formatter = HtmlFormatter(cssclass="highlight", wrapcode=True)
            return highlight(code, lexer, formatter)
    lang_class = f' class="language-{escape(language)}"' if language else ""
    return f"<pre><code{lang_class}>{escape(code)}</code></pre>\n"


class RenderContext:
    """State shared by the handlers while rendering one document.

    Attributes:
        registry: Registry used to dispatch nested blocks.
        toc: Headings rendered so far, in document order.
    """

    def __init__(
        self,
        registry: BlockRendererRegistry,
        inline_renderer: mistune.HTMLRenderer,
        state: Any = None,
    ):
        self.registry = registry
        self.toc: list[TocEntry] = []
        self._inline_renderer = inline_renderer
        self._state = state
        self._heading_id_counts: dict[str, int] = {}

    def inline(self, children: Sequence[Token]) -> str:
        """Render inline tokens (emphasis, links, code spans, ...) to HTML."""
        return self._inline_renderer.render_tokens(list(children), self._state)

    def markup(self, token: Token) -> str:
        """Render a block token with mistune's default HTML rules."""
        return self._inline_renderer.render_token(token, self._state)

    def render(self, blocks: Iterable[Block]) -> str:
        """Render blocks through the registry."""
        return "".join(self.registry.render(block, self) for block in blocks)

    def heading_id(self, text: str) -> str:
        """Return a unique anchor id for a heading."""
        base_id = _generate_heading_id(text)
        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            return f"{base_id}-{self._heading_id_counts[base_id]}"
        self._heading_id_counts[base_id] = 0
        return base_id


def render_paragraph(block: Paragraph, ctx: RenderContext) -> str:
    return f"<p>{ctx.inline(block.children)}</p>\n"


def render_text(block: TextBlock, ctx: RenderContext) -> str:
    return ctx.inline(block.children)


def render_heading(block: Heading, ctx: RenderContext) -> str:
    """Render a heading with an auto-generated ID and track it for the TOC."""
    text = _plain_text(block.children)
    heading_id = ctx.heading_id(text)
    ctx.toc.append(TocEntry(id=heading_id, text=text, level=block.level))
    return (
        f'<h{block.level} id="{heading_id}">{ctx.inline(block.children)}'
        f"</h{block.level}>\n"
    )


def render_code_fence(block: CodeFence, ctx: RenderContext) -> str:
    return highlight_code(block.code, block.language)


def render_math_placeholder(block: MathBlock, ctx: RenderContext) -> str:
    """Render math as an explicit "unsupported" placeholder.

    The LaTeX source is kept, escaped, so a later math handler or client-side
    script can pick it up.
    """
    return (
        '<div class="math math-unsupported" data-lang="latex" '
        'title="Math rendering is not supported yet">'
        f"<code>{escape(block.raw)}</code></div>\n"
    )


def render_list(block: List, ctx: RenderContext) -> str:
    items = "".join(f"<li>{ctx.render(item)}</li>\n" for item in block.items)
    if block.ordered:
        start = f' start="{block.start}"' if block.start is not None else ""
        return f"<ol{start}>\n{items}</ol>\n"
    return f"<ul>\n{items}</ul>\n"


def render_block_quote(block: BlockQuote, ctx: RenderContext) -> str:
    return f"<blockquote>\n{ctx.render(block.children)}</blockquote>\n"


def render_thematic_break(block: ThematicBreak, ctx: RenderContext) -> str:
    return "<hr />\n"


def render_raw_html(block: RawHtmlPassthrough, ctx: RenderContext) -> str:
    return block.html


def render_markup(block: Markup, ctx: RenderContext) -> str:
    return ctx.markup(block.token)


class BlockRendererRegistry:
    """Registry mapping block tags to handler functions.

    New block kinds are supported by registering a handler for their tag;
    registering an existing tag replaces its handler.
    """

    def __init__(self, handlers: dict[str, BlockHandler] | None = None):
        """Initialize the registry.

        Args:
            handlers: Optional initial tag to handler mapping.
        """
        self._handlers: dict[str, BlockHandler] = dict(handlers or {})

    def register(self, tag: str, handler: BlockHandler) -> None:
        """Register a handler for a block tag.

        Args:
            tag: Block tag (Block.tag of the variant).
            handler: Function taking (block, context) and returning HTML.
        """
        self._handlers[tag] = handler

    def get(self, tag: str) -> BlockHandler | None:
        return self._handlers.get(tag)

    def __contains__(self, tag: object) -> bool:
        return tag in self._handlers

    def render(self, block: Block, ctx: RenderContext) -> str:
        """Render one block with the handler registered for its tag.

        Raises:
            RenderError: If no handler is registered for the block's tag.
        """
        handler = self._handlers.get(block.tag)
        if handler is None:
            raise RenderError(f"no renderer registered for '{block.tag}' blocks")
        return handler(block, ctx)

    def copy(self) -> BlockRendererRegistry:
        return BlockRendererRegistry(self._handlers)


def create_default_registry() -> BlockRendererRegistry:
    """Create a registry with the default block handlers.

    Returns:
        BlockRendererRegistry covering every built-in Block variant.
    """
    registry = BlockRendererRegistry()
    registry.register(Paragraph.tag, render_paragraph)
    registry.register(TextBlock.tag, render_text)
    registry.register(Heading.tag, render_heading)
    registry.register(CodeFence.tag, render_code_fence)
    registry.register(MathBlock.tag, render_math_placeholder)
    registry.register(List.tag, render_list)
    registry.register(BlockQuote.tag, render_block_quote)
    registry.register(ThematicBreak.tag, render_thematic_break)
    registry.register(RawHtmlPassthrough.tag, render_raw_html)
    registry.register(Markup.tag, render_markup)
    return registry


@dataclass(frozen=True)
class RenderedBody:
    """Output of rendering a document body.

    Attributes:
        html: Rendered HTML.
        toc: Headings in document order.
    """

    html: str
    toc: tuple[TocEntry, ...]


class BlockRenderer:
    """Renders Markdown bodies to HTML through a block registry.

    A fresh parser and inline renderer are created per call, so one
    BlockRenderer can be shared by several worker threads.

    Attributes:
        registry: Registry used to dispatch blocks.
    """

    def __init__(self, registry: BlockRendererRegistry | None = None):
        self.registry = registry or create_default_registry()

    def render(self, text: str) -> RenderedBody:
        """Render a Markdown body.

        Args:
            text: Markdown source (without header).

        Returns:
            RenderedBody with the HTML and the collected table of contents.

        Raises:
            RenderError: If a block has no registered handler.
        """
        stream = parse_blocks(text, create_parser())
        inline_renderer = mistune.HTMLRenderer(escape=False)
        # Applying the plugins registers their HTML rules on the renderer.
        mistune.create_markdown(renderer=inline_renderer, plugins=MARKDOWN_PLUGINS)
        ctx = RenderContext(self.registry, inline_renderer, stream.state)
        html = ctx.render(stream)
        return RenderedBody(html=html, toc=tuple(ctx.toc))
