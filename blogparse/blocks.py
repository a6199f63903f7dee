"""Block model for document bodies.

The body of a document is parsed by mistune into an AST, then converted into
a sequence of Block values. Each Block variant has a ``tag`` that selects the
handler used to render it (see renderers.py).

Key objects:
- Block and its variants: Paragraph, TextBlock, Heading, CodeFence,
  MathBlock, List, BlockQuote, ThematicBreak, RawHtmlPassthrough, Markup.
- BlockStream: Lazy, re-iterable sequence of Blocks over parsed tokens.
- parse_blocks: Parses Markdown text into a BlockStream.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any, ClassVar

import mistune

# Extensions enabled for every document body.
MARKDOWN_PLUGINS = ["strikethrough", "footnotes", "table", "url", "mark", "math"]

# Fence languages treated as math rather than code.
MATH_LANGUAGES = frozenset({"math", "latex", "tex"})

Token = dict[str, Any]


@dataclass(frozen=True)
class Block:
    """Base class of all block variants."""

    tag: ClassVar[str] = "block"


@dataclass(frozen=True)
class Paragraph(Block):
    tag: ClassVar[str] = "paragraph"
    children: tuple[Token, ...]


@dataclass(frozen=True)
class TextBlock(Block):
    """Inline text of a tight list item, rendered without <p>."""

    tag: ClassVar[str] = "text"
    children: tuple[Token, ...]


@dataclass(frozen=True)
class Heading(Block):
    tag: ClassVar[str] = "heading"
    level: int
    children: tuple[Token, ...]


@dataclass(frozen=True)
class CodeFence(Block):
    """Fenced or indented code.

    Attributes:
        language: Declared language (first word of the info string), or None.
        code: Raw code text.
    """

    tag: ClassVar[str] = "code_fence"
    language: str | None
    code: str


@dataclass(frozen=True)
class MathBlock(Block):
    tag: ClassVar[str] = "math"
    raw: str


@dataclass(frozen=True)
class List(Block):
    """Ordered or unordered list.

    Attributes:
        items: One tuple of child blocks per list item.
    """

    tag: ClassVar[str] = "list"
    ordered: bool
    items: tuple[tuple[Block, ...], ...]
    start: int | None = None
    tight: bool = True


@dataclass(frozen=True)
class BlockQuote(Block):
    tag: ClassVar[str] = "block_quote"
    children: tuple[Block, ...]


@dataclass(frozen=True)
class ThematicBreak(Block):
    tag: ClassVar[str] = "thematic_break"


@dataclass(frozen=True)
class RawHtmlPassthrough(Block):
    tag: ClassVar[str] = "raw_html"
    html: str


@dataclass(frozen=True)
class Markup(Block):
    """Any other construct (tables, footnotes, ...), rendered by mistune."""

    tag: ClassVar[str] = "markup"
    token: Token


def _convert_many(tokens: Sequence[Token]) -> tuple[Block, ...]:
    return tuple(
        block for block in (to_block(token) for token in tokens) if block is not None
    )


def to_block(token: Token) -> Block | None:
    """Convert one mistune block token into a Block.

    Args:
        token: Block-level token from the mistune AST.

    Returns:
        The Block, or None for tokens without output (blank lines).
    """
    kind = token["type"]
    attrs = token.get("attrs") or {}
    if kind == "blank_line":
        return None
    if kind == "paragraph":
        return Paragraph(children=tuple(token.get("children", ())))
    if kind == "block_text":
        return TextBlock(children=tuple(token.get("children", ())))
    if kind == "heading":
        return Heading(level=attrs["level"], children=tuple(token.get("children", ())))
    if kind == "block_code":
        info = (attrs.get("info") or "").split()
        language = info[0] if info else None
        if language and language.lower() in MATH_LANGUAGES:
            return MathBlock(raw=token["raw"])
        return CodeFence(language=language, code=token["raw"])
    if kind == "block_math":
        return MathBlock(raw=token["raw"])
    if kind == "list":
        items = tuple(
            _convert_many(item.get("children", ()))
            for item in token.get("children", ())
        )
        return List(
            ordered=bool(attrs.get("ordered")),
            items=items,
            start=attrs.get("start"),
            tight=bool(token.get("tight", True)),
        )
    if kind == "block_quote":
        return BlockQuote(children=_convert_many(token.get("children", ())))
    if kind == "thematic_break":
        return ThematicBreak()
    if kind == "block_html":
        return RawHtmlPassthrough(html=token["raw"])
    return Markup(token=token)


class BlockStream:
    """Finite sequence of Blocks produced lazily from parsed tokens.

    Blocks are converted as they are iterated. The stream can be iterated
    any number of times and yields equal blocks each time.

    Attributes:
        state: Parser state, needed to render inline content.
    """

    def __init__(self, tokens: Sequence[Token], state: Any = None):
        self._tokens = tuple(tokens)
        self.state = state

    def __iter__(self) -> Iterator[Block]:
        for token in self._tokens:
            block = to_block(token)
            if block is not None:
                yield block

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"BlockStream({len(self._tokens)} tokens)"


def create_parser() -> mistune.Markdown:
    """Create a mistune parser producing an AST instead of HTML."""
    return mistune.create_markdown(renderer=None, plugins=MARKDOWN_PLUGINS)


def parse_blocks(text: str, parser: mistune.Markdown | None = None) -> BlockStream:
    """Parse Markdown text into a BlockStream.

    Args:
        text: Markdown body.
        parser: Optional AST parser from create_parser().

    Returns:
        BlockStream over the parsed body.
    """
    parser = parser or create_parser()
    tokens, state = parser.parse(text)
    return BlockStream(tokens, state)
