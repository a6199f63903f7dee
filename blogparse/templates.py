"""Template rendering for blogparse.

This module wraps rendered document bodies into full HTML pages with Jinja2.
A built-in article template is used unless the project provides its own
``article.html.jinja`` in the configured template directory.

Key objects:
- TemplateEngine: Renders documents with the article layout.
- render_toc: Nested table of contents markup for a document.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from jinja2 import (
    ChoiceLoader,
    DictLoader,
    Environment,
    FileSystemLoader,
    select_autoescape,
)
from markupsafe import Markup, escape
from pygments.formatters import HtmlFormatter

from .content import Document
from .renderers import TocEntry

__all__ = ["ARTICLE_TEMPLATE", "TemplateEngine", "render_toc"]

ARTICLE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{{ header.title }}</title>
{% if header.description %}<meta name="description" content="{{ header.description }}">
{% endif %}{% if header.author %}<meta name="author" content="{{ header.author }}">
{% endif %}<style>{{ pygments_css() }}</style>
</head>
<body>
<article>
<header>
<h1>{{ header.title }}</h1>
{% if header.tags %}<ul class="tags">{% for tag in header.tags %}<li>{{ tag }}</li>{% endfor %}</ul>
{% endif %}</header>
{% if toc %}<nav class="toc">{{ render_toc(toc) }}</nav>
{% endif %}{{ document.body_html | safe }}
{% if history %}<footer>
<ol class="edits">
{% for edit in history %}<li><time datetime="{{ edit.time.isoformat() }}">{{ edit.time.strftime('%Y-%m-%d') }}</time> {{ edit.summary }}</li>
{% endfor %}</ol>
</footer>
{% endif %}</article>
</body>
</html>
"""


def render_toc(headings: Sequence[TocEntry]) -> Markup:
    """Render headings as a nested HTML list.

    Generates properly nested ``<ul><li><a href="#id">text</a></li></ul>``
    structure based on heading levels.

    Args:
        headings: Headings in document order.

    Returns:
        Markup-safe HTML string of the nested TOC, or empty Markup if no headings.
    """
    if not headings:
        return Markup("")

    html_parts: list[str] = []
    level_stack: list[int] = []

    for heading in headings:
        level = heading.level

        # Close nested lists if going to a shallower level
        while level_stack and level_stack[-1] > level:
            level_stack.pop()
            html_parts.append("</li></ul>")

        if level_stack and level_stack[-1] == level:
            html_parts.append("</li>")
        elif not level_stack or level > level_stack[-1]:  # pragma: no branch
            html_parts.append("<ul>")
            level_stack.append(level)

        html_parts.append(f'<li><a href="#{escape(heading.id)}">{escape(heading.text)}</a>')

    while level_stack:
        level_stack.pop()
        html_parts.append("</li></ul>")

    return Markup("".join(html_parts))


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        template_dir: Optional directory with user templates.
        env: Jinja2 environment.
    """

    def __init__(self, template_dir: Path | None = None):
        """Initialize the template engine.

        Args:
            template_dir: Directory overriding the built-in templates.
        """
        self.template_dir = template_dir
        loaders = []
        if template_dir is not None:
            loaders.append(FileSystemLoader(str(template_dir)))
        loaders.append(DictLoader({"article.html.jinja": ARTICLE_TEMPLATE}))
        self.env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            enable_async=False,
        )
        self._install_globals()

    def _install_globals(self) -> None:
        """Install global variables and functions in the Jinja environment."""
        self.env.globals["pygments_css"] = self._pygments_css
        self.env.globals["render_toc"] = render_toc

    @staticmethod
    def _pygments_css() -> Markup:
        """Return Pygments CSS styles for the .highlight class."""
        return Markup(HtmlFormatter().get_style_defs(".highlight"))

    def render_document(self, document: Document) -> str:
        """Render a document with the article layout.

        Args:
            document: Built document.

        Returns:
            Complete HTML page.
        """
        template = self.env.get_template("article.html.jinja")
        return template.render(
            document=document,
            header=document.header,
            history=document.history,
            toc=document.toc,
        )
