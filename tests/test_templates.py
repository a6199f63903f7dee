from datetime import datetime, timezone
from pathlib import Path

from blogparse.content import Document
from blogparse.header import EditRecord, Header
from blogparse.renderers import TocEntry
from blogparse.templates import TemplateEngine, render_toc


def make_document():
    edit = EditRecord("Initial <post>", datetime(2023, 4, 2, 18, 55, tzinfo=timezone.utc))
    header = Header(
        title="Fish & Chips",
        slug="fish",
        description="A \"tasty\" post",
        tags=("food",),
        author="Ana",
        edits=(edit,),
    )
    return Document(
        header=header,
        body_html="<p>Body <em>html</em></p>\n",
        history=(edit,),
        source_path=Path("fish.md"),
        toc=(TocEntry("intro", "Intro", 2),),
    )


def test_render_document_default_template():
    html = TemplateEngine().render_document(make_document())
    assert html.startswith("<!DOCTYPE html>")
    assert "<title>Fish &amp; Chips</title>" in html
    assert 'content="A &#34;tasty&#34; post"' in html
    assert "<p>Body <em>html</em></p>" in html
    assert '<time datetime="2023-04-02T18:55:00+00:00">2023-04-02</time> Initial &lt;post&gt;' in html
    assert ".highlight" in html
    assert "<li>food</li>" in html
    assert '<nav class="toc"><ul><li><a href="#intro">Intro</a></li></ul></nav>' in html


def test_render_document_custom_template(tmp_path):
    (tmp_path / "article.html.jinja").write_text(
        "{{ render_toc(toc) }}{{ header.slug }}", encoding="utf-8"
    )
    engine = TemplateEngine(tmp_path)
    html = engine.render_document(make_document())
    assert html == '<ul><li><a href="#intro">Intro</a></li></ul>fish'


def test_render_toc_nesting():
    headings = [
        TocEntry("a", "A", 2),
        TocEntry("b", "B", 3),
        TocEntry("c", "C <x>", 2),
    ]
    assert str(render_toc(headings)) == (
        '<ul><li><a href="#a">A</a><ul><li><a href="#b">B</a></li></ul>'
        '</li><li><a href="#c">C &lt;x&gt;</a></li></ul>'
    )
    assert str(render_toc([])) == ""
