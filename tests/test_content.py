from datetime import datetime, timezone
from pathlib import Path

from blogparse.content import DocumentAssembler, FileSourceLoader
from blogparse.header import EditRecord, Header
from blogparse.renderers import RenderedBody, TocEntry


def test_loader_discovers_markdown(tmp_path):
    (tmp_path / "posts").mkdir()
    (tmp_path / "_layouts").mkdir()
    (tmp_path / "out").mkdir()
    (tmp_path / "posts" / "b.md").write_text("b", encoding="utf-8")
    (tmp_path / "a.md").write_text("a", encoding="utf-8")
    (tmp_path / "_layouts" / "skip.md").write_text("x", encoding="utf-8")
    (tmp_path / "out" / "old.md").write_text("x", encoding="utf-8")
    (tmp_path / "image.png").write_bytes(b"")

    repository = object()
    loader = FileSourceLoader(tmp_path, repository, exclude=[tmp_path / "out"])
    paths = loader.iter_paths()
    assert paths == [tmp_path / "a.md", tmp_path / "posts" / "b.md"]

    source = loader.load(paths[1])
    assert source.raw_text == "b"
    assert source.root == tmp_path
    assert source.repository is repository
    assert source.relative_path == Path("posts/b.md")


def test_assembler_combines_parts():
    edit = EditRecord("Initial post", datetime(2023, 4, 2, tzinfo=timezone.utc))
    header = Header(title="T", slug="output-file-name", edits=(edit,))
    body = RenderedBody(html="<h2 id=\"a\">A</h2>\n", toc=(TocEntry("a", "A", 2),))

    document = DocumentAssembler().assemble(header, body, [edit], Path("post.md"))

    assert document.slug == "output-file-name"
    assert document.output_name == "output-file-name.html"
    assert document.body_html == body.html
    assert document.history == (edit,)
    assert document.toc == body.toc
