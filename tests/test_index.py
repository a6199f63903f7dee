import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from blogparse.content import Document
from blogparse.errors import SlugCollision
from blogparse.header import EditRecord, Header
from blogparse.index import Index, IndexBuilder, IndexEntry

T0 = datetime(2023, 4, 2, 18, 55, tzinfo=timezone.utc)


def make_document(slug, *days, title=None, tags=(), path=None):
    edits = tuple(EditRecord(f"edit {day}", T0 + timedelta(days=day)) for day in days)
    header = Header(title=title or slug.title(), slug=slug, tags=tuple(tags), edits=edits)
    return Document(
        header=header,
        body_html="<p>body</p>\n",
        history=edits,
        source_path=path or Path(f"/site/{slug}.md"),
    )


def test_index_entry_from_document():
    document = make_document("hello", 0, 3, tags=["a"])
    entry = IndexEntry.from_document(document, Path("/site"))
    assert entry.slug == "hello"
    assert entry.output == "hello.html"
    assert entry.source == "hello.md"
    assert entry.created == T0
    assert entry.updated == T0 + timedelta(days=3)
    data = entry.to_dict()
    assert "body_html" not in data
    assert data["edits"][0] == {
        "summary": "edit 0",
        "time": "2023-04-02T18:55:00+00:00",
        "origin": "explicit",
    }


def test_slug_collision_names_both_paths():
    builder = IndexBuilder()
    builder.add(make_document("same", path=Path("/site/a.md")))
    with pytest.raises(SlugCollision) as excinfo:
        builder.add(make_document("same", path=Path("/site/b.md")))
    message = str(excinfo.value)
    assert "/site/a.md" in message
    assert "/site/b.md" in message
    assert excinfo.value.slug == "same"


def test_sort_by_updated_newest_first_undated_last():
    builder = IndexBuilder()
    for document in [
        make_document("old", 0),
        make_document("undated-b"),
        make_document("new", 0, 10),
        make_document("tie-b", 5),
        make_document("tie-a", 5),
        make_document("undated-a"),
    ]:
        builder.add(document)
    index = builder.build()
    assert [entry.slug for entry in index] == [
        "new",
        "tie-a",
        "tie-b",
        "old",
        "undated-a",
        "undated-b",
    ]


def test_sort_by_created_title_and_slug():
    builder = IndexBuilder()
    builder.add(make_document("b", 1, 20, title="zebra"))
    builder.add(make_document("a", 2, title="Apple"))
    builder.add(make_document("c", 0, title="mango"))
    assert [entry.slug for entry in builder.build("created")] == ["a", "b", "c"]
    assert [entry.slug for entry in builder.build("title")] == ["a", "c", "b"]
    assert [entry.slug for entry in builder.build("slug")] == ["a", "b", "c"]


def test_unknown_sort_key():
    with pytest.raises(ValueError):
        IndexBuilder().build("random")


def test_order_independent_of_insertion():
    documents = [make_document(slug, day) for slug, day in [("x", 1), ("y", 1), ("z", 0)]]
    forward = IndexBuilder()
    backward = IndexBuilder()
    for document in documents:
        forward.add(document)
    for document in reversed(documents):
        backward.add(document)
    assert forward.build().to_json() == backward.build().to_json()


def test_index_sequence_and_json():
    builder = IndexBuilder()
    builder.add(make_document("one", 1, tags=["python"]))
    builder.add(make_document("two", 0, tags=["git"]))
    index = builder.build()
    assert len(index) == 2
    assert index[0].slug == "one"
    assert index.get("two").title == "Two"
    assert index.get("missing") is None
    assert [entry.slug for entry in index.with_tag("git")] == ["two"]
    assert isinstance(index.with_tag("git"), Index)

    text = index.to_json()
    assert text.endswith("\n")
    data = json.loads(text)
    assert [doc["slug"] for doc in data["documents"]] == ["one", "two"]
    assert data["documents"][0]["output"] == "one.html"
