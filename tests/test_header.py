from datetime import datetime, timedelta, timezone
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from blogparse.errors import HeaderDecodeError, InvalidEditRecord, MalformedHeader
from blogparse.header import (
    EXPLICIT,
    Author,
    HeaderParser,
    parse_header,
    parse_time,
    split_header,
)


def test_split_header():
    text = "---\ntitle: Hello\n---\n# Body\n"
    header, body = split_header(text)
    assert header == "title: Hello\n"
    assert body == "# Body\n"


def test_split_header_tolerates_trailing_whitespace_and_crlf():
    header, body = split_header("--- \r\ntitle: Hi\r\n---\r\nbody")
    assert header == "title: Hi\r\n"
    assert body == "body"


def test_split_header_strips_bom():
    header, body = split_header("\ufeff---\ntitle: Hi\n---\nbody")
    assert header == "title: Hi\n"
    assert body == "body"


def test_split_header_without_header():
    text = "# Just a body\n\n---\n\nmore"
    assert split_header(text) == ("", text)
    assert split_header("") == ("", "")


def test_split_header_requires_marker_on_first_line():
    text = "\n---\ntitle: x\n---\n"
    assert split_header(text) == ("", text)


def test_split_header_unclosed():
    with pytest.raises(MalformedHeader):
        split_header("---\ntitle: Hello\n# Body\n")


def test_parse_header_scalars_round_trip():
    header = parse_header(
        "title: My Post\ndesc: About things\nslug: my-post\nauthor: Ana\n"
        "tags: [python, git]\n",
        Path("posts/whatever.md"),
    )
    assert header.title == "My Post"
    assert header.description == "About things"
    assert header.slug == "my-post"
    assert header.author == "Ana"
    assert header.authors == (Author(name="Ana"),)
    assert header.tags == ("python", "git")
    assert header.edits == ()


def test_parse_header_defaults_from_filename():
    header = parse_header("", Path("posts/My First_Post!.md"))
    assert header.slug == "my-first-post"
    assert header.title == "My First Post!"
    assert header.description is None
    assert header.tags == ()


def test_parse_header_slug_fallback_to_index():
    assert parse_header("", Path("!!!.md")).slug == "index"


def test_parse_header_description_alias_and_case():
    header = parse_header("Description: Longer text\nTITLE: Upper\n", Path("a.md"))
    assert header.description == "Longer text"
    assert header.title == "Upper"


def test_parse_header_duplicate_tags_removed():
    header = parse_header("tags: [a, b, a]\n", Path("a.md"))
    assert header.tags == ("a", "b")


def test_parse_header_unknown_key_logged(caplog):
    with caplog.at_level("WARNING", logger="blogparse.header"):
        header = parse_header("title: T\nlayout: wide\n", Path("a.md"))
    assert header.title == "T"
    assert "layout" in caplog.text


def test_parse_header_null_value_uses_default():
    header = parse_header("title:\n", Path("hello-world.md"))
    assert header.title == "Hello World"


def test_parse_header_author_forms():
    header = parse_header(
        "author:\n  name: Ana\n  email: ana@example.com\n", Path("a.md")
    )
    assert header.author == "Ana"
    assert header.authors == (Author(name="Ana", email="ana@example.com"),)

    header = parse_header(
        "author:\n  - Ana\n  - name: Ben\n    web: https://ben.example\n", Path("a.md")
    )
    assert header.author == "Ana, Ben"
    assert header.authors[1].web == "https://ben.example"


def test_parse_header_explicit_edits():
    header = parse_header(
        'edits:\n  - summary: Initial post\n    time: "2023-04-02T19:55:00+01:00"\n'
        "  - time: 2023-04-03T10:00:00Z\n",
        Path("a.md"),
    )
    first, second = header.edits
    assert first.summary == "Initial post"
    assert first.origin == EXPLICIT
    assert first.time == datetime(2023, 4, 2, 18, 55, tzinfo=timezone.utc)
    assert first.time.utcoffset() == timedelta(0)
    assert second.summary == ""
    assert second.time == datetime(2023, 4, 3, 10, 0, tzinfo=timezone.utc)


def test_parse_header_reference_timezone():
    parser = HeaderParser(ZoneInfo("Europe/Zagreb"))
    header = parser.parse(
        'edits:\n  - summary: x\n    time: "2023-04-02T12:00:00+00:00"\n', Path("a.md")
    )
    assert header.edits[0].time.hour == 14
    assert header.edits[0].time == datetime(2023, 4, 2, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "text, key",
    [
        ("title: [1, 2]\n", "title"),
        ("title: ''\n", "title"),
        ("tags: python\n", "tags"),
        ("tags: [1]\n", "tags"),
        ("slug: 'has space'\n", "slug"),
        ("slug: '..'\n", "slug"),
        ("author: 42\n", "author"),
        ("edits: yes\n", "edits"),
        ("edits: [note]\n", "edits"),
    ],
)
def test_parse_header_type_mismatch(text, key):
    with pytest.raises(HeaderDecodeError) as excinfo:
        parse_header(text, Path("a.md"))
    assert excinfo.value.key == key
    assert excinfo.value.source_path == Path("a.md")


def test_parse_header_invalid_yaml():
    with pytest.raises(HeaderDecodeError) as excinfo:
        parse_header("title: [unclosed\n", Path("a.md"))
    assert excinfo.value.key is None


def test_parse_header_impossible_dates():
    header = parse_header("title: T\npublished: 2023-13-01\n", Path("a.md"))
    assert header.title == "T"
    with pytest.raises(InvalidEditRecord) as excinfo:
        parse_header(
            "edits:\n  - summary: x\n    time: 2023-02-30T10:00:00+01:00\n", Path("a.md")
        )
    assert excinfo.value.index == 0
    assert parse_header("title: 2023-02-30\n", Path("a.md")).title == "2023-02-30"


def test_parse_header_quoted_utc_suffix():
    header = parse_header(
        'edits:\n  - summary: x\n    time: "2023-04-02T19:55:00Z"\n', Path("a.md")
    )
    assert header.edits[0].time == datetime(2023, 4, 2, 19, 55, tzinfo=timezone.utc)


def test_parse_header_not_a_mapping():
    with pytest.raises(HeaderDecodeError) as excinfo:
        parse_header("- just\n- a list\n", Path("a.md"))
    assert excinfo.value.key is None
    assert "mapping" in str(excinfo.value)


@pytest.mark.parametrize(
    "text",
    [
        "edits:\n  - summary: no time\n",
        "edits:\n  - summary: bad\n    time: yesterday\n",
        "edits:\n  - summary: naive\n    time: '2023-04-02T19:55:00'\n",
        "edits:\n  - summary: date only\n    time: 2023-04-02\n",
    ],
)
def test_parse_header_invalid_edit_record(text):
    with pytest.raises(InvalidEditRecord) as excinfo:
        parse_header(text, Path("a.md"))
    assert excinfo.value.index == 0
    assert "edit #1" in str(excinfo.value)


def test_parse_time():
    aware = datetime(2023, 1, 1, tzinfo=timezone.utc)
    assert parse_time(aware) is aware
    assert parse_time("2023-01-01T00:00:00+00:00") == aware
    assert parse_time("2023-01-01T00:00:00Z") == aware
    with pytest.raises(ValueError):
        parse_time("2023-01-01T00:00:00")
    with pytest.raises(ValueError):
        parse_time(1700000000)
