import json
from pathlib import Path

from click.testing import CliRunner

from blogparse import __version__
from blogparse.cli import cli


def create_blog(root: Path) -> Path:
    posts = {
        "first.md": (
            "---\ntitle: First Post\ntags: [python, git]\nedits:\n"
            "  - summary: Initial post\n    time: '2023-04-02T19:55:00+01:00'\n---\n"
            "Talking about mistune.\n"
        ),
        "second.md": (
            "---\ntitle: Second Post\ntags: [python]\nedits:\n"
            "  - summary: Initial post\n    time: '2023-05-10T08:00:00+00:00'\n---\n"
            "Nothing special.\n"
        ),
        "draft.md": "---\ntitle: Undated\n---\nNo edits yet.\n",
    }
    for name, text in posts.items():
        (root / name).write_text(text, encoding="utf-8")
    return root


def test_cli_version():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_cli_build(tmp_path):
    create_blog(tmp_path)
    runner = CliRunner()
    result = runner.invoke(cli, ["build", "-w", str(tmp_path), "--no-git"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Built 3 documents" in result.output
    assert (tmp_path / ".blog-meta" / "first.html").exists()
    assert (tmp_path / ".blog-meta" / "index.json").exists()


def test_cli_build_stdout(tmp_path):
    create_blog(tmp_path)
    result = CliRunner().invoke(
        cli,
        ["build", "-w", str(tmp_path), "--no-git", "--stdout", "--sort-key", "slug"],
        catch_exceptions=False,
    )
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert [doc["slug"] for doc in data["documents"]] == ["draft", "first", "second"]
    assert not (tmp_path / ".blog-meta").exists()


def test_cli_build_reports_skipped_documents(tmp_path):
    create_blog(tmp_path)
    (tmp_path / "broken.md").write_text("---\ntitle: x\n", encoding="utf-8")
    result = CliRunner().invoke(cli, ["build", "-w", str(tmp_path), "--no-git", "-o", str(tmp_path / "out")])
    assert result.exit_code == 0
    assert "Skipped 1 documents" in result.output
    assert "MalformedHeader" in result.output
    assert (tmp_path / "out" / "index.json").exists()


def test_cli_build_failure_exit_code(tmp_path):
    (tmp_path / "a.md").write_text("---\nslug: same\n---\n", encoding="utf-8")
    (tmp_path / "b.md").write_text("---\nslug: same\n---\n", encoding="utf-8")
    result = CliRunner().invoke(cli, ["build", "-w", str(tmp_path), "--no-git"])
    assert result.exit_code == 1
    assert "Build failed" in result.output
    assert "same" in result.output


def test_cli_posts_filters(tmp_path):
    create_blog(tmp_path)
    (tmp_path / "blogparse.yaml").write_text("git: false\n", encoding="utf-8")
    runner = CliRunner()

    result = runner.invoke(cli, ["posts", "-w", str(tmp_path)], catch_exceptions=False)
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines == [
        "2023-05-10  second  Second Post",
        "2023-04-02  first  First Post",
        "----------  draft  Undated",
    ]

    result = runner.invoke(cli, ["posts", "-w", str(tmp_path), "-t", "python,git"])
    assert result.output.splitlines() == ["2023-04-02  first  First Post"]

    result = runner.invoke(cli, ["posts", "-w", str(tmp_path), "-s", "2023-05-01"])
    assert result.output.splitlines() == ["2023-05-10  second  Second Post"]

    result = runner.invoke(cli, ["posts", "-w", str(tmp_path), "-e", "2023-04-30"])
    assert result.output.splitlines() == ["2023-04-02  first  First Post"]

    result = runner.invoke(cli, ["posts", "-w", str(tmp_path), "-q", "MISTUNE"])
    assert result.output.splitlines() == ["2023-04-02  first  First Post"]
