import json
from datetime import datetime, timezone
from pathlib import Path

from click.testing import CliRunner

from sty.build import BuildError
from sty.cli import _get_content_folders, _get_layouts, _titleize, cli


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def create_project(root: Path) -> Path:
    write(root / "site.json", json.dumps({"title": "Blog"}))
    write(root / "_layouts" / "post.html.jinja", "{{ meta.title }}")
    write(root / "_layouts" / "page.jinja", "{{ entry }}")
    write(root / "index.html.jinja", "{{ site.title }}")
    write(root / "posts" / "hello.md", "---\ntitle: Hello\nlayout: post\n---\nHi")
    write(root / "style.css", "body {}")
    return root


def mock_questions(monkeypatch, answers):
    responses = iter(answers)

    def ask_next(*args, **kwargs):
        class MockQuestion:
            def ask(self):
                return next(responses)

        return MockQuestion()

    monkeypatch.setattr("sty.cli.questionary.select", ask_next)
    monkeypatch.setattr("sty.cli.questionary.text", ask_next)


def test_build_command(tmp_path, monkeypatch):
    create_project(tmp_path)
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(cli, ["build"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Built 1 content items and 1 pages, copied 1 assets" in result.output
    assert (tmp_path / "public" / "posts" / "hello" / "index.html").read_text(encoding="utf-8") == "Hello"


def test_build_honours_read_dir(tmp_path, monkeypatch):
    project = create_project(tmp_path / "site")
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(cli, ["build"], env={"READ_DIR": str(project)})
    assert result.exit_code == 0
    assert (project / "public" / "index.html").read_text(encoding="utf-8") == "Blog"


def test_build_failure_exits_non_zero(tmp_path, monkeypatch):
    create_project(tmp_path)
    write(tmp_path / "broken.html.jinja", "{% endfor %}")
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(cli, ["build"])
    assert result.exit_code == 1
    assert "Build failed:" in result.output
    assert "File: broken.html.jinja" in result.output


def test_invalid_utc_offset_is_reported(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(cli, ["build"], env={"UTC_OFFSET": "14"})
    assert result.exit_code == 1
    assert "UTC offset out of bound" in result.output


def test_watch_compiles_then_runs_watcher(tmp_path, monkeypatch):
    create_project(tmp_path)
    monkeypatch.chdir(tmp_path)
    ran = []
    monkeypatch.setattr("sty.watcher.SiteWatcher.run", lambda self: ran.append(self.root_dir))
    result = CliRunner().invoke(cli, ["watch"], catch_exceptions=False)
    assert result.exit_code == 0
    assert ran == [tmp_path.resolve()]
    assert (tmp_path / "public" / "index.html").exists()


def test_watch_stops_on_build_error(tmp_path, monkeypatch):
    create_project(tmp_path)
    monkeypatch.chdir(tmp_path)

    def failing_run(self):
        raise BuildError(self.root_dir / "site.json", "bad data")

    monkeypatch.setattr("sty.watcher.SiteWatcher.run", failing_run)
    result = CliRunner().invoke(cli, ["watch"])
    assert result.exit_code == 1
    assert "Error: bad data" in result.output


def test_md_command_creates_file(tmp_path, monkeypatch):
    create_project(tmp_path)
    monkeypatch.chdir(tmp_path)
    mock_questions(monkeypatch, ["posts", " my-new-post ", "post"])

    result = CliRunner().invoke(cli, ["md"], catch_exceptions=False)
    assert result.exit_code == 0
    created = tmp_path / "posts" / "my-new-post.md"
    assert "Created posts/my-new-post.md" in result.output
    today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    assert created.read_text(encoding="utf-8") == (
        f"---\ntitle: My New Post\ndate: {today}\nlayout: post\n---\n\n"
    )


def test_md_command_refuses_to_overwrite(tmp_path, monkeypatch):
    create_project(tmp_path)
    monkeypatch.chdir(tmp_path)
    mock_questions(monkeypatch, ["posts", "hello", "post"])

    result = CliRunner().invoke(cli, ["md"])
    assert result.exit_code != 0
    assert "File already exists" in result.output


def test_md_command_aborts_on_cancel(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    mock_questions(monkeypatch, [None])
    result = CliRunner().invoke(cli, ["md"])
    assert result.exit_code != 0


def test_md_helper_functions(tmp_path):
    create_project(tmp_path)
    (tmp_path / "public").mkdir()
    (tmp_path / "node_modules").mkdir()
    (tmp_path / ".cache").mkdir()
    assert _get_content_folders(tmp_path, "public") == [". (root)", "posts"]
    assert _get_layouts(tmp_path) == ["page", "post"]
    assert _get_layouts(tmp_path / "posts") == []
    assert _titleize("my_first-post") == "My First Post"


def test_module_main_entrypoint():
    from sty.__main__ import main

    assert callable(main)


def test_main_invokes_cli(monkeypatch):
    import sty.cli as cli_mod

    called = {}
    monkeypatch.setattr(cli_mod, "cli", lambda: called.setdefault("ran", True))
    cli_mod.main()
    assert called["ran"]
