"""Tests for the ``slides`` command-line entrypoint.

The commands are invoked as plain functions so no argument parsing or
process exit handling is involved; the server and browser are replaced with
fakes for serve mode.
"""

from __future__ import annotations

import typing as typ
from pathlib import Path

import pytest

from slide_pages import cli
from slide_pages.config import ConfigResolver

if typ.TYPE_CHECKING:
    from slide_pages.render import RenderEngine


def _discover(*targets: str) -> tuple[str, list[str]]:
    return cli.discover_documents(ConfigResolver({}, targets).resolve())


def test_discover_directory_target(project: Path) -> None:
    primary, urls = _discover(str(project))

    assert primary == "/"
    assert urls == ["/decks/deep.md", "/intro.md"]


def test_discover_nested_directory(project: Path) -> None:
    primary, urls = _discover(str(project), "decks")

    assert primary == "/decks/"
    assert urls == ["/decks/deep.md"]


def test_discover_file_target(project: Path) -> None:
    assert _discover(str(project / "intro.md")) == ("/intro.md", ["/intro.md"])


def test_discover_wildcard_target(project: Path) -> None:
    assert _discover(str(project / "*.md")) == ("/intro.md", ["/intro.md"])


def test_discover_skips_build_output(project: Path) -> None:
    stale = project / "_site" / "copied.md"
    stale.parent.mkdir()
    stale.write_text("# Old\n", encoding="utf-8")

    _, urls = _discover(str(project))

    assert "/_site/copied.md" not in urls


def test_discover_prefixes_base_url(project: Path) -> None:
    (project / "config.json").write_text('{"baseUrl": "/talks"}', encoding="utf-8")

    primary, urls = _discover(str(project))

    assert primary == "/talks/"
    assert urls == ["/talks/decks/deep.md", "/talks/intro.md"]


def test_run_without_documents_exits(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.run(str(tmp_path))

    assert excinfo.value.code == 1
    assert "No presentations found" in caplog.text


def test_run_build_reports_written_files(
    project: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(project)

    cli.run(".", build=True)

    out = capsys.readouterr().out
    assert "slides 0.4.0 [build]" in out
    assert "_site/intro.html" in out
    assert "_site/index.html" in out
    assert (project / "_site" / "decks" / "deep.html").is_file()


class FakeServer:
    """Record how the CLI drives the preview server."""

    instances: typ.ClassVar[list[FakeServer]] = []

    def __init__(self, engine: RenderEngine, **options: typ.Any) -> None:
        self.engine = engine
        self.options = options
        self.url = "http://localhost:8000"
        self.events: list[str] = []
        FakeServer.instances.append(self)

    async def start(self) -> None:
        self.events.append("start")

    async def stop(self) -> None:
        self.events.append("stop")

    async def wait_closed(self) -> None:
        self.events.append("wait_closed")


@pytest.fixture
def fake_server(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    """Swap in :class:`FakeServer` and capture URLs opened in the browser."""
    FakeServer.instances = []
    opened: list[str] = []
    monkeypatch.setattr(cli, "PresentationServer", FakeServer)
    monkeypatch.setattr(cli.webbrowser, "open", opened.append)
    return opened


def test_run_serves_and_opens_browser(project: Path, fake_server: list[str]) -> None:
    cli.run(str(project), watch=True)

    assert fake_server == ["http://localhost:8000/"]
    (server,) = FakeServer.instances
    assert server.events == ["start", "wait_closed"]
    assert server.engine.config.watch is True


def test_run_no_open(project: Path, fake_server: list[str]) -> None:
    cli.run(str(project / "intro.md"), open_=False)

    assert fake_server == []


def test_run_print_uses_a_temporary_server(
    project: Path, monkeypatch: pytest.MonkeyPatch, fake_server: list[str]
) -> None:
    printed: list[tuple[list[str], str | None]] = []

    async def fake_print_all(
        self: cli.Printer, urls: list[str], slide: str | None = None
    ) -> list[Path]:
        printed.append((list(urls), slide))
        return []

    monkeypatch.setattr(cli.Printer, "print_all", fake_print_all)

    cli.run(str(project / "intro.md"), print_=True, slide="2")

    assert printed == [(["/intro.md"], "2")]
    (server,) = FakeServer.instances
    assert server.events == ["start", "stop"]
    assert server.options == {"watch": False}
    assert fake_server == [], "printing never opens a browser"


def test_vendor_command_reports_modules(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def fake_vendor(
        destination: Path | None, *, modules: typ.Any, force: bool
    ) -> dict[str, list[Path]]:
        return {"base": [Path("a"), Path("b")], "menu": []}

    monkeypatch.setattr(cli, "vendor_modules", fake_vendor)

    cli.vendor("base", "menu")

    out = capsys.readouterr().out
    assert "wrote reveal.js 5.1.0 (2 files)" in out
    assert "kept reveal.js-menu (already present)" in out


def test_vendor_command_exits_on_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_vendor(*args: typ.Any, **kwargs: typ.Any) -> dict[str, list[Path]]:
        msg = "Unknown module(s): nope"
        raise cli.SlidePagesError(msg)

    monkeypatch.setattr(cli, "vendor_modules", fake_vendor)

    with pytest.raises(SystemExit) as excinfo:
        cli.vendor("nope")

    assert excinfo.value.code == 1
