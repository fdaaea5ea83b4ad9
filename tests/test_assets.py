"""Tests for URL helpers, front-matter parsing, and page option strings."""

from __future__ import annotations

import json
import typing as typ

import pytest

from slide_pages.config import ConfigResolver, ModuleConfig
from slide_pages.render.assets import (
    get_assets,
    get_highlight_theme,
    get_plugins_options,
    get_scripts,
    get_separators_options,
    get_settings_options,
    get_theme,
    is_absolute_url,
    parse_document,
    strip_base_url,
    url_directory,
)

if typ.TYPE_CHECKING:
    from pathlib import Path


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://example.com/a.css", True),
        ("//cdn.example.com/a.js", True),
        ("./a.css", False),
        ("a.css", False),
        ("/assets/a.css", False),
        ("://missing-scheme", False),
        ("http://a\nb", False),
    ],
)
def test_is_absolute_url(url: str, expected: bool) -> None:
    assert is_absolute_url(url) is expected, f"is_absolute_url({url!r})"


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("/decks/intro.md", "/decks"),
        ("/decks/", "/decks"),
        ("/decks", "/decks"),
        ("/intro.md", "/"),
        ("/", "/"),
    ],
)
def test_url_directory(url: str, expected: str) -> None:
    assert url_directory(url) == expected


def test_strip_base_url_only_strips_whole_segments() -> None:
    assert strip_base_url("/talks/a.md", "/talks") == "a.md"
    assert strip_base_url("/talksmore/a.md", "/talks") == "talksmore/a.md"
    assert strip_base_url("/a.md", "/") == "a.md"


def test_parse_document_reads_front_matter() -> None:
    document = parse_document("\ufeff---\ntitle: Intro\ntheme: white\n---\n# Hi\n")

    assert document.config == {"title": "Intro", "theme": "white"}
    assert document.content == "# Hi\n"


def test_parse_document_accepts_yaml_end_marker() -> None:
    document = parse_document("---\ntitle: Intro\n...\nbody\n")

    assert document.config == {"title": "Intro"}
    assert document.content == "body\n"


@pytest.mark.parametrize(
    "raw",
    [
        "# No front matter\n---\nsecond slide\n",
        "---\ntitle: never closed\n",
        "",
    ],
)
def test_parse_document_without_front_matter(raw: str) -> None:
    document = parse_document(raw)

    assert document.config == {}
    assert document.content == raw, "content is returned untouched"


def test_parse_document_ignores_non_mapping_front_matter() -> None:
    document = parse_document("---\n- a\n- b\n---\nbody\n")

    assert document.config == {}
    assert document.content == "body\n"


def test_theme_and_highlight_urls_are_page_relative(project: Path) -> None:
    config = ConfigResolver({}, [str(project)]).resolve()

    assert get_theme(config, "/intro.md").url == "modules/reveal/dist/theme/black.css"
    assert get_theme(config, "/decks/deep.md").url == (
        "../modules/reveal/dist/theme/black.css"
    ), "theme URLs are relative to the document directory"
    assert get_highlight_theme(config, "/intro.md").url == "modules/highlight/monokai.css"


def test_unknown_theme_falls_back_to_empty_url(project: Path) -> None:
    config = ConfigResolver({}, [str(project)]).resolve({"theme": "missing"})

    assert get_theme(config, "/intro.md").url == ""


def test_absolute_theme_passes_through(project: Path) -> None:
    theme = "https://cdn.example.com/theme.css"
    config = ConfigResolver({}, [str(project)]).resolve({"theme": theme})

    assert get_theme(config).url == theme


def test_scripts_combine_project_and_document_patterns(project: Path) -> None:
    scripts = project / "assets" / "js"
    scripts.mkdir(parents=True)
    (scripts / "a.js").write_text("", encoding="utf-8")
    (scripts / "b.js").write_text("", encoding="utf-8")
    resolver = ConfigResolver({"scriptPaths": ["js/*.js"]}, [str(project)])

    config = resolver.resolve({"scripts": ["https://cdn.example.com/c.js"]})
    urls = [asset.url for asset in get_scripts(config, "/decks/deep.md")]

    assert urls == [
        "../assets/js/a.js",
        "../assets/js/b.js",
        "https://cdn.example.com/c.js",
    ], urls


def test_get_assets_skips_missing_module_directory(tmp_path: Path) -> None:
    module = ModuleConfig(url="/assets", path=tmp_path / "missing")

    assert get_assets(module, ["*.css"]) == []


def test_plugins_and_separators_options(project: Path) -> None:
    config = ConfigResolver({}, [str(project)]).resolve()

    assert get_plugins_options(config) == (
        "RevealMarkdown,RevealHighlight,RevealNotes,RevealMenu"
    )
    assert get_separators_options(config) == (
        'data-separator="^\\r?\\n---\\r?\\n$" '
        'data-separator-vertical="^\\r?\\n----\\r?\\n$" '
        'data-separator-notes="^note:"'
    ), "control characters are escaped into attribute-safe text"


def test_settings_fill_menu_themes(project: Path) -> None:
    config = ConfigResolver({}, [str(project)]).resolve()

    settings = json.loads(get_settings_options(config, "/intro.md"))

    assert settings["hash"] is True
    assert settings["menu"]["themes"] == [
        {"name": "Black", "theme": "modules/reveal/dist/theme/black.css"},
        {"name": "White", "theme": "modules/reveal/dist/theme/white.css"},
    ]
    assert "themes" not in config.presentation["settings"]["menu"], (
        "filling the menu themes must not mutate the configuration"
    )


def test_settings_keep_explicit_menu_themes(project: Path) -> None:
    themes = [{"name": "Mine", "theme": "mine.css"}]
    resolver = ConfigResolver({}, [str(project)])
    config = resolver.resolve({"settings": {"menu": {"themes": themes}}})

    settings = json.loads(get_settings_options(config))

    assert settings["menu"]["themes"] == themes
