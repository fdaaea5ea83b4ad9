"""Tests for rewriting local references in document content."""

from __future__ import annotations

from pathlib import Path

import pytest

from slide_pages.config import ModuleConfig
from slide_pages.render.hyperlinks import (
    LinkContext,
    resolve_hyperlink,
    rewrite_attribute_links,
    rewrite_hyperlinks,
    rewrite_markdown_links,
)

ROOT = Path("/site")


def _context(url: str = "/decks/intro.md", base_url: str = "/") -> LinkContext:
    relative = url.removeprefix(base_url.rstrip("/")).lstrip("/")
    return LinkContext(
        url=url,
        document_path=ROOT / relative,
        root_dir=ROOT,
        base_url=base_url,
        assets=ModuleConfig(url="/assets", path=ROOT / "assets"),
    )


@pytest.mark.parametrize(
    "target",
    [
        "#section",
        "https://example.com/a.png",
        "//cdn.example.com/a.png",
        "mailto:someone@example.com",
        "data:image/png;base64,AAAA",
    ],
)
def test_external_targets_are_untouched(target: str) -> None:
    rewritten, hyperlink = resolve_hyperlink(target, _context())

    assert rewritten == target
    assert hyperlink is None, f"{target!r} must not be collected"


def test_asset_prefix_is_rewritten_without_collecting() -> None:
    rewritten, hyperlink = resolve_hyperlink("@/img/logo.png", _context())

    assert rewritten == "../assets/img/logo.png"
    assert hyperlink is None


def test_relative_target_keeps_query_and_fragment() -> None:
    rewritten, hyperlink = resolve_hyperlink("./fig.png?v=2#top", _context())

    assert rewritten == "fig.png?v=2#top"
    assert hyperlink is not None
    assert hyperlink.path == ROOT / "decks" / "fig.png"


def test_parent_relative_target() -> None:
    rewritten, hyperlink = resolve_hyperlink("../shared/a%20b.png", _context())

    assert rewritten == "../shared/a%20b.png"
    assert hyperlink is not None
    assert hyperlink.path == ROOT / "shared" / "a b.png", "paths on disk are unquoted"


def test_root_relative_target_strips_base_url() -> None:
    context = _context("/talks/decks/intro.md", base_url="/talks")

    rewritten, hyperlink = resolve_hyperlink("/talks/img/a.png", context)

    assert rewritten == "/talks/img/a.png", "root-relative targets stay as written"
    assert hyperlink is not None
    assert hyperlink.path == ROOT / "img" / "a.png"


def test_markdown_stage_rewrites_links_and_images() -> None:
    content = "![chart](./chart.svg) and [notes](notes.md \"Notes\")"

    rewritten, hyperlinks = rewrite_markdown_links(content, _context())

    assert rewritten == "![chart](chart.svg) and [notes](notes.md \"Notes\")"
    assert [link.path for link in hyperlinks] == [
        ROOT / "decks" / "chart.svg",
        ROOT / "decks" / "notes.md",
    ]


def test_attribute_stage_rewrites_backgrounds() -> None:
    content = '<!-- .slide: data-background-image="./bg.jpg" -->\n<a href="#x">x</a>'

    rewritten, hyperlinks = rewrite_attribute_links(content, _context())

    assert 'data-background-image="bg.jpg"' in rewritten
    assert 'href="#x"' in rewritten
    assert [link.path for link in hyperlinks] == [ROOT / "decks" / "bg.jpg"]


def test_hyperlinks_are_deduplicated_by_path() -> None:
    content = '![a](fig.png) ![b](./fig.png) <img href="fig.png">'

    _, hyperlinks = rewrite_hyperlinks(content, _context())

    assert len(hyperlinks) == 1, hyperlinks
    assert hyperlinks[0].path == ROOT / "decks" / "fig.png"
