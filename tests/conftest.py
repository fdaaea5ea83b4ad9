"""Shared fixtures for slide_pages tests.

The ``project`` fixture writes a small presentation project into a temporary
directory: a ``config.json`` pointing the ``base`` and ``highlight`` modules
at local stand-in trees, a root deck with front matter and a linked figure,
and a nested deck under ``decks/``. Tests build engines over it with
``make_engine``, layering CLI flags as keyword arguments.
"""

from __future__ import annotations

import json
import typing as typ

import pytest

from slide_pages.config import ConfigResolver
from slide_pages.render import PreprocessorRegistry, RenderEngine
from slide_pages.utils import clear_probe_cache

if typ.TYPE_CHECKING:
    from pathlib import Path

PROJECT_CONFIG: dict[str, typ.Any] = {
    "project": "Demo Talks",
    "modules": {
        "base": {"url": "/modules/reveal", "path": "vendor/reveal"},
        "highlight": {"url": "/modules/highlight", "path": "vendor/highlight"},
    },
}

INTRO_DOCUMENT = """---
title: Welcome
author: Ada
---
# Hello

![figure](./fig.png)
"""

DEEP_DOCUMENT = "# Deep dive\n\nSome text.\n"


def write_project(root: Path, config: dict[str, typ.Any] | None = None) -> Path:
    """Write the sample presentation project under ``root`` and return it."""
    files: dict[str, str | bytes] = {
        "config.json": json.dumps(config if config is not None else PROJECT_CONFIG),
        "vendor/reveal/dist/theme/black.css": "/* black */\n",
        "vendor/reveal/dist/theme/white.css": "/* white */\n",
        "vendor/reveal/dist/reveal.js": "/* reveal */\n",
        "vendor/highlight/monokai.css": "/* monokai */\n",
        "intro.md": INTRO_DOCUMENT,
        "fig.png": b"\x89PNG fake image",
        "decks/deep.md": DEEP_DOCUMENT,
    }
    for relative, payload in files.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(payload, bytes):
            target.write_bytes(payload)
        else:
            target.write_text(payload, encoding="utf-8")
    return root


@pytest.fixture(autouse=True)
def _fresh_probe_cache() -> typ.Iterator[None]:
    """Keep memoized file-system probes from leaking between tests."""
    clear_probe_cache()
    yield
    clear_probe_cache()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Return the root of a freshly written sample project."""
    return write_project(tmp_path / "talks")


@pytest.fixture
def make_engine() -> typ.Callable[..., RenderEngine]:
    """Return a factory building engines over a project directory."""

    def _make(root: Path, *targets: str, **cli: typ.Any) -> RenderEngine:
        resolver = ConfigResolver(cli, [str(root), *targets])
        return RenderEngine(resolver, PreprocessorRegistry(load_entry_points=False))

    return _make
