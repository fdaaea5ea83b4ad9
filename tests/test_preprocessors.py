"""Tests for content preprocessors and their registry."""

from __future__ import annotations

import typing as typ

import pytest

from slide_pages.config import ConfigResolver
from slide_pages.errors import PreprocessorLoadError
from slide_pages.render.preprocessors import (
    PreprocessorRegistry,
    apply_preprocessors,
    identity,
    split_headings,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from slide_pages.config import Config


def _shout(content: str, options: cabc.Mapping[str, typ.Any]) -> str:
    return content.upper()


def test_split_headings_starts_slides() -> None:
    result = split_headings("# One\ntext\n## Two\n#^ Three", {})

    assert result == "# One\ntext\n\n---\n\n## Two\n\n----\n\n# Three"


def test_split_headings_skips_fenced_code() -> None:
    content = "# One\n```bash\n# a shell comment\n```\n# Two"

    result = split_headings(content, {})

    assert "\n---\n\n# a shell comment" not in result, "code comments are not headings"
    assert result.endswith("\n---\n\n# Two")


def test_registry_lists_builtins_and_registrations() -> None:
    registry = PreprocessorRegistry(load_entry_points=False)
    registry.register("shout", _shout)

    assert "split_headings" in registry
    assert "shout" in registry
    assert sorted(registry) == ["shout", "split_headings"]
    assert len(registry) == 2


def test_register_rejects_non_callables() -> None:
    registry = PreprocessorRegistry(load_entry_points=False)

    with pytest.raises(PreprocessorLoadError, match="must be callable"):
        registry.register("broken", "not a function")  # type: ignore[arg-type]


def _config(project: Path, *patterns: str) -> Config:
    return ConfigResolver({"preprocessorPaths": list(patterns)}, [str(project)]).resolve()


def test_resolve_selects_transforms_by_file_stem(project: Path) -> None:
    directory = project / "assets" / "preprocessors"
    directory.mkdir(parents=True)
    (directory / "shout.py").write_text("# marker\n", encoding="utf-8")
    registry = PreprocessorRegistry({"shout": _shout}, load_entry_points=False)

    selected = registry.resolve(_config(project, "preprocessors/*.py"))

    assert selected == [_shout]


def test_resolve_rejects_unregistered_stem(project: Path) -> None:
    directory = project / "assets" / "preprocessors"
    directory.mkdir(parents=True)
    (directory / "mystery.py").write_text("", encoding="utf-8")
    registry = PreprocessorRegistry(load_entry_points=False)

    with pytest.raises(PreprocessorLoadError, match="mystery"):
        registry.resolve(_config(project, "preprocessors/*.py"))


def test_resolve_accepts_plain_names(project: Path) -> None:
    registry = PreprocessorRegistry(load_entry_points=False)

    assert registry.resolve(_config(project, "split_headings")) == [split_headings]
    assert registry.resolve(_config(project)) == [identity], (
        "no selection falls back to the identity transform"
    )


def test_apply_preprocessors_threads_content() -> None:
    result = apply_preprocessors([split_headings, _shout], "# a\n# b", {})

    assert result == "# A\n\n---\n\n# B"


def test_apply_preprocessors_requires_strings() -> None:
    def _broken(content: str, options: cabc.Mapping[str, typ.Any]) -> str:
        return None  # type: ignore[return-value]

    with pytest.raises(PreprocessorLoadError, match="expected str"):
        apply_preprocessors([_broken], "x", {})
