"""Utility helpers shared by the configuration resolver."""

from __future__ import annotations

import typing as typ
from pathlib import Path

from slide_pages._constants import GLOB_CHARACTERS
from slide_pages.errors import ConfigurationError
from slide_pages.utils import get_path, is_directory, is_within_directory, sanitize

if typ.TYPE_CHECKING:
    import collections.abc as cabc

PACKAGE_DIR = Path(__file__).resolve().parents[1]

MODULES: dict[str, dict[str, str]] = {
    "assets": {"url": "/assets"},
    "base": {"url": "/modules/reveal", "path": "~modules/reveal"},
    "bootstrap": {"url": "/modules/bootstrap", "path": "~modules/bootstrap"},
    "datatables": {"url": "/modules/datatables", "path": "~modules/datatables"},
    "datatables-bs": {
        "url": "/modules/datatables-bs",
        "path": "~modules/datatables-bs",
    },
    "font-awesome": {"url": "/modules/font-awesome", "path": "~modules/font-awesome"},
    "highlight": {"url": "/modules/highlight", "path": "~modules/highlight"},
    "jquery": {"url": "/modules/jquery", "path": "~modules/jquery"},
    "menu": {"url": "/modules/menu", "path": "~modules/menu"},
}

# Project file keys mapped onto ``Config`` field names.
FIELD_KEYS: dict[str, str] = {
    "project": "project",
    "git": "git",
    "host": "host",
    "port": "port",
    "open": "open",
    "watch": "watch",
    "build": "build",
    "print": "print",
    "printSize": "print_size",
    "browserLaunch": "browser_launch",
    "browserExecutable": "browser_executable",
    "config": "config_file",
}

PATH_LIST_KEYS: dict[str, str] = {
    "preprocessorPaths": "preprocessor_paths",
    "partialPaths": "partial_paths",
    "scriptPaths": "script_paths",
    "stylePaths": "style_paths",
    "themePaths": "theme_paths",
}


def get_directory(target_path: Path) -> Path:
    """Return the project directory implied by ``target_path``.

    Wildcard targets such as ``decks/2024-*/intro.md`` resolve to the path
    segments preceding the first glob metacharacter; plain paths resolve to
    themselves when they name a directory and to their parent otherwise.
    """
    parts = target_path.parts
    for index, part in enumerate(parts):
        if any(char in GLOB_CHARACTERS for char in part):
            return Path(*parts[:index])
    if is_directory(target_path):
        return target_path
    return target_path.parent


def resolve_targets(
    targets: cabc.Sequence[str],
    *,
    cwd: Path,
    package_dir: Path = PACKAGE_DIR,
) -> tuple[Path, Path]:
    """Resolve positional CLI arguments into ``(target_dir, target_path)``.

    Parameters
    ----------
    targets : Sequence[str]
        One target path, or a project root followed by a path inside it.
    cwd : Path
        Directory relative targets resolve against.
    package_dir : Path, optional
        Anchor for ``~``-prefixed targets.

    Returns
    -------
    tuple[Path, Path]
        The project directory and the absolute target path.

    Raises
    ------
    ConfigurationError
        If the argument count is not one or two, the project root is not a
        directory, or the target path escapes the project root.
    """
    match list(targets):
        case [target]:
            target_path = get_path(str(target), cwd, package_dir)
            return get_directory(target_path), target_path
        case [root, target]:
            target_dir = get_path(str(root), cwd, package_dir)
            if not is_directory(target_dir):
                msg = f"The target directory must be a directory: {target_dir}"
                raise ConfigurationError(msg)
            target_path = get_path(str(target), target_dir)
            if not is_within_directory(target_path, target_dir):
                msg = f"The target path must be within the target directory: {target}"
                raise ConfigurationError(msg)
            return target_dir, target_path
        case _:
            msg = (
                f"Expected one or two positional targets, got {len(targets)}: "
                "pass a path, or a project directory and a path inside it."
            )
            raise ConfigurationError(msg)


def resolve_modules(
    raw_modules: cabc.Mapping[str, typ.Any],
    *,
    target_dir: Path,
    assets_dir: Path,
    package_dir: Path = PACKAGE_DIR,
) -> dict[str, dict[str, typ.Any]]:
    """Normalize module entries into ``{"url": ..., "path": Path | None}`` dicts.

    The ``assets`` module is always bound to ``assets_dir``; other module
    paths resolve against the project directory with ``~`` marking the
    package directory.
    """
    modules: dict[str, dict[str, typ.Any]] = {}
    for name, payload in raw_modules.items():
        if not isinstance(payload, dict):
            continue
        url = sanitize(str(payload.get("url") or f"/modules/{name}"), prefix="/")
        raw_path = payload.get("path")
        path = get_path(str(raw_path), target_dir, package_dir) if raw_path else None
        modules[name] = {"url": url, "path": path}
    modules.setdefault("assets", {"url": "/assets", "path": None})
    modules["assets"]["path"] = assets_dir
    return modules


__all__ = [
    "FIELD_KEYS",
    "MODULES",
    "PACKAGE_DIR",
    "PATH_LIST_KEYS",
    "get_directory",
    "resolve_modules",
    "resolve_targets",
]
