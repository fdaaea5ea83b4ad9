"""Path, URL, and mapping helpers shared across the presentation pipeline.

The resolver, renderer, server, and builder all lean on the same handful of
primitives: URL sanitization that defeats directory traversal, memoized
file-system probes, glob-driven document discovery, and the layered
configuration merge. Keeping them here guarantees that the live server and
the static build compute identical URLs for the same document.

Examples
--------
>>> from slide_pages.utils import merge_objects, sanitize, to_title_case
>>> sanitize("/decks/../intro.md?x=1", prefix="/")
'/decks//intro.md'
>>> merge_objects({"a": {"x": 1}}, {"a": {"y": 2}, "b": [1]})
{'a': {'x': 1, 'y': 2}, 'b': [1]}
>>> to_title_case("getting_started.md")
'Getting Started'
"""

from __future__ import annotations

import collections.abc as cabc
import functools
import glob
import json
import os
import posixpath
import re
import typing as typ
from pathlib import Path

_TRAVERSAL_PATTERN = re.compile(r"\.\.")
_QUERY_PATTERN = re.compile(r"\?.*", re.DOTALL)
_SEPARATOR_PATTERN = re.compile(r"[_-]+")
_WORD_START_PATTERN = re.compile(r"\b\w")


def sanitize(
    url: str,
    *,
    prefix: str = "",
    suffix: str = "",
    leading: bool = False,
    trailing: bool = False,
) -> str:
    """Strip traversal segments and queries, then normalize the separators.

    Parameters
    ----------
    url : str
        URL or relative path to clean.
    prefix : str, optional
        Text prepended after leading separators are removed.
    suffix : str, optional
        Text appended after trailing separators are removed.
    leading : bool, optional
        Prepend a single ``/`` when no ``prefix`` is given.
    trailing : bool, optional
        Append a single ``/`` when no ``suffix`` is given.

    Returns
    -------
    str
        The sanitized value. Applying the same options twice is a no-op.
    """
    cleaned = _QUERY_PATTERN.sub("", _TRAVERSAL_PATTERN.sub("", url)).strip("/")
    head = prefix or ("/" if leading else "")
    tail = suffix or ("/" if trailing else "")
    if not cleaned and head.endswith("/") and tail.startswith("/"):
        tail = tail[1:]
    return f"{head}{cleaned}{tail}"


def is_directory(target_path: str | os.PathLike[str]) -> bool:
    """Return whether ``target_path`` is an existing directory (memoized)."""
    return _is_directory(os.path.abspath(target_path))


def is_file(target_path: str | os.PathLike[str]) -> bool:
    """Return whether ``target_path`` is an existing regular file (memoized)."""
    return _is_file(os.path.abspath(target_path))


@functools.cache
def _is_directory(target_path: str) -> bool:
    return os.path.isdir(target_path)


@functools.cache
def _is_file(target_path: str) -> bool:
    return os.path.isfile(target_path)


def clear_probe_cache() -> None:
    """Forget every memoized directory and file probe."""
    _is_directory.cache_clear()
    _is_file.cache_clear()


def is_within_directory(
    target_path: str | os.PathLike[str], base_path: str | os.PathLike[str] | None = None
) -> bool:
    """Return whether ``target_path`` resolves inside ``base_path`` (or the cwd)."""
    base = os.path.normpath(os.path.abspath(base_path or os.getcwd()))
    target = os.path.normpath(os.path.join(base, target_path))
    try:
        return os.path.commonpath([base, target]) == base
    except ValueError:  # pragma: no cover - different drives on Windows
        return False


def get_path(
    target_path: str,
    base_path: str | os.PathLike[str] | None = None,
    package_path: str | os.PathLike[str] | None = None,
) -> Path:
    """Return the absolute path of ``target_path``.

    A leading ``~`` marks a path relative to ``package_path`` (falling back to
    ``base_path`` and then the cwd); every other path resolves against
    ``base_path`` or the cwd.
    """
    if target_path.startswith("~"):
        anchor = package_path or base_path or os.getcwd()
        relative = target_path[1:].lstrip("/\\")
        return Path(os.path.abspath(os.path.join(anchor, relative)))
    return Path(os.path.abspath(os.path.join(base_path or os.getcwd(), target_path)))


def get_readable_path(file_path: str | os.PathLike[str]) -> str:
    """Return a short cwd-relative rendering of ``file_path`` for log lines."""
    try:
        relative = Path(os.path.relpath(file_path, Path.cwd())).as_posix()
    except ValueError:  # pragma: no cover - different drives on Windows
        return Path(file_path).as_posix()
    segments = relative.split("/")
    if len(segments) > 4:
        return "/".join(segments[:2]) + "..." + "/".join(segments[-2:])
    return relative


def load_json(file_path: str | os.PathLike[str]) -> dict[str, typ.Any]:
    """Load a JSON object from disk, degrading to ``{}`` when missing or invalid."""
    try:
        loaded = json.loads(Path(file_path).read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return loaded if isinstance(loaded, dict) else {}


def make_directory(target_path: str | os.PathLike[str]) -> Path:
    """Create the directory holding ``target_path`` (or the directory itself).

    Paths with a suffix are treated as files, so their parent is created.
    """
    target = Path(target_path)
    directory = target.parent if target.suffix else target
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def merge_objects(*layers: cabc.Mapping[str, typ.Any]) -> dict[str, typ.Any]:
    """Merge configuration layers, the first layer to define a key winning.

    Nested mappings merge field by field; sequences and scalars are atomic, so
    a list in a higher-precedence layer fully replaces a lower one. Values
    are copied, leaving every input layer untouched.
    """
    merged: dict[str, typ.Any] = {}
    for layer in layers:
        _apply_defaults(merged, layer)
    return merged


def _apply_defaults(target: dict[str, typ.Any], source: cabc.Mapping[str, typ.Any]) -> None:
    """Copy keys of ``source`` missing from ``target``, recursing into mappings."""
    for key, value in source.items():
        if key not in target:
            target[key] = _clone(value)
            continue
        match target[key], value:
            case dict() as current, cabc.Mapping():
                _apply_defaults(current, value)
            case _:
                continue


def _clone(value: typ.Any) -> typ.Any:
    match value:
        case cabc.Mapping():
            return {key: _clone(item) for key, item in value.items()}
        case list() | tuple():
            return [_clone(item) for item in value]
        case _:
            return value


def search_files(
    filter_: str = "",
    *,
    cwd: str | os.PathLike[str] | None = None,
    exts: cabc.Sequence[str] = (),
    resolve: bool = False,
) -> list[str]:
    """Find files under ``cwd`` whose path matches ``filter_``.

    Parameters
    ----------
    filter_ : str, optional
        Glob pattern when it contains ``*``; otherwise a substring matched
        against file and directory names.
    cwd : path-like, optional
        Directory to search in; defaults to the current working directory.
    exts : Sequence[str], optional
        Accepted suffixes such as ``".md"``; an empty sequence accepts any.
    resolve : bool, optional
        Return absolute POSIX paths instead of ``cwd``-relative ones.

    Returns
    -------
    list[str]
        Sorted, de-duplicated matches. Directories and files without an
        extension are never returned.
    """
    root = Path(cwd or Path.cwd())
    if "*" in filter_:
        patterns = [filter_]
    else:
        patterns = [f"**/*{filter_}*", f"**/*{filter_}*/**"]
    matches: set[str] = set()
    for pattern in patterns:
        for match in glob.glob(pattern, root_dir=root, recursive=True):
            if (root / match).is_dir():
                continue
            matches.add(Path(match).as_posix())

    files: list[str] = []
    for match in sorted(matches):
        if not posixpath.splitext(match)[1]:
            continue
        if exts and not any(match.endswith(ext) for ext in exts):
            continue
        files.append((root / match).as_posix() if resolve else match)
    return files


def to_array(value: typ.Any) -> list[typ.Any]:
    """Coerce a comma-separated string, sequence, scalar, or ``None`` to a list."""
    match value:
        case str():
            return [item.strip() for item in value.split(",")]
        case list() | tuple():
            return list(value)
        case None:
            return []
        case _:
            return [value]


def to_title_case(value: str) -> str:
    """Turn a file name such as ``my_first-deck.md`` into ``My First Deck``."""
    extension = posixpath.splitext(value)[1]
    if extension:
        value = value.replace(extension, "", 1)
    spaced = _SEPARATOR_PATTERN.sub(" ", value)
    return _WORD_START_PATTERN.sub(lambda match: match.group(0).upper(), spaced).strip()


__all__ = [
    "clear_probe_cache",
    "get_path",
    "get_readable_path",
    "is_directory",
    "is_file",
    "is_within_directory",
    "load_json",
    "make_directory",
    "merge_objects",
    "sanitize",
    "search_files",
    "to_array",
    "to_title_case",
]
