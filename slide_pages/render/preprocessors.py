"""Content preprocessors selected by file-name globs under ``assetsDir``.

Transforms are plain callables ``(content, options) -> str`` registered with
a :class:`PreprocessorRegistry`. Projects opt in through ``preprocessorPaths``:
each glob match under the assets directory selects the transform registered
under the matched file's stem, in match order. Third-party packages can
register transforms through the ``slide_pages.preprocessors`` entry-point
group.

Examples
--------
>>> registry = PreprocessorRegistry(load_entry_points=False)
>>> _ = registry.register("shout", lambda content, options: content.upper())
>>> registry["shout"]("hi", {})
'HI'
"""

from __future__ import annotations

import collections.abc as cabc
import glob
import importlib.metadata
import logging
import re
import typing as typ
from pathlib import Path

from slide_pages._constants import GLOB_CHARACTERS, PREPROCESSOR_ENTRY_POINT_GROUP
from slide_pages.errors import PreprocessorLoadError
from slide_pages.utils import sanitize

if typ.TYPE_CHECKING:
    from slide_pages.config import Config

logger = logging.getLogger(__name__)

Preprocessor = cabc.Callable[[str, cabc.Mapping[str, typ.Any]], str]

_FENCE_PATTERN = re.compile(r"^\s*(```|~~~)")


def identity(content: str, options: cabc.Mapping[str, typ.Any]) -> str:  # noqa: ARG001
    return content


def split_headings(content: str, options: cabc.Mapping[str, typ.Any]) -> str:  # noqa: ARG001
    """Start a new slide at every heading after the first line.

    A heading containing ``#^`` starts a vertical slide instead; the marker
    is reduced to a plain ``#``. Lines inside fenced code blocks are left
    alone.

    Examples
    --------
    >>> print(split_headings("# One\\ntext\\n# Two\\n#^# Detail", {}))
    # One
    text
    <BLANKLINE>
    ---
    <BLANKLINE>
    # Two
    <BLANKLINE>
    ----
    <BLANKLINE>
    ## Detail
    """
    lines = content.split("\n")
    result: list[str] = []
    in_fence = False
    for index, line in enumerate(lines):
        if _FENCE_PATTERN.match(line):
            in_fence = not in_fence
        if index == 0 or in_fence or not line.startswith("#"):
            result.append(line)
            continue
        if "#^" in line:
            result.append("\n----\n\n" + line.replace("#^", "#", 1))
        else:
            result.append("\n---\n\n" + line)
    return "\n".join(result)


class PreprocessorRegistry(cabc.Mapping[str, Preprocessor]):
    """Named content transforms available to ``preprocessorPaths``."""

    def __init__(
        self,
        preprocessors: cabc.Mapping[str, Preprocessor] | None = None,
        *,
        load_entry_points: bool = True,
    ) -> None:
        self._preprocessors: dict[str, Preprocessor] = {"split_headings": split_headings}
        self._entry_points: dict[str, importlib.metadata.EntryPoint] = {}
        if load_entry_points:
            for entry_point in importlib.metadata.entry_points(
                group=PREPROCESSOR_ENTRY_POINT_GROUP
            ):
                self._entry_points[entry_point.name] = entry_point
        for name, func in (preprocessors or {}).items():
            self.register(name, func)

    def __getitem__(self, name: str) -> Preprocessor:
        if name in self._preprocessors:
            return self._preprocessors[name]
        entry_point = self._entry_points[name]
        try:
            loaded = entry_point.load()
        except Exception as exc:
            msg = f"Failed to load preprocessor '{name}' from {entry_point.value}: {exc}"
            raise PreprocessorLoadError(msg) from exc
        if not callable(loaded):
            msg = f"Preprocessor '{name}' from {entry_point.value} is not callable"
            raise PreprocessorLoadError(msg)
        self._preprocessors[name] = loaded
        return loaded

    def __contains__(self, name: object) -> bool:
        return name in self._preprocessors or name in self._entry_points

    def __iter__(self) -> cabc.Iterator[str]:
        return iter({**self._entry_points, **self._preprocessors})

    def __len__(self) -> int:
        return len({**self._entry_points, **self._preprocessors})

    def register(self, name: str, func: Preprocessor) -> Preprocessor:
        """Register ``func`` under ``name``, replacing any previous transform."""
        if not callable(func):
            msg = f"Preprocessor '{name}' must be callable"
            raise PreprocessorLoadError(msg)
        self._preprocessors[name] = func
        self._entry_points.pop(name, None)
        return func

    def resolve(self, config: Config) -> list[Preprocessor]:
        """Return the transforms selected by ``config.preprocessor_paths``.

        Each glob is evaluated under ``config.assets_dir``; every matched
        file must name a registered transform by its stem. A pattern without
        glob characters that matches no file may name a transform directly.
        Returns ``[identity]`` when nothing is selected.

        Raises
        ------
        PreprocessorLoadError
            If a matched file names no registered transform, or a transform
            cannot be loaded.
        """
        selected: list[Preprocessor] = []
        for pattern in config.preprocessor_paths:
            cleaned = sanitize(pattern)
            matches = sorted(glob.glob(cleaned, root_dir=config.assets_dir, recursive=True))
            if not matches:
                if cleaned in self and not any(c in GLOB_CHARACTERS for c in cleaned):
                    selected.append(self[cleaned])
                else:
                    logger.debug("preprocessor pattern %r matched nothing", pattern)
                continue
            for match in matches:
                name = Path(match).stem
                if name not in self:
                    msg = (
                        f"No preprocessor registered for '{match}'; "
                        f"expected a transform named '{name}'"
                    )
                    raise PreprocessorLoadError(msg)
                selected.append(self[name])
        return selected or [identity]


def apply_preprocessors(
    preprocessors: cabc.Sequence[Preprocessor],
    content: str,
    options: cabc.Mapping[str, typ.Any],
) -> str:
    """Thread ``content`` through ``preprocessors`` in order.

    Raises
    ------
    PreprocessorLoadError
        If a transform returns something other than a string.
    """
    for preprocessor in preprocessors:
        content = preprocessor(content, options)
        if not isinstance(content, str):
            name = getattr(preprocessor, "__name__", repr(preprocessor))
            msg = f"Preprocessor {name} returned {type(content).__name__}, expected str"
            raise PreprocessorLoadError(msg)
    return content


__all__ = [
    "Preprocessor",
    "PreprocessorRegistry",
    "apply_preprocessors",
    "identity",
    "split_headings",
]
