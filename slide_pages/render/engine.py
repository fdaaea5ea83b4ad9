"""Jinja2 environment factory shared by document, collection, and error pages."""

from __future__ import annotations

import functools
import glob
import typing as typ
from pathlib import Path

from jinja2 import ChoiceLoader, DictLoader, Environment, FileSystemLoader, select_autoescape

from slide_pages._constants import PARTIAL_SUFFIX
from slide_pages.utils import sanitize

from .assets import relative_url, url_directory

if typ.TYPE_CHECKING:
    from slide_pages.config import Config

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"


def concat(*args: typ.Any, separator: str = " - ") -> str:
    """Join the truthy ``args`` with ``separator``.

    Examples
    --------
    >>> concat("Intro", "", "Slide Pages")
    'Intro - Slide Pages'
    """
    return separator.join(str(arg) for arg in args if arg)


def eq(left: typ.Any, right: typ.Any) -> bool:
    """Return whether ``left`` and ``right`` compare equal."""
    return left == right


def module_url(config: Config, directory: str, name: str) -> str:
    """Return the URL of module ``name`` relative to ``directory``."""
    return relative_url(config.get_module(name).url, directory)


def load_partials(config: Config) -> dict[str, str]:
    """Read the partial templates matched by ``partialPaths`` under ``assetsDir``.

    A matched file registers under its stem; a matched directory registers
    every ``*.jinja`` file it directly contains. Later matches override
    earlier ones with the same name.
    """
    partials: dict[str, str] = {}
    for pattern in config.partial_paths:
        matches = glob.glob(sanitize(pattern), root_dir=config.assets_dir, recursive=True)
        for match in sorted(matches):
            target = config.assets_dir / match
            if target.is_dir():
                for child in sorted(target.iterdir()):
                    if child.suffix == PARTIAL_SUFFIX and child.is_file():
                        partials[child.stem] = child.read_text(encoding="utf-8")
            elif target.is_file():
                partials[target.stem] = target.read_text(encoding="utf-8")
    return partials


def create_environment(
    config: Config, from_url: str = "/", *, include_partials: bool = True
) -> Environment:
    """Return a Jinja2 environment bound to ``config`` and the requesting URL.

    Parameters
    ----------
    config : Config
        Configuration snapshot supplying module URLs and partial globs.
    from_url : str, optional
        URL being rendered; ``module()`` lookups are relative to its
        directory.
    include_partials : bool, optional
        Register user partials; error pages pass ``False`` so a broken
        partial can never prevent them from rendering.

    Returns
    -------
    Environment
        Environment whose loaders search partials, the directory of the
        configured document template, then the bundled templates.
    """
    loaders = []
    if include_partials:
        loaders.append(DictLoader(load_partials(config)))
    loaders.append(FileSystemLoader(str(config.template_path.parent)))
    loaders.append(FileSystemLoader(str(TEMPLATES_DIR)))
    env = Environment(
        loader=ChoiceLoader(loaders),
        autoescape=select_autoescape(
            enabled_extensions=("html", "htm", "xml", "jinja"),
            default_for_string=False,
        ),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.globals.update(
        concat=concat,
        eq=eq,
        module=functools.partial(module_url, config, url_directory(from_url)),
    )
    return env


__all__ = [
    "TEMPLATES_DIR",
    "concat",
    "create_environment",
    "eq",
    "load_partials",
    "module_url",
]
