"""Resolve the layered configuration that drives every presentation render.

This subpackage turns the positional CLI targets, explicitly passed flags,
the project's ``config.json``, per-document YAML front matter, and the
built-in ``defaults.json`` into a frozen :class:`Config`. Layers merge with
precedence CLI > front matter > project file > defaults; nested mappings
merge field by field while lists always replace. The primary entry point is
:class:`ConfigResolver`, which memoizes one snapshot per front-matter variant.

Examples
--------
>>> from pathlib import Path
>>> from slide_pages.config import ConfigResolver
>>> resolver = ConfigResolver({}, ["decks"], cwd=Path.cwd())  # doctest: +SKIP
>>> resolver.resolve().base_url  # doctest: +SKIP
'/'
"""

from .helpers import MODULES, get_directory, resolve_targets
from .loader import ConfigResolver
from .models import Config, ConfigSources, ModuleConfig

__all__ = [
    "MODULES",
    "Config",
    "ConfigResolver",
    "ConfigSources",
    "ModuleConfig",
    "get_directory",
    "resolve_targets",
]
