"""Resolve CLI flags, project files, and front matter into a ``Config``."""

from __future__ import annotations

import collections.abc as cabc
import json
import logging
import typing as typ
from pathlib import Path

from slide_pages._constants import DEFAULT_CONFIG_FILE, DEFAULTS_FILE, FAVICON_NAME
from slide_pages.utils import get_path, is_file, load_json, merge_objects, sanitize, to_array

from .helpers import (
    FIELD_KEYS,
    MODULES,
    PACKAGE_DIR,
    PATH_LIST_KEYS,
    resolve_modules,
    resolve_targets,
)
from .models import Config, ConfigSources, ModuleConfig

logger = logging.getLogger(__name__)


class ConfigResolver:
    """Build and memoize configuration snapshots for one CLI invocation.

    The resolver owns its cache: every distinct front-matter mapping passed
    to :meth:`resolve` produces one ``Config`` that is reused for later calls
    with an equal mapping, so rendering a document repeatedly does not
    re-read the project file. :meth:`clear` drops the cache, which the live
    server does whenever watched files change.

    Examples
    --------
    >>> from pathlib import Path
    >>> resolver = ConfigResolver({"watch": True}, ["decks"], cwd=Path("/tmp"))
    >>> config = resolver.resolve()  # doctest: +SKIP
    >>> config.watch  # doctest: +SKIP
    True
    """

    def __init__(
        self,
        cli: cabc.Mapping[str, typ.Any] | None = None,
        targets: cabc.Sequence[str] = (".",),
        *,
        cwd: Path | None = None,
        package_dir: Path = PACKAGE_DIR,
    ) -> None:
        """Initialize the resolver.

        Parameters
        ----------
        cli : Mapping[str, Any], optional
            Flags explicitly passed on the command line, keyed like the
            project file (``build``, ``watch``, ``config``, ...).
        targets : Sequence[str], optional
            Positional CLI arguments: a target path, or a project directory
            followed by a path inside it.
        cwd : Path, optional
            Directory relative targets resolve against; defaults to the cwd.
        package_dir : Path, optional
            Anchor for ``~`` paths and location of the built-in defaults.
        """
        self.cli: dict[str, typ.Any] = dict(cli or {})
        self.targets = tuple(targets)
        self.cwd = cwd or Path.cwd()
        self.package_dir = package_dir
        self._cache: dict[str, Config] = {}

    def __call__(self, front_matter: cabc.Mapping[str, typ.Any] | None = None) -> Config:
        return self.resolve(front_matter)

    def resolve(self, front_matter: cabc.Mapping[str, typ.Any] | None = None) -> Config:
        """Return the configuration scoped to ``front_matter`` (memoized).

        Raises
        ------
        ConfigurationError
            If the positional targets cannot be resolved.
        """
        key = _cache_key(front_matter)
        config = self._cache.get(key)
        if config is None:
            config = self._build(front_matter or {})
            self._cache[key] = config
        return config

    def clear(self) -> None:
        """Forget every memoized configuration snapshot."""
        self._cache.clear()

    def _build(self, front_matter: cabc.Mapping[str, typ.Any]) -> Config:
        target_dir, target_path = resolve_targets(
            self.targets, cwd=self.cwd, package_dir=self.package_dir
        )
        defaults = load_json(self.package_dir / DEFAULTS_FILE)
        config_name = str(
            self.cli.get("config") or defaults.get("config") or DEFAULT_CONFIG_FILE
        )
        process = load_json(target_dir / config_name)
        extra = {"presentation": dict(front_matter)}
        merged = merge_objects(self.cli, extra, process, defaults, {"modules": MODULES})

        assets_dir = get_path(str(merged.get("assetsDir", "assets")), target_dir)
        modules = resolve_modules(
            merged.get("modules") or {},
            target_dir=target_dir,
            assets_dir=assets_dir,
            package_dir=self.package_dir,
        )
        scalars = {
            field: merged[key] for key, field in FIELD_KEYS.items() if key in merged
        }
        scalars["port"] = int(scalars.get("port", 8000))
        scalars["config_file"] = config_name
        path_lists = {
            field: [str(item) for item in to_array(merged.get(key)) if item]
            for key, field in PATH_LIST_KEYS.items()
        }
        config = Config(
            package_dir=self.package_dir,
            target_dir=target_dir,
            target_path=target_path,
            root_dir=get_path(str(merged.get("rootDir", ".")), target_dir),
            out_dir=get_path(str(merged.get("outDir", "_site")), target_dir),
            assets_dir=assets_dir,
            template_path=get_path(
                str(merged.get("templatePath", "~templates/document.jinja")),
                target_dir,
                self.package_dir,
            ),
            base_url=sanitize(str(merged.get("baseUrl", "/")), prefix="/"),
            extensions=_normalize_extensions(merged.get("extensions")),
            modules={
                name: ModuleConfig(url=payload["url"], path=payload["path"])
                for name, payload in modules.items()
            },
            presentation=dict(merged.get("presentation") or {}),
            sources=ConfigSources(
                cli=dict(self.cli),
                extra=extra,
                process=process,
                defaults=defaults,
            ),
            has_favicon=is_file(assets_dir / FAVICON_NAME),
            **scalars,
            **path_lists,
        )
        logger.debug(
            "resolved config for %s (root=%s, out=%s, front matter keys=%s)",
            target_path,
            config.root_dir,
            config.out_dir,
            sorted(front_matter),
        )
        return config


def _cache_key(front_matter: cabc.Mapping[str, typ.Any] | None) -> str:
    """Return a deep-equality key for a front-matter mapping."""
    if not front_matter:
        return ""
    return json.dumps(front_matter, sort_keys=True, default=str)


def _normalize_extensions(value: typ.Any) -> list[str]:
    extensions: list[str] = []
    for item in to_array(value):
        text = str(item).strip()
        if not text:
            continue
        extensions.append(text if text.startswith(".") else f".{text}")
    return extensions


__all__ = ["ConfigResolver"]
