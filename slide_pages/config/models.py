"""Typed dataclasses describing a resolved presentation configuration."""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path  # noqa: TC003 - used for runtime type metadata

from slide_pages.errors import ConfigurationError


@dc.dataclass(slots=True, frozen=True)
class ModuleConfig:
    """A named static-file root mounted under a URL prefix."""

    url: str
    path: Path | None = None


@dc.dataclass(slots=True, frozen=True)
class ConfigSources:
    """The four unmerged configuration layers, kept for auditing.

    Attributes
    ----------
    cli : dict[str, Any]
        Flags passed on the command line.
    extra : dict[str, Any]
        Document front matter wrapped as ``{"presentation": ...}``.
    process : dict[str, Any]
        Contents of the project configuration file.
    defaults : dict[str, Any]
        Built-in defaults shipped with the package.
    """

    cli: dict[str, typ.Any]
    extra: dict[str, typ.Any]
    process: dict[str, typ.Any]
    defaults: dict[str, typ.Any]


@dc.dataclass(slots=True, frozen=True)
class Config:
    """A fully resolved configuration snapshot consumed by every render.

    Attributes
    ----------
    package_dir : Path
        Installed package directory, the anchor for ``~`` paths.
    target_dir : Path
        Project root derived from the positional CLI targets.
    target_path : Path
        File, directory, or wildcard the user asked for.
    root_dir : Path
        Directory holding the presentation documents.
    out_dir : Path
        Destination of static builds and printed artifacts.
    assets_dir : Path
        Directory of user assets, partials, and preprocessors.
    template_path : Path
        Outer document template.
    base_url : str
        URL prefix for documents and collections, with a leading slash.
    extensions : list[str]
        Accepted document suffixes such as ``".md"``.
    modules : dict[str, ModuleConfig]
        Static module roots keyed by name.
    presentation : dict[str, Any]
        Per-document front-end settings (theme, separators, plugins, ...).
    sources : ConfigSources
        Unmerged layers the snapshot was built from.
    has_favicon : bool
        Whether ``favicon.ico`` exists in the assets directory.
    """

    package_dir: Path
    target_dir: Path
    target_path: Path
    root_dir: Path
    out_dir: Path
    assets_dir: Path
    template_path: Path
    base_url: str
    extensions: list[str]
    modules: dict[str, ModuleConfig]
    presentation: dict[str, typ.Any]
    sources: ConfigSources
    has_favicon: bool
    project: str = ""
    git: str = ""
    host: str = "localhost"
    port: int = 8000
    open: bool = True
    watch: bool = False
    build: bool = False
    print: bool | str = False
    print_size: str = ""
    browser_launch: str = ""
    browser_executable: str = ""
    config_file: str = ""
    preprocessor_paths: list[str] = dc.field(default_factory=list)
    partial_paths: list[str] = dc.field(default_factory=list)
    script_paths: list[str] = dc.field(default_factory=list)
    style_paths: list[str] = dc.field(default_factory=list)
    theme_paths: list[str] = dc.field(default_factory=list)

    def get_module(self, name: str) -> ModuleConfig:
        """Return the module registered under ``name``."""
        try:
            return self.modules[name]
        except KeyError as exc:
            available = ", ".join(sorted(self.modules))
            msg = f"Unknown module '{name}'. Known modules: {available}"
            raise ConfigurationError(msg) from exc


__all__ = ["Config", "ConfigSources", "ModuleConfig"]
