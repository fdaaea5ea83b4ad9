"""Resolve themes, scripts, styles, and option strings for a document page.

Every URL produced here is relative to the directory of the URL being
rendered, so the same markup works when served live under ``baseUrl`` and
when written into the static build tree.
"""

from __future__ import annotations

import copy
import glob
import html
import json
import posixpath
import typing as typ
from pathlib import Path

from ruamel.yaml import YAML

from slide_pages.utils import is_directory, sanitize, to_array, to_title_case

from .models import Asset, ParsedDocument

if typ.TYPE_CHECKING:
    from slide_pages.config import Config, ModuleConfig

SEPARATOR_ATTRIBUTES: dict[str, str] = {
    "horizontalSeparator": "data-separator",
    "verticalSeparator": "data-separator-vertical",
    "notesSeparator": "data-separator-notes",
}

_FRONT_MATTER_DELIMITER = "---"


def is_absolute_url(url: str) -> bool:
    """Return whether ``url`` carries a scheme or is protocol-relative.

    Examples
    --------
    >>> is_absolute_url("https://example.com/deck.css")
    True
    >>> is_absolute_url("//cdn.example.com/x.js")
    True
    >>> is_absolute_url("./x")
    False
    >>> is_absolute_url("http://x\\ny")
    False
    """
    if "\n" in url or "\r" in url:
        return False
    return url.find("://") > 0 or url.startswith("//")


def url_directory(url: str) -> str:
    """Return the URL directory a relative reference in ``url`` resolves from."""
    if not url.startswith("/"):
        url = f"/{url}"
    if url.endswith("/") or not posixpath.splitext(url)[1]:
        return url.rstrip("/") or "/"
    return posixpath.dirname(url)


def relative_url(target: str, from_directory: str) -> str:
    """Return ``target`` (a root-absolute URL) relative to ``from_directory``."""
    return posixpath.relpath(target, from_directory or "/")


def strip_base_url(url: str, base_url: str) -> str:
    """Return ``url`` without the ``base_url`` prefix, sanitized and relative.

    Examples
    --------
    >>> strip_base_url("/talks/2024/intro.md", "/talks")
    '2024/intro.md'
    >>> strip_base_url("/intro.md", "/")
    'intro.md'
    """
    prefix = base_url.rstrip("/")
    if prefix and (url == prefix or url.startswith(f"{prefix}/")):
        url = url[len(prefix) :]
    return sanitize(url)


def parse_document(raw: str) -> ParsedDocument:
    """Split ``raw`` into its YAML front matter and body.

    A document without a leading ``---`` block, or whose block is never
    closed, is all content with an empty configuration.

    Raises
    ------
    ruamel.yaml.YAMLError
        If the front-matter block is not valid YAML.
    """
    text = raw.removeprefix("\ufeff")
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].strip() != _FRONT_MATTER_DELIMITER:
        return ParsedDocument(config={}, content=text)
    for index, line in enumerate(lines[1:], start=1):
        if line.strip() in {_FRONT_MATTER_DELIMITER, "..."}:
            loader = YAML(typ="safe")
            loader.version = (1, 2)
            loaded = loader.load("".join(lines[1:index]))
            config = dict(loaded) if isinstance(loaded, dict) else {}
            return ParsedDocument(config=config, content="".join(lines[index + 1 :]))
    return ParsedDocument(config={}, content=text)


def get_assets(
    module: ModuleConfig, patterns: typ.Any, from_url: str = "/"
) -> list[Asset]:
    """Expand asset ``patterns`` inside ``module`` into page-relative assets.

    Absolute URLs pass through untouched with no local path; every other
    pattern is a glob evaluated inside the module directory.
    """
    directory = url_directory(from_url)
    assets: list[Asset] = []
    for pattern in to_array(patterns):
        text = str(pattern).strip()
        if not text:
            continue
        if is_absolute_url(text):
            assets.append(Asset(url=text))
            continue
        if module.path is None or not is_directory(module.path):
            continue
        matches = glob.glob(sanitize(text), root_dir=module.path, recursive=True)
        for match in sorted(matches):
            path = Path(module.path, match)
            if path.is_dir():
                continue
            url = posixpath.join(module.url, Path(match).as_posix())
            assets.append(Asset(url=relative_url(url, directory), path=path))
    return assets


def get_themes(config: Config, from_url: str = "/") -> list[Asset]:
    """Return the selectable themes: ``themePaths`` or the bundled reveal.js set."""
    if config.theme_paths:
        return get_assets(config.get_module("assets"), config.theme_paths, from_url)
    return get_assets(config.get_module("base"), "dist/theme/*.css", from_url)


def get_theme(config: Config, from_url: str = "/") -> Asset:
    """Return the active theme asset, or an empty asset when none matches."""
    theme = str(config.presentation.get("theme") or "")
    if is_absolute_url(theme):
        return Asset(url=theme)
    stem = posixpath.splitext(posixpath.basename(theme))[0]
    for candidate in get_themes(config, from_url):
        if candidate.path is not None and candidate.path.stem == stem:
            return candidate
    return Asset(url="")


def get_highlight_theme(config: Config, from_url: str = "/") -> Asset:
    """Return the syntax-highlighting stylesheet named by ``highlightTheme``."""
    name = str(config.presentation.get("highlightTheme") or "")
    if not name:
        return Asset(url="")
    if is_absolute_url(name):
        return Asset(url=name)
    found = get_assets(config.get_module("highlight"), f"{name}.css", from_url)
    return found[0] if found else Asset(url="")


def get_scripts(config: Config, from_url: str = "/") -> list[Asset]:
    """Return project-wide then per-document scripts from the assets module."""
    patterns = [*config.script_paths, *to_array(config.presentation.get("scripts"))]
    return get_assets(config.get_module("assets"), patterns, from_url)


def get_styles(config: Config, from_url: str = "/") -> list[Asset]:
    """Return project-wide then per-document styles from the assets module."""
    patterns = [*config.style_paths, *to_array(config.presentation.get("styles"))]
    return get_assets(config.get_module("assets"), patterns, from_url)


def get_plugins_options(config: Config) -> str:
    """Return the reveal.js plugin identifiers as a comma-separated list."""
    plugins = [str(item) for item in to_array(config.presentation.get("plugins")) if item]
    return ",".join(plugins)


def get_settings_options(config: Config, from_url: str = "/") -> str:
    """Return the front-end settings serialized as JSON.

    When the menu plugin is configured without an explicit ``themes`` list,
    the list is filled from :func:`get_themes` on a copy of the settings.
    """
    settings = copy.deepcopy(config.presentation.get("settings") or {})
    menu = settings.get("menu") if isinstance(settings, dict) else None
    if isinstance(menu, dict) and not menu.get("themes"):
        themes = [
            {"name": to_title_case(posixpath.basename(asset.url)), "theme": asset.url}
            for asset in get_themes(config, from_url)
        ]
        menu["themes"] = themes or False
    return json.dumps(settings, default=str)


def get_separators_options(config: Config) -> str:
    """Return the markdown separators as ``data-separator*`` HTML attributes."""
    separators = config.presentation.get("separators") or {}
    attributes: list[str] = []
    for key, attribute in SEPARATOR_ATTRIBUTES.items():
        value = separators.get(key)
        if not value:
            continue
        escaped = str(value).replace("\r", "\\r").replace("\n", "\\n")
        attributes.append(f'{attribute}="{html.escape(escaped)}"')
    return " ".join(attributes)


__all__ = [
    "SEPARATOR_ATTRIBUTES",
    "get_assets",
    "get_highlight_theme",
    "get_plugins_options",
    "get_scripts",
    "get_separators_options",
    "get_settings_options",
    "get_styles",
    "get_theme",
    "get_themes",
    "is_absolute_url",
    "parse_document",
    "relative_url",
    "strip_base_url",
    "url_directory",
]
