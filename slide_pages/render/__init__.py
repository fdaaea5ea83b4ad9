"""Render engine: documents, collections, and error pages as HTML.

Examples
--------
>>> from slide_pages.config import ConfigResolver
>>> from slide_pages.render import RenderEngine
>>> engine = RenderEngine(ConfigResolver(targets=["decks"]))
>>> markup, hyperlinks = engine.render_document("/intro.md")  # doctest: +SKIP
"""

from __future__ import annotations

from .assets import (
    get_assets,
    get_highlight_theme,
    get_plugins_options,
    get_scripts,
    get_separators_options,
    get_settings_options,
    get_styles,
    get_theme,
    get_themes,
    is_absolute_url,
    parse_document,
)
from .engine import create_environment
from .hyperlinks import (
    LinkContext,
    rewrite_attribute_links,
    rewrite_hyperlinks,
    rewrite_markdown_links,
)
from .models import Asset, Hyperlink, ParsedDocument
from .preprocessors import PreprocessorRegistry, split_headings
from .renderer import RenderEngine

__all__ = [
    "Asset",
    "Hyperlink",
    "LinkContext",
    "ParsedDocument",
    "PreprocessorRegistry",
    "RenderEngine",
    "create_environment",
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
    "rewrite_attribute_links",
    "rewrite_hyperlinks",
    "rewrite_markdown_links",
    "split_headings",
]
