"""Rewrite local references in document content and collect their files.

Rewriting runs as two pure stages: Markdown links first, then ``href`` and
``data-background-image`` attributes. Each stage returns the new content and
the hyperlinks it discovered; :func:`rewrite_hyperlinks` threads the output
of the first stage into the second.

Examples
--------
>>> from pathlib import Path
>>> from slide_pages.config import ModuleConfig
>>> context = LinkContext(
...     url="/decks/intro.md",
...     document_path=Path("/site/decks/intro.md"),
...     root_dir=Path("/site"),
...     base_url="/",
...     assets=ModuleConfig(url="/assets", path=Path("/site/assets")),
... )
>>> content, links = rewrite_hyperlinks("![](./fig.png) [x](@/logo.png)", context)
>>> content
'![](fig.png) [x](../assets/logo.png)'
>>> [link.path.as_posix() for link in links]
['/site/decks/fig.png']
"""

from __future__ import annotations

import dataclasses as dc
import os
import posixpath
import re
import typing as typ
from pathlib import Path
from urllib.parse import unquote

from slide_pages.utils import sanitize

from .assets import is_absolute_url, relative_url, url_directory
from .models import Hyperlink

if typ.TYPE_CHECKING:
    from slide_pages.config import ModuleConfig

MARKDOWN_LINK_PATTERN = re.compile(r"\[[^\]\n]*\]\(\s*([^)\s]+)[^)\n]*\)")
ATTRIBUTE_LINK_PATTERN = re.compile(
    r"""(?:data-background-image|href)=["']([^"'\n]+)["']"""
)
_SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")
_SUFFIX_PATTERN = re.compile(r"[?#]")
ASSET_PREFIX = "@/"


@dc.dataclass(slots=True, frozen=True)
class LinkContext:
    """Where the document being rewritten lives, on disk and in URL space."""

    url: str
    document_path: Path
    root_dir: Path
    base_url: str
    assets: ModuleConfig


def resolve_hyperlink(target: str, context: LinkContext) -> tuple[str, Hyperlink | None]:
    """Return the rewritten ``target`` and the local file it references, if any.

    Absolute URLs, other schemes (``mailto:``, ``data:``), and bare anchors are
    returned unchanged. ``@/`` targets point into the assets module and are
    rewritten without being collected.
    """
    if is_absolute_url(target) or _SCHEME_PATTERN.match(target) or target.startswith("#"):
        return target, None
    directory = url_directory(context.url)
    if target.startswith(ASSET_PREFIX):
        url = posixpath.join(context.assets.url, target[len(ASSET_PREFIX) :])
        return relative_url(url, directory), None

    split = _SUFFIX_PATTERN.search(target)
    path_part = target[: split.start()] if split else target
    suffix = target[split.start() :] if split else ""
    if not path_part:
        return target, None

    if path_part.startswith("/"):
        prefix = context.base_url.rstrip("/")
        relative = path_part
        if prefix and path_part.startswith(f"{prefix}/"):
            relative = path_part[len(prefix) :]
        source = context.root_dir / sanitize(unquote(relative))
        return target, Hyperlink(url=path_part, path=source)

    source = Path(
        os.path.normpath(context.document_path.parent / unquote(path_part))
    )
    url = relative_url(posixpath.join(directory, path_part), directory)
    return f"{url}{suffix}", Hyperlink(url=url, path=source)


def _rewrite_stage(
    pattern: re.Pattern[str], content: str, context: LinkContext
) -> tuple[str, list[Hyperlink]]:
    hyperlinks: list[Hyperlink] = []

    def _replace(match: re.Match[str]) -> str:
        target = match.group(1)
        rewritten, hyperlink = resolve_hyperlink(target, context)
        if hyperlink is not None:
            hyperlinks.append(hyperlink)
        if rewritten == target:
            return match.group(0)
        whole = match.group(0)
        start = match.start(1) - match.start(0)
        end = match.end(1) - match.start(0)
        return f"{whole[:start]}{rewritten}{whole[end:]}"

    return pattern.sub(_replace, content), hyperlinks


def rewrite_markdown_links(content: str, context: LinkContext) -> tuple[str, list[Hyperlink]]:
    """Rewrite the targets of ``[label](target)`` links."""
    return _rewrite_stage(MARKDOWN_LINK_PATTERN, content, context)


def rewrite_attribute_links(content: str, context: LinkContext) -> tuple[str, list[Hyperlink]]:
    """Rewrite ``href`` and ``data-background-image`` attribute values."""
    return _rewrite_stage(ATTRIBUTE_LINK_PATTERN, content, context)


def rewrite_hyperlinks(content: str, context: LinkContext) -> tuple[str, list[Hyperlink]]:
    """Run both rewrite stages and return de-duplicated hyperlinks by path."""
    content, markdown_links = rewrite_markdown_links(content, context)
    content, attribute_links = rewrite_attribute_links(content, context)
    hyperlinks: dict[Path, Hyperlink] = {}
    for hyperlink in (*markdown_links, *attribute_links):
        hyperlinks.setdefault(hyperlink.path, hyperlink)
    return content, list(hyperlinks.values())


__all__ = [
    "ATTRIBUTE_LINK_PATTERN",
    "MARKDOWN_LINK_PATTERN",
    "LinkContext",
    "resolve_hyperlink",
    "rewrite_attribute_links",
    "rewrite_hyperlinks",
    "rewrite_markdown_links",
]
