"""Print served presentations to PDF decks or JPEG slides with Playwright.

Printing drives a headless Chromium against the running preview server, so
the exported pages are exactly what the server renders. Playwright is an
optional dependency (``pip install slide-pages[print]``); without it,
printing logs a warning and does nothing.
"""

from __future__ import annotations

import asyncio
import logging
import os
import posixpath
import re
import typing as typ
from pathlib import Path

from slide_pages.render.assets import strip_base_url
from slide_pages.utils import get_readable_path, make_directory, sanitize

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from slide_pages.config import Config

logger = logging.getLogger(__name__)

PDF_SIZE = {"width": 960, "height": 700}
SLIDE_SIZE = {"width": 1200, "height": 1200}
SCREENSHOT_QUALITY = 70

_PRINT_SIZE_PATTERN = re.compile(r"^([\d.]+)x([\d.]+)([a-z]*)$")
_SLIDE_PATTERN = re.compile(r"^\s*(\d+)(?:-(\d+))?")


def get_slide_url(slide: str) -> str:
    """Return the reveal.js fragment for a slide id such as ``"3-1"``.

    Examples
    --------
    >>> get_slide_url("3-1")
    '#/3/1'
    >>> get_slide_url("4")
    '#/4'
    >>> get_slide_url("invalid")
    ''
    """
    match = _SLIDE_PATTERN.match(slide)
    if match is None:
        return ""
    main, sub = match.groups()
    return f"#/{int(main)}/{int(sub)}" if sub is not None else f"#/{int(main)}"


def get_print_options(config: Config) -> dict[str, typ.Any]:
    """Return page-size options from ``printSize`` or the slide settings.

    ``printSize`` of the form ``<width>x<height><unit>`` yields explicit
    dimensions; any other value names a paper format such as ``A4``.
    Without ``printSize``, ``settings.width`` and ``settings.height`` are
    used when both are set.
    """
    if config.print_size:
        dimensions = _PRINT_SIZE_PATTERN.match(config.print_size)
        if dimensions is None:
            return {"format": config.print_size}
        width, height, unit = dimensions.groups()
        return {"width": f"{width}{unit}", "height": f"{height}{unit}"}
    settings = config.presentation.get("settings") or {}
    if settings.get("width") and settings.get("height"):
        return {"width": settings["width"], "height": settings["height"]}
    return {}


def get_browser_options(config: Config) -> dict[str, typ.Any]:
    """Return keyword arguments for ``chromium.launch``."""
    return {
        "headless": True,
        "args": config.browser_launch.split(),
        "executable_path": config.browser_executable or None,
    }


def _pixels(value: typ.Any, default: int) -> int:
    text = str(value).strip()
    if text.endswith("px"):
        text = text[:-2]
    try:
        return int(float(text))
    except ValueError:
        return default


def _load_playwright() -> typ.Any:
    try:
        from playwright.async_api import async_playwright
    except ImportError:
        logger.warning("Unable to print: Playwright is not installed")
        return None
    return async_playwright


class Printer:
    """Export documents served at ``server_url`` with a headless browser."""

    def __init__(self, config: Config, *, server_url: str | None = None) -> None:
        self.config = config
        self.server_url = (server_url or f"http://{config.host}:{config.port}").rstrip("/")

    def print_path(self, url: str, slide: str | None = None) -> Path:
        """Return where the export of ``url`` (or one of its slides) lands."""
        if isinstance(self.config.print, str) and self.config.print:
            return Path(os.path.abspath(self.config.print))
        if slide:
            stem = posixpath.splitext(sanitize(url))[0]
            return self.config.out_dir / f"{stem}-{sanitize(slide)}.jpg"
        relative = strip_base_url(url, self.config.base_url)
        return self.config.out_dir / "pdf" / f"{posixpath.splitext(relative)[0]}.pdf"

    async def print(self, url: str, slide: str | None = None) -> Path | None:
        """Export one document; ``None`` when Playwright is missing or it fails."""
        printed = await self.print_all([url], slide)
        return printed[0] if printed else None

    async def print_all(
        self, urls: cabc.Iterable[str], slide: str | None = None
    ) -> list[Path] | None:
        """Export every distinct URL concurrently in one browser.

        Returns
        -------
        list[Path] or None
            Paths of successful exports, or ``None`` when Playwright is not
            installed.
        """
        async_playwright = _load_playwright()
        if async_playwright is None:
            return None
        targets = list(dict.fromkeys(sanitize(url, prefix="/") for url in urls))
        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(**get_browser_options(self.config))
            try:
                results = await asyncio.gather(
                    *(self._print_page(browser, url, slide) for url in targets)
                )
            finally:
                await browser.close()
        return [path for path in results if path is not None]

    async def _print_page(self, browser: typ.Any, url: str, slide: str | None) -> Path | None:
        path = self.print_path(url, slide)
        defaults = SLIDE_SIZE if slide else PDF_SIZE
        options = {**defaults, **get_print_options(self.config)}
        logger.info("printing %s to %s", url, get_readable_path(path))
        page = await browser.new_page()
        try:
            make_directory(path.parent)
            if slide:
                await page.set_viewport_size(
                    {
                        "width": _pixels(options.get("width"), defaults["width"]),
                        "height": _pixels(options.get("height"), defaults["height"]),
                    }
                )
                target = f"{self.server_url}{url}?menu=hide{get_slide_url(slide)}"
                await page.goto(target, wait_until="load")
                await page.screenshot(
                    path=str(path), type="jpeg", quality=SCREENSHOT_QUALITY, full_page=True
                )
            else:
                target = f"{self.server_url}{url}?menu=hide&view=print"
                await page.goto(target, wait_until="networkidle")
                if "format" in options:
                    size = {"format": options["format"]}
                else:
                    size = {"width": options["width"], "height": options["height"]}
                await page.pdf(path=str(path), print_background=True, **size)
        except Exception:  # noqa: BLE001 - one failed export must not stop the others
            logger.exception("failed to print %s to %s", url, get_readable_path(path))
            return None
        finally:
            await page.close()
        return path


__all__ = [
    "PDF_SIZE",
    "SLIDE_SIZE",
    "Printer",
    "get_browser_options",
    "get_print_options",
    "get_slide_url",
]
