"""Serve, build, and print reveal.js slide decks written in Markdown.

This package exposes the ``slides`` console script: a live preview server
with reload on change, a static-site builder, and a PDF/JPEG exporter that
share one render engine so every consumer produces the same markup.

Exports
-------
- ``app``: Cyclopts application behind the ``slides`` command.
- ``main``: Convenience function that configures logging and runs ``app``.

Examples
--------
>>> from slide_pages import main
>>> main()  # doctest: +SKIP
"""

from __future__ import annotations

from .cli import __version__, app, main

__all__ = ["__version__", "app", "main"]
