"""Shared dataclasses used by the render pipeline."""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path  # noqa: TC003 - used for runtime type metadata


@dc.dataclass(slots=True, frozen=True)
class Asset:
    """A resolved script, style, or theme reference.

    Attributes
    ----------
    url : str
        URL emitted in the page, relative to the requesting document unless
        the asset is external.
    path : Path or None
        Local file backing the asset; ``None`` marks an external URL that is
        emitted verbatim and never copied.
    """

    url: str
    path: Path | None = None


@dc.dataclass(slots=True, frozen=True)
class Hyperlink:
    """A local file referenced from document content.

    Attributes
    ----------
    url : str
        Rewritten URL, relative to the document's own directory.
    path : Path
        Absolute source path copied next to the built document.
    """

    url: str
    path: Path


@dc.dataclass(slots=True, frozen=True)
class ParsedDocument:
    """A document split into its front matter and body."""

    config: dict[str, typ.Any]
    content: str


__all__ = ["Asset", "Hyperlink", "ParsedDocument"]
