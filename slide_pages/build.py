"""Materialize a static site: documents, collection indexes, and module trees.

Files are registered in a mapping keyed by destination. Registering starts
reading the source immediately; :func:`write` awaits each read and writes
the bytes, so many files are read in parallel. The first registration of a
destination wins and later ones are ignored.

Every build unit (the module trees, one document, one collection) catches
its own failure and reports it as a :class:`BuildResult`, so one broken
document never stops its siblings.
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import fnmatch
import glob
import logging
import os
import posixpath
import typing as typ
from pathlib import Path

from slide_pages.utils import (
    get_readable_path,
    is_directory,
    is_within_directory,
    make_directory,
    sanitize,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from slide_pages.config import Config
    from slide_pages.render import RenderEngine

logger = logging.getLogger(__name__)


@dc.dataclass(slots=True)
class File:
    """A source file whose bytes are being read for a copy."""

    path: Path
    buffer: asyncio.Future[bytes]


FileMap = dict[Path, File]


@dc.dataclass(slots=True, frozen=True)
class BuildResult:
    """Outcome of one build unit.

    Attributes
    ----------
    url : str
        Document or collection URL, or the module URL prefix.
    path : Path
        Output file (or directory for module trees).
    error : BaseException or None
        The failure that stopped the unit, ``None`` on success.
    """

    url: str
    path: Path
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dc.dataclass(slots=True)
class BuildReport:
    """Results of a batch build in the order the units were scheduled."""

    results: list[BuildResult] = dc.field(default_factory=list)

    @property
    def succeeded(self) -> list[BuildResult]:
        return [result for result in self.results if result.ok]

    @property
    def failed(self) -> list[BuildResult]:
        return [result for result in self.results if not result.ok]

    @property
    def ok(self) -> bool:
        return not self.failed


def _register(files: FileMap, destination: Path, source: Path) -> None:
    if destination in files:
        return
    logger.debug("copy %s -> %s", get_readable_path(source), get_readable_path(destination))
    buffer = asyncio.ensure_future(asyncio.to_thread(source.read_bytes))
    files[destination] = File(path=source, buffer=buffer)


def _selected(
    relative: str,
    include: cabc.Sequence[str] | None,
    exclude: cabc.Sequence[str] | None,
) -> bool:
    if include and not any(fnmatch.fnmatch(relative, pattern) for pattern in include):
        return False
    return not (exclude and any(fnmatch.fnmatch(relative, pattern) for pattern in exclude))


def copy(
    source: str | os.PathLike[str],
    destination: str | os.PathLike[str],
    files: FileMap | None = None,
    *,
    include: cabc.Sequence[str] | None = None,
    exclude: cabc.Sequence[str] | None = None,
) -> FileMap:
    """Register ``source`` (a file or a directory tree) for copying.

    Must be called while an event loop is running; reads start immediately.

    Parameters
    ----------
    source : path-like
        File or directory to copy.
    destination : path-like
        Target file, or target directory for a directory source.
    files : FileMap, optional
        Mapping to register into; a new one is created when omitted.
    include, exclude : Sequence[str], optional
        ``fnmatch`` patterns applied to paths relative to a directory
        source; dot files are never copied from directories.

    Returns
    -------
    FileMap
        ``files`` with the new registrations.
    """
    files = {} if files is None else files
    source = Path(source)
    destination = Path(destination)
    if source.is_file():
        _register(files, destination, source)
        return files
    if not source.is_dir():
        logger.warning("nothing to copy at %s", get_readable_path(source))
        return files
    for match in sorted(glob.glob("**/*", root_dir=source, recursive=True)):
        candidate = source / match
        if not candidate.is_file():
            continue
        if not _selected(Path(match).as_posix(), include, exclude):
            continue
        _register(files, destination / match, candidate)
    return files


def minify(files: FileMap) -> FileMap:
    """Return ``files`` unchanged; reserved for asset minification."""
    return files


def _write_bytes(destination: Path, data: bytes) -> None:
    make_directory(destination.parent)
    destination.write_bytes(data)


async def write(files: FileMap) -> list[Path]:
    """Write every registered file, each independently of the others.

    Returns
    -------
    list[Path]
        The destinations, in registration order.

    Raises
    ------
    OSError
        The first read or write failure, once every sibling has finished.
        Each failure is logged with its source and destination.
    """

    async def _write_one(destination: Path, file: File) -> Path:
        try:
            data = await file.buffer
            await asyncio.to_thread(_write_bytes, destination, data)
        except OSError:
            logger.exception(
                "failed to copy %s to %s",
                get_readable_path(file.path),
                get_readable_path(destination),
            )
            raise
        return destination

    results = await asyncio.gather(
        *(_write_one(destination, file) for destination, file in files.items()),
        return_exceptions=True,
    )
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(files)


def _write_text(destination: Path, markup: str) -> None:
    make_directory(destination.parent)
    destination.write_text(markup, encoding="utf-8")


def collection_chain(url: str, root_url: str) -> list[str]:
    """Return the collection URLs from ``root_url`` down to ``url``'s directory.

    Examples
    --------
    >>> collection_chain("/decks/2024/intro.md", "/")
    ['/', '/decks/', '/decks/2024/']
    >>> collection_chain("/other/intro.md", "/decks/")
    ['/other/']
    """
    root = sanitize(root_url, prefix="/", trailing=True)
    directory = sanitize(posixpath.dirname(url), prefix="/", trailing=True)
    if not directory.startswith(root):
        return [directory]
    chain = [root]
    segments = [segment for segment in directory[len(root) :].split("/") if segment]
    for index in range(len(segments)):
        chain.append(f"{root}{'/'.join(segments[: index + 1])}/")
    return chain


class Builder:
    """Write documents, collections, and modules of one project to ``outDir``.

    Collection pages link to built ``.html`` documents only when the
    configuration has ``build`` enabled, which the CLI sets for ``--build``.
    """

    def __init__(self, engine: RenderEngine) -> None:
        self.engine = engine

    @property
    def config(self) -> Config:
        return self.engine.config

    def document_path(self, url: str) -> Path:
        """Return the output file for document ``url``."""
        stem = posixpath.splitext(sanitize(url))[0]
        return self.config.out_dir / f"{stem}.html"

    def collection_path(self, url: str) -> Path:
        """Return the index file for collection ``url``."""
        return self.config.out_dir / sanitize(url) / "index.html"

    async def build_modules(self) -> BuildResult:
        """Copy every module tree to ``outDir`` under its URL.

        The project configuration file and presentation documents are left
        out so sources are not published twice.
        """
        config = self.config
        exclude = [config.config_file, *(f"*{ext}" for ext in config.extensions)]
        target = config.out_dir
        try:
            files: FileMap = {}
            for name, module in config.modules.items():
                if module.path is None or not is_directory(module.path):
                    logger.debug("skipping module %s without a directory", name)
                    continue
                copy(module.path, target / sanitize(module.url), files, exclude=exclude)
            await write(minify(files))
        except Exception as exc:  # noqa: BLE001 - reported in the BuildResult
            logger.exception("failed to build modules to %s", get_readable_path(target))
            return BuildResult(url="modules", path=target, error=exc)
        logger.info("built modules to %s", get_readable_path(target))
        return BuildResult(url="modules", path=target)

    async def build_document(self, url: str) -> BuildResult:
        """Render document ``url`` and copy the local files it links to."""
        config = self.config
        url = sanitize(url, prefix="/")
        destination = self.document_path(url)
        try:
            markup, hyperlinks = await asyncio.to_thread(self.engine.render_document, url)
            files: FileMap = {}
            site_root = config.out_dir / sanitize(config.base_url)
            for hyperlink in hyperlinks:
                if not is_within_directory(hyperlink.path, config.root_dir):
                    logger.warning(
                        "not copying %s: outside %s", hyperlink.path, config.root_dir
                    )
                    continue
                relative = Path(os.path.relpath(hyperlink.path, config.root_dir)).as_posix()
                copy(hyperlink.path, site_root / sanitize(relative), files)
            await asyncio.gather(
                asyncio.to_thread(_write_text, destination, markup),
                write(minify(files)),
            )
        except Exception as exc:  # noqa: BLE001 - reported in the BuildResult
            logger.exception("failed to build %s to %s", url, get_readable_path(destination))
            return BuildResult(url=url, path=destination, error=exc)
        logger.info("built %s to %s", url, get_readable_path(destination))
        return BuildResult(url=url, path=destination)

    async def build_collection(self, url: str) -> BuildResult:
        """Render collection ``url`` to its ``index.html``."""
        url = sanitize(url, prefix="/", trailing=True)
        destination = self.collection_path(url)
        try:
            markup = await asyncio.to_thread(self.engine.render_collection, url)
            await asyncio.to_thread(_write_text, destination, markup)
        except Exception as exc:  # noqa: BLE001 - reported in the BuildResult
            logger.exception("failed to build %s to %s", url, get_readable_path(destination))
            return BuildResult(url=url, path=destination, error=exc)
        logger.info("built %s to %s", url, get_readable_path(destination))
        return BuildResult(url=url, path=destination)

    def build_root(self) -> str:
        """Return the URL collections are derived from.

        A directory target roots the chain at that directory; any other
        target roots it at ``baseUrl``.
        """
        config = self.config
        if is_directory(config.target_path) and is_within_directory(
            config.target_path, config.root_dir
        ):
            relative = Path(os.path.relpath(config.target_path, config.root_dir)).as_posix()
            if relative != ".":
                return posixpath.join(config.base_url, relative)
        return config.base_url

    async def build(self, urls: cabc.Iterable[str]) -> BuildReport:
        """Build ``urls``, their ancestor collections, and the module trees.

        Every unit runs concurrently; failures are collected in the report.
        """
        documents = list(dict.fromkeys(sanitize(url, prefix="/") for url in urls))
        root_url = self.build_root()
        collections: dict[str, None] = {}
        for url in documents:
            collections.update(dict.fromkeys(collection_chain(url, root_url)))
        logger.info(
            "building %d document(s) and %d collection(s) to %s",
            len(documents),
            len(collections),
            get_readable_path(self.config.out_dir),
        )
        results = await asyncio.gather(
            self.build_modules(),
            *(self.build_document(url) for url in documents),
            *(self.build_collection(url) for url in collections),
        )
        return BuildReport(results=list(results))


__all__ = [
    "BuildReport",
    "BuildResult",
    "Builder",
    "File",
    "FileMap",
    "collection_chain",
    "copy",
    "minify",
    "write",
]
