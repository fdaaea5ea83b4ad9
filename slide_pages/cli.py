"""Cyclopts CLI entrypoint for serving, building, and printing slide decks.

The ``slides`` console script resolves the positional targets into a project
and a set of presentation documents, then either serves them with live
preview, writes a static site (``--build``), or exports PDFs and slide images
(``--print``). ``slides vendor`` downloads the front-end modules the pages
load.

Examples
--------
Serve every deck under ``talks/`` without opening a browser:

>>> from slide_pages.cli import app
>>> app(["talks", "--no-open"])  # doctest: +SKIP

Build one deck into ``_site``:

>>> app(["talks/intro.md", "--build"])  # doctest: +SKIP
"""

from __future__ import annotations

import asyncio
import logging
import os
import posixpath
import typing as typ
import webbrowser
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from ._constants import GLOB_CHARACTERS
from .build import Builder
from .config import ConfigResolver
from .errors import SlidePagesError
from .export import Printer
from .render import RenderEngine
from .server import PresentationServer
from .utils import is_directory, is_file, is_within_directory, sanitize, search_files
from .vendor import PACKAGES, vendor_modules

if typ.TYPE_CHECKING:
    from .config import Config

__version__ = "0.4.0"

logger = logging.getLogger(__name__)

app = App(
    name="slides",
    help="Serve, build and print reveal.js presentations written in Markdown.",
    version=__version__,
    version_flags=["--version", "-v"],
    help_flags=["--help", "-h"],
    config=cyclopts.config.Env("SLIDES_", command=False),  # type: ignore[unknown-argument]
)


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def discover_documents(config: Config) -> tuple[str, list[str]]:
    """Return the primary document URL and every document URL to process.

    A wildcard target is searched under ``rootDir``; a directory target
    selects every document beneath it; a file target selects itself.
    URLs include ``baseUrl``. The primary URL is the collection or first
    document the browser opens in serve mode.
    """
    relative = Path(os.path.relpath(config.target_path, config.root_dir)).as_posix()
    target_url = "" if relative == "." else sanitize(relative)
    found: list[str] = []
    if any(char in GLOB_CHARACTERS for char in str(config.target_path)):
        found = search_files(relative, cwd=config.root_dir, exts=config.extensions)
        target_url = found[0] if found else ""
    elif is_directory(config.target_path):
        pattern = f"{target_url}/**/*" if target_url else "**/*"
        found = search_files(pattern, cwd=config.root_dir, exts=config.extensions)
        target_url = f"{target_url}/" if target_url else ""
    elif is_file(config.target_path):
        found = [target_url]
    found = [
        url for url in found if not is_within_directory(config.root_dir / url, config.out_dir)
    ]
    urls = [posixpath.join(config.base_url, url) for url in found]
    return posixpath.join(config.base_url, target_url), urls


def _report_written(paths: typ.Iterable[Path]) -> None:
    for path in paths:
        print(f"wrote {_format_path(path)}")


async def _run_pipeline(
    engine: RenderEngine, url: str, urls: list[str], *, slide: str | None
) -> None:
    config = engine.config
    if config.build:
        report = await Builder(engine).build(urls)
        _report_written(result.path for result in report.succeeded if result.url != "modules")
        for result in report.failed:
            logger.error("could not build %s: %s", result.url, result.error)
    if config.print:
        server = PresentationServer(engine, watch=False)
        await server.start()
        try:
            printer = Printer(config, server_url=server.url)
            printed = await printer.print_all(urls, slide)
        finally:
            await server.stop()
        _report_written(printed or [])
    if config.build or config.print:
        return
    server = PresentationServer(engine)
    await server.start()
    if config.open:
        webbrowser.open(f"{server.url}{url}")
    await server.wait_closed()


@app.default
def run(
    *targets: str,
    build: typ.Annotated[
        bool, Parameter(name=["--build", "-b"], negative="", help="Write a static site")
    ] = False,
    print_: typ.Annotated[
        bool,
        Parameter(name=["--print", "-p"], negative="", help="Export PDFs or slide images"),
    ] = False,
    all_: typ.Annotated[
        bool,
        Parameter(
            name=["--all", "-a"], negative="", help="Process every document in a directory"
        ),
    ] = False,
    watch: typ.Annotated[
        bool, Parameter(name=["--watch", "-w"], negative="", help="Reload pages on changes")
    ] = False,
    config: typ.Annotated[
        str | None, Parameter(name=["--config", "-c"], help="Project config file name")
    ] = None,
    open_: typ.Annotated[
        bool, Parameter(name="--open", negative="--no-open", help="Open the browser")
    ] = True,
    slide: typ.Annotated[
        str | None, Parameter(name="--slide", help="Print one slide, e.g. 3-1")
    ] = None,
    host: typ.Annotated[str | None, Parameter(name="--host", help="Server host")] = None,
    port: typ.Annotated[int | None, Parameter(name="--port", help="Server port")] = None,
    verbose: typ.Annotated[
        bool, Parameter(name="--verbose", negative="", help="Log debug output")
    ] = False,
) -> None:
    """Serve, build, or print the presentations selected by ``targets``.

    Parameters
    ----------
    targets : str
        A document, directory, or wildcard; or a project directory followed
        by a path inside it. Defaults to the current directory.
    build, print_, watch : bool, optional
        Modes layered over the project configuration when passed.
    all_ : bool, optional
        Accepted for compatibility; directory targets always select every
        document beneath them.
    config : str, optional
        Name of the project configuration file.
    open_ : bool, optional
        Open the first selected page in the browser when serving.
    slide : str, optional
        Print a single slide (``<index>-<subindex>``) as a JPEG.
    host, port : optional
        Server address overrides.
    verbose : bool, optional
        Log at debug level.

    Raises
    ------
    SystemExit
        With status 1 when no presentation is found or the pipeline fails.
    """
    del all_
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    cli_options: dict[str, typ.Any] = {}
    for key, enabled in (("build", build), ("print", print_), ("watch", watch)):
        if enabled:
            cli_options[key] = True
    if not open_:
        cli_options["open"] = False
    if config:
        cli_options["config"] = config
    if host:
        cli_options["host"] = host
    if port:
        cli_options["port"] = port

    mode = "+".join(name for name, enabled in (("build", build), ("print", print_)) if enabled)
    print(f"slides {__version__} [{mode or 'serve'}]")
    try:
        resolver = ConfigResolver(cli_options, targets or (".",))
        engine = RenderEngine(resolver)
        url, urls = discover_documents(engine.config)
        if not urls:
            logger.error("No presentations found in %s", engine.config.target_path)
            raise SystemExit(1)
        asyncio.run(_run_pipeline(engine, url, urls, slide=slide))
    except KeyboardInterrupt:
        logger.info("Shutting down server...")
    except Exception as exc:
        logger.exception("Failed to serve presentations")
        raise SystemExit(1) from exc


@app.command(help="Download the front-end modules presentations load.")
def vendor(
    *modules: str,
    destination: typ.Annotated[
        Path | None, Parameter(help="Modules directory (defaults to the package)")
    ] = None,
    force: typ.Annotated[
        bool, Parameter(negative="", help="Replace modules that are already present")
    ] = False,
) -> None:
    """Fetch the pinned npm packages behind the built-in modules.

    Parameters
    ----------
    modules : str
        Module names to fetch (``base``, ``menu``, ...); all when omitted.
    destination : Path or None, optional
        Directory receiving one sub-directory per module.
    force : bool, optional
        Re-download modules that already have files.
    """
    known = {package.module: package for package in PACKAGES}
    try:
        written = vendor_modules(destination, modules=modules or None, force=force)
    except SlidePagesError as exc:
        logger.error("%s", exc)  # noqa: TRY400
        raise SystemExit(1) from exc
    for name, paths in written.items():
        package = known[name]
        if paths:
            print(f"wrote {package.package} {package.version} ({len(paths)} files)")
        else:
            print(f"kept {package.package} (already present)")


def main() -> None:
    """Configure logging and invoke the Cyclopts application behind ``slides``.

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
