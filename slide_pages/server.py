"""Live preview server: HTTP routes, static modules, and debounced reload.

The FastAPI application maps request paths onto the render engine. Module
trees are mounted as static files before the catch-all route so module
assets always win over content with the same path. When watching is
enabled, file-system events are coalesced by :class:`ReloadBroadcaster` and
a single ``"reload"`` message is pushed to every connected page.

Examples
--------
>>> from slide_pages.config import ConfigResolver
>>> from slide_pages.render import RenderEngine
>>> app = create_app(RenderEngine(ConfigResolver(targets=["decks"])))  # doctest: +SKIP
"""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import functools
import logging
import os
import posixpath
import typing as typ
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse, HTMLResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from slide_pages._constants import FAVICON_NAME, RELOAD_DELAY, RELOAD_MESSAGE, RELOAD_PATH
from slide_pages.render.assets import strip_base_url
from slide_pages.utils import clear_probe_cache, is_directory, is_within_directory

if typ.TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver

    from slide_pages.render import RenderEngine

logger = logging.getLogger(__name__)

_IGNORED_EVENT_TYPES = frozenset({"opened", "closed", "closed_no_write"})


class ReloadBroadcaster:
    """Coalesce change notifications into one ``reload`` message per burst.

    The only state kept between events is whether a broadcast is pending:
    each :meth:`trigger` restarts the delay, and nothing is queued for
    clients that connect after a broadcast.
    """

    def __init__(self, delay: float = RELOAD_DELAY) -> None:
        self.delay = delay
        self.broadcasts = 0
        self._clients: set[WebSocket] = set()
        self._pending: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> bool:
        return self._pending is not None

    @property
    def clients(self) -> frozenset[WebSocket]:
        return frozenset(self._clients)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._clients.add(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        self._clients.discard(websocket)

    def trigger(self) -> None:
        """Schedule a broadcast, replacing any broadcast already pending.

        Must be called from the event loop thread.
        """
        loop = asyncio.get_running_loop()
        if self._pending is not None:
            self._pending.cancel()
        self._pending = loop.call_later(self.delay, self._fire)

    def _fire(self) -> None:
        self._pending = None
        task = asyncio.ensure_future(self.broadcast(RELOAD_MESSAGE))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def broadcast(self, message: str) -> None:
        """Send ``message`` to every client, dropping clients that fail."""
        self.broadcasts += 1
        clients = list(self._clients)
        results = await asyncio.gather(
            *(client.send_text(message) for client in clients), return_exceptions=True
        )
        for client, result in zip(clients, results, strict=True):
            if isinstance(result, Exception):
                logger.debug("dropping reload client after send failure: %s", result)
                self.disconnect(client)
        logger.info("sent %r to %d client(s)", message, len(clients))


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, root: Path, callback: cabc.Callable[[str], typ.Any]) -> None:
        self.root = root
        self.callback = callback

    def _is_hidden(self, path: str) -> bool:
        relative = os.path.relpath(path, self.root)
        parts = Path(relative).parts
        return any(part.startswith(".") and part not in {".", ".."} for part in parts)

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in _IGNORED_EVENT_TYPES:
            return
        paths = [os.fsdecode(event.src_path)]
        if getattr(event, "dest_path", ""):
            paths.append(os.fsdecode(event.dest_path))
        if all(self._is_hidden(path) for path in paths):
            return
        logger.debug("change detected: %s %s", event.event_type, paths[-1])
        self.callback(paths[-1])


def watch_paths(
    paths: cabc.Iterable[Path], callback: cabc.Callable[[str], typ.Any]
) -> BaseObserver:
    """Start a watchdog observer calling ``callback`` for non-dotfile changes.

    Paths nested inside another watched path are folded into their parent;
    paths that are not directories are skipped.
    """
    roots: list[Path] = []
    for path in sorted({Path(path) for path in paths if is_directory(path)}):
        if any(is_within_directory(path, root) for root in roots):
            continue
        roots.append(path)
    observer = Observer()
    for root in roots:
        observer.schedule(_ChangeHandler(root, callback), str(root), recursive=True)
        logger.info("watching %s", root)
    observer.start()
    return observer


def create_app(
    engine: RenderEngine, *, broadcaster: ReloadBroadcaster | None = None
) -> FastAPI:
    """Build the FastAPI application serving ``engine``'s project.

    Parameters
    ----------
    engine : RenderEngine
        Engine rendering documents, collections, and error pages.
    broadcaster : ReloadBroadcaster, optional
        Reload channel shared with the file watcher; a private one is
        created when omitted.

    Returns
    -------
    FastAPI
        Application with the favicon route, module mounts, the reload
        WebSocket, and the catch-all document route, in that order.
    """
    config = engine.config
    app = FastAPI(
        title=config.project or "slide-pages",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.engine = engine
    app.state.broadcaster = broadcaster or ReloadBroadcaster()

    @app.get(f"/{FAVICON_NAME}", include_in_schema=False)
    def favicon() -> Response:
        path = engine.config.assets_dir / FAVICON_NAME
        if path.is_file():
            return FileResponse(path)
        return Response(status_code=204)

    for name, module in config.modules.items():
        if module.path is None or module.url == "/" or not is_directory(module.path):
            continue
        app.mount(module.url, StaticFiles(directory=module.path), name=f"module-{name}")
        logger.debug("mounted %s at %s", module.path, module.url)

    @app.websocket(RELOAD_PATH)
    async def reload_socket(websocket: WebSocket) -> None:
        channel: ReloadBroadcaster = app.state.broadcaster
        await channel.connect(websocket)
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            channel.disconnect(websocket)

    @app.get("/{path:path}", include_in_schema=False)
    def serve(request: Request, path: str) -> Response:  # noqa: ARG001
        filter_ = request.query_params.get("filter", "")
        return dispatch(engine, request.url.path, request.url.query, filter_)

    return app


def _matches_base_url(url: str, base_url: str) -> bool:
    prefix = base_url.rstrip("/")
    return not prefix or url == prefix or url.startswith(f"{prefix}/")


def _error_response(
    engine: RenderEngine, status_code: int, label: str, message: str, url: str
) -> HTMLResponse:
    markup = engine.render_error(status_code, label, message, url=url)
    return HTMLResponse(markup, status_code=status_code)


def dispatch(engine: RenderEngine, url: str, query: str = "", filter_: str = "") -> Response:
    """Answer a GET for ``url`` following the serving state machine.

    Outside ``baseUrl`` only the root redirect applies; inside it, a path
    without extension or trailing slash is redirected, a directory renders
    its collection, a known extension renders the document, and anything
    else is served from ``rootDir`` or answered with the 404 page. Render
    failures become a 500 page carrying the error message.
    """
    config = engine.config
    base_url = config.base_url
    if not _matches_base_url(url, base_url):
        if url == "/":
            return RedirectResponse(f"{base_url.rstrip('/')}/", status_code=302)
        return _error_response(
            engine, 404, "Page not found.", "The page you're looking for doesn't exist.", url
        )

    extension = posixpath.splitext(url)[1]
    if not extension and not url.endswith("/"):
        location = f"{url}/?{query}" if query else f"{url}/"
        return RedirectResponse(location, status_code=301)

    if not extension:
        try:
            markup = engine.render_collection(url, filter_)
        except Exception as exc:  # noqa: BLE001 - every failure becomes an error page
            logger.exception("failed to render collection %s", url)
            return _error_response(engine, 500, "Error serving collection.", str(exc), url)
        return HTMLResponse(markup)

    if extension in config.extensions:
        try:
            markup, _hyperlinks = engine.render_document(url)
        except Exception as exc:  # noqa: BLE001 - every failure becomes an error page
            logger.exception("failed to render presentation %s", url)
            return _error_response(engine, 500, "Error serving presentation.", str(exc), url)
        return HTMLResponse(markup)

    static_path = config.root_dir / strip_base_url(url, base_url)
    if static_path.is_file():
        return FileResponse(static_path)
    return _error_response(
        engine, 404, "Page not found.", "The page you're looking for doesn't exist.", url
    )


class PresentationServer:
    """Run the preview application with uvicorn inside the current event loop.

    The CLI uses one instance for every mode: serving blocks in
    :meth:`serve_forever`, while build and print call :meth:`start`, do
    their work against :attr:`url`, then :meth:`stop`.
    """

    def __init__(
        self,
        engine: RenderEngine,
        *,
        host: str | None = None,
        port: int | None = None,
        watch: bool | None = None,
        log_level: str = "warning",
    ) -> None:
        config = engine.config
        self.engine = engine
        self.host = host or config.host
        self.port = port or config.port
        self.watch = config.watch if watch is None else watch
        self.broadcaster = ReloadBroadcaster()
        self.app = create_app(engine, broadcaster=self.broadcaster)
        self._server = uvicorn.Server(
            uvicorn.Config(self.app, host=self.host, port=self.port, log_level=log_level)
        )
        self._task: asyncio.Task[None] | None = None
        self._observer: BaseObserver | None = None

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    async def start(self) -> None:
        """Start listening and, when enabled, watching; return once started.

        Raises
        ------
        RuntimeError
            If uvicorn exits before it starts accepting connections.
        """
        self._task = asyncio.create_task(self._server.serve())
        while not self._server.started:
            if self._task.done():
                self._task.result()
                msg = f"Server on {self.url} stopped during startup"
                raise RuntimeError(msg)
            await asyncio.sleep(0.05)
        if self.watch:
            loop = asyncio.get_running_loop()
            config = self.engine.config
            self._observer = watch_paths(
                [config.assets_dir, config.root_dir],
                functools.partial(loop.call_soon_threadsafe, self._on_change),
            )
        logger.info("serving %s at %s", self.engine.config.root_dir, self.url)

    def _on_change(self, path: str) -> None:
        clear_probe_cache()
        self.engine.resolver.clear()
        logger.debug("scheduling reload after change to %s", path)
        self.broadcaster.trigger()

    async def stop(self) -> None:
        """Stop the watcher, then close the listener and wait for shutdown."""
        if self._observer is not None:
            self._observer.stop()
            await asyncio.to_thread(self._observer.join)
            self._observer = None
        if self._task is not None:
            self._server.should_exit = True
            task, self._task = self._task, None
            if not task.done():
                await task

    async def wait_closed(self) -> None:
        """Block until uvicorn exits, which it does on SIGINT or SIGTERM."""
        try:
            if self._task is not None:
                await self._task
        finally:
            await self.stop()

    async def serve_forever(self) -> None:
        await self.start()
        await self.wait_closed()


__all__ = [
    "PresentationServer",
    "ReloadBroadcaster",
    "create_app",
    "dispatch",
    "watch_paths",
]
