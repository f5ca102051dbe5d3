"""Dess application: the build, serve and dev entry points.

``build`` renders the site into the output directory.  ``serve`` builds
and then serves the output tree with chirp on pounce.  ``dev`` does the
same with live reload: pages load a small client script, a watch loop
rebuilds changed documents, and every successful rebuild tells connected
browsers to refresh.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING

from dess._errors import BuildError
from dess.config import DessConfig
from dess.config_loader import load_config

if TYPE_CHECKING:
    from chirp import App

    from dess.export.page import PageRenderer
    from dess.export.static import BuildResult
    from dess.reactive.broadcaster import LiveReloadChannel

logger = logging.getLogger("dess.server")


def _resolve_config(src_dir: str | Path | DessConfig, **kwargs: object) -> DessConfig:
    if isinstance(src_dir, DessConfig):
        return src_dir
    return load_config(Path(src_dir), **kwargs)


def run_build(config: DessConfig, renderer: PageRenderer | None = None) -> BuildResult:
    """Run a full build to completion and return its result (never raises for pages)."""
    from dess.export.static import SiteBuilder

    return asyncio.run(SiteBuilder(config, renderer).build())


# ---------------------------------------------------------------------------
# HTTP app
# ---------------------------------------------------------------------------


def create_app(config: DessConfig, channel: LiveReloadChannel | None = None) -> App:
    """Create the chirp App serving the output tree.

    With a *channel*, the live-reload client script and event stream are
    routed as well.  Missing files fall back to the site's own
    ``404.html`` when it has one, else to the bundled not-found page.

    """
    from chirp import App, AppConfig, Response
    from chirp.http.request import Request
    from chirp.middleware import StaticFiles

    from dess.theme import bundled_templates_dir, render_not_found

    app_config = AppConfig(
        template_dir=bundled_templates_dir(),
        debug=False,
        host=config.host,
        port=config.port,
        # Static output is served untouched.
        safe_target=False,
        sse_lifecycle=False,
        delegation=False,
    )
    app = App(config=app_config)

    if channel is not None:
        _wire_live_reload(app, channel)

    @app.error(404)
    def not_found(request: Request) -> Response:
        return Response(
            body=render_not_found(request.path),
            status=404,
            content_type="text/html; charset=utf-8",
        )

    app.add_middleware(
        StaticFiles(
            directory=config.out_dir,
            prefix="/",
            not_found_page="404" + config.page_ext,
            cache_control="no-cache",
        )
    )
    return app


def _wire_live_reload(app: App, channel: LiveReloadChannel) -> None:
    """Route the live-reload client script and event stream."""
    from chirp import EventStream, Response

    from dess.reactive.broadcaster import ReloadConnection
    from dess.reactive.error_overlay import error_overlay_middleware
    from dess.reactive.hmr import EVENTS_PATH, HMR_CLIENT, HMR_SCRIPT_PATH

    @app.route(HMR_SCRIPT_PATH, name="dess:hmr")
    def hmr_client() -> Response:
        return (
            Response(body=HMR_CLIENT, content_type="application/javascript; charset=utf-8")
            .with_header("Cache-Control", "no-cache")
        )

    @app.route(EVENTS_PATH, name="dess:events")
    def events() -> EventStream:
        conn = ReloadConnection()
        channel.subscribe(conn)
        return EventStream(conn.messages())

    app.add_middleware(error_overlay_middleware)


def _start_watcher(config: DessConfig, renderer: PageRenderer, channel: LiveReloadChannel, app: App) -> None:
    """Run the watch loop for the lifetime of *app*.

    Registers ``on_startup`` / ``on_shutdown`` hooks so the loop lives
    inside the event loop managed by pounce.

    Flow:
        on_startup  -> spawn the watch loop task (``awatch`` internally)
        file change -> WatchOrchestrator.handle_events()
        on_shutdown -> stop the watcher, close subscribers, await the task

    """
    from dess.content.watcher import ContentWatcher
    from dess.reactive.pipeline import WatchOrchestrator

    watcher = ContentWatcher(config)
    orchestrator = WatchOrchestrator(config, renderer, channel)
    _task: asyncio.Task[None] | None = None

    @app.on_startup
    async def _start_watch_loop() -> None:
        nonlocal _task
        _task = asyncio.create_task(orchestrator.run(watcher))

    @app.on_shutdown
    async def _stop_watch_loop() -> None:
        watcher.stop()
        channel.close_all()
        if _task is not None and not _task.done():
            _task.cancel()
            try:
                await _task
            except asyncio.CancelledError:
                pass


def _run_server(app: App, config: DessConfig) -> None:
    from pounce.config import ServerConfig
    from pounce.server import Server

    server_config = ServerConfig(host=config.host, port=config.port, workers=1)
    Server(server_config, app).run()


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def build(src_dir: str | Path | DessConfig = ".", **kwargs: object) -> BuildResult:
    """Build the site into its output directory.

    Every document is attempted; the summary lists any that failed.

    Args:
        src_dir: Source directory (or a ready DessConfig).
        **kwargs: Override DessConfig fields.

    Raises:
        ConfigError: If the configuration or source directory is unusable.
        BuildError: If one or more documents failed.

    """
    from dess.banner import print_build_summary

    config = _resolve_config(src_dir, **kwargs)
    result = run_build(config)
    print_build_summary(result)

    if result.failures:
        raise BuildError(result.failures)
    return result


def serve(src_dir: str | Path | DessConfig = ".", **kwargs: object) -> None:
    """Build the site once and serve the output tree.

    Args:
        src_dir: Source directory (or a ready DessConfig).
        **kwargs: Override DessConfig fields.

    """
    from dess.banner import print_banner

    config = _resolve_config(src_dir, **kwargs)
    t0 = time.perf_counter()
    result = run_build(config)
    load_ms = (time.perf_counter() - t0) * 1000
    for failure in result.failures:
        logger.error("Not served: %s (%s)", failure.path, failure.error)

    app = create_app(config)
    print_banner(config, len(result.pages), mode="serve", load_ms=load_ms)
    _run_server(app, config)


def dev(src_dir: str | Path | DessConfig = ".", **kwargs: object) -> None:
    """Start the live-reloading development server.

    Builds the site with the live-reload client in every page, then serves
    it while a watch loop rebuilds changed documents and copies changed
    static assets.  A failing document never stops the server.

    Args:
        src_dir: Source directory (or a ready DessConfig).
        **kwargs: Override DessConfig fields.

    """
    from dess.banner import print_banner
    from dess.export.page import PageRenderer
    from dess.reactive.broadcaster import LiveReloadChannel

    config = _resolve_config(src_dir, **kwargs)
    renderer = PageRenderer(config, live_reload=True)

    t0 = time.perf_counter()
    result = run_build(config, renderer)
    load_ms = (time.perf_counter() - t0) * 1000
    for failure in result.failures:
        logger.error("Initial build failed for %s: %s", failure.path, failure.error)

    channel = LiveReloadChannel()
    app = create_app(config, channel)
    _start_watcher(config, renderer, channel, app)

    print_banner(config, len(result.pages), mode="dev", live_reload=True, load_ms=load_ms)
    _run_server(app, config)
