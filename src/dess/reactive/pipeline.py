"""Watch orchestrator: turns file changes into rebuilds and reloads.

State machine: ``idle -> building -> idle`` for every batch of changes,
looping until the watcher stops.  Each changed path is handled on its
own:

- inside the output tree: ignored
- a content document: the route table is rebuilt (files may have come or
  gone) and just that document is re-rendered
- inside the static-assets directory: the file is copied to the output tree

Every successful rebuild or copy broadcasts one refresh message.  Nothing
raised while handling one path escapes the loop; it is logged and the
orchestrator returns to idle.
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from dess._errors import DessError, SourceReadError, WatchReadRaceError
from dess.content.routes import collect, is_page_source
from dess.export.assets import copy_asset
from dess.reactive.broadcaster import REFRESH

if TYPE_CHECKING:
    from collections.abc import Iterable

    from dess._types import PathCategory
    from dess.config import DessConfig
    from dess.content.watcher import ContentWatcher, WatchEvent
    from dess.export.page import PageRenderer
    from dess.reactive.broadcaster import LiveReloadChannel

logger = logging.getLogger("dess.watch")

type WatchState = Literal["idle", "building"]


class WatchOrchestrator:
    """Rebuilds changed documents and notifies live-reload subscribers.

    Args:
        config: Site configuration.
        renderer: Renderer used for incremental rebuilds (normally the
            live-reload one the dev server built the site with).
        channel: Live-reload channel to broadcast refresh messages on.

    """

    def __init__(
        self,
        config: DessConfig,
        renderer: PageRenderer,
        channel: LiveReloadChannel,
    ) -> None:
        self._config = config
        self._renderer = renderer
        self._channel = channel
        self._state: WatchState = "idle"
        self._rebuilds = 0

    @property
    def state(self) -> WatchState:
        return self._state

    @property
    def rebuild_count(self) -> int:
        """Successful rebuilds and asset copies so far."""
        return self._rebuilds

    def classify(self, path: Path) -> PathCategory | None:
        """Decide how a changed path is handled.

        Returns ``None`` for paths dess has no use for (outside the source
        root, or neither content nor a static asset).
        """
        path = Path(path).resolve()
        config = self._config

        if config.is_output_path(path):
            return "output"
        if not path.is_relative_to(config.src_dir):
            return None
        if is_page_source(path, config):
            return "content"
        if path.is_relative_to(config.public_path.resolve()):
            return "asset"
        return None

    async def handle_events(self, events: Iterable[WatchEvent]) -> int:
        """Process one batch of change events.

        Paths are de-duplicated across the batch; deleted paths are
        skipped.

        Returns:
            Number of refresh broadcasts sent.

        """
        seen: set[Path] = set()
        pending: list[Path] = []
        for event in events:
            if event.kind == "deleted":
                logger.debug("Ignoring deleted %s", ", ".join(str(p) for p in event.paths))
                continue
            for path in event.paths:
                if path not in seen:
                    seen.add(path)
                    pending.append(path)

        refreshes = 0
        for path in pending:
            if await self.handle_path(path):
                refreshes += 1
        return refreshes

    async def handle_path(self, path: Path) -> bool:
        """Rebuild or copy one changed path and broadcast a refresh.

        Returns:
            ``True`` if a refresh was broadcast.

        """
        category = self.classify(path)
        if category is None or category == "output":
            return False
        if category == "asset" and not Path(path).is_file():
            return False

        self._state = "building"
        t0 = time.perf_counter()
        try:
            if category == "content":
                await self._rebuild(path)
            else:
                await asyncio.to_thread(copy_asset, path, self._config)
        except WatchReadRaceError as exc:
            logger.warning("%s", exc)
            return False
        except (DessError, OSError) as exc:
            logger.error("Failed to rebuild %s: %s", path, exc)
            return False
        except Exception:
            logger.exception("Unexpected error rebuilding %s", path)
            return False
        finally:
            self._state = "idle"

        elapsed = (time.perf_counter() - t0) * 1000
        self._rebuilds += 1
        logger.info("Refreshed %s in %.0fms", self._display(path), elapsed)
        await self._channel.broadcast(REFRESH)
        return True

    async def _rebuild(self, path: Path) -> None:
        routes = await asyncio.to_thread(collect, self._config)
        try:
            await self._renderer.write_page(path, routes)
        except SourceReadError as exc:
            # The event can fire before the editor has finished writing.
            raise WatchReadRaceError(path, exc.__cause__ or exc) from exc

    def _display(self, path: Path) -> str:
        path = Path(path).resolve()
        if path.is_relative_to(self._config.src_dir):
            return path.relative_to(self._config.src_dir).as_posix()
        return str(path)

    async def run(self, watcher: ContentWatcher) -> None:
        """Consume *watcher* until it stops."""
        logger.debug("Watch loop started")
        async for events in watcher.batches():
            await self.handle_events(events)
        logger.debug("Watch loop stopped")
