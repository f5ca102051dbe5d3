"""File watcher for the dev loop.

Wraps ``watchfiles.awatch`` over the source root.  Each debounced burst of
filesystem activity becomes one batch of :class:`WatchEvent` objects, one
per change kind, which the watch orchestrator consumes.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from watchfiles import Change, awatch

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable

    from dess._types import ChangeKind
    from dess.config import DessConfig

logger = logging.getLogger("dess.watch")


@dataclass(frozen=True, slots=True)
class WatchEvent:
    """Paths that changed the same way within one burst.

    Attributes:
        kind: Type of filesystem change.
        paths: Absolute paths, sorted and de-duplicated.

    """

    kind: ChangeKind
    paths: tuple[Path, ...]


# Mapping from watchfiles Change enum to our kind literals.
_CHANGE_KIND_MAP: dict[Change, ChangeKind] = {
    Change.added: "created",
    Change.modified: "modified",
    Change.deleted: "deleted",
}

_KIND_ORDER: tuple[ChangeKind, ...] = ("created", "modified", "deleted")


def group_changes(raw_changes: Iterable[tuple[Change, str]]) -> tuple[WatchEvent, ...]:
    """Group raw ``(Change, path)`` pairs from watchfiles into events by kind."""
    grouped: dict[ChangeKind, set[Path]] = {}
    for change_type, path_str in raw_changes:
        kind = _CHANGE_KIND_MAP.get(change_type, "modified")
        grouped.setdefault(kind, set()).add(Path(path_str))

    return tuple(
        WatchEvent(kind=kind, paths=tuple(sorted(grouped[kind])))
        for kind in _KIND_ORDER
        if kind in grouped
    )


class ContentWatcher:
    """Watches the source root and yields batches of changes.

    ``stop()`` sets the stop event, which ends :meth:`batches` after the
    current wait.  Paths inside the output tree are still reported; the
    orchestrator decides what to ignore.

    """

    def __init__(
        self,
        config: DessConfig,
        *,
        debounce: int = 100,
        step: int = 50,
    ) -> None:
        self._config = config
        self._debounce = debounce
        self._step = step
        self._stop_event = asyncio.Event()

    @property
    def stopped(self) -> bool:
        """Whether :meth:`stop` has been called."""
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Signal the watcher to stop."""
        self._stop_event.set()

    async def batches(self) -> AsyncIterator[tuple[WatchEvent, ...]]:
        """Yield one tuple of events per debounced burst until stopped."""
        watch_path = self._config.src_dir
        logger.debug("Watching %s", watch_path)

        async for raw_changes in awatch(
            watch_path,
            stop_event=self._stop_event,
            debounce=self._debounce,
            step=self._step,
        ):
            events = group_changes(raw_changes)
            if events:
                yield events
