"""Reactive layer: the dev loop.

Connects file changes to incremental rebuilds and rebuilds to browser
reloads over the live-reload channel.
"""

from dess.reactive.broadcaster import REFRESH, LiveReloadChannel, ReloadConnection
from dess.reactive.hmr import EVENTS_PATH, HMR_CLIENT, HMR_SCRIPT_PATH, inject_live_reload
from dess.reactive.pipeline import WatchOrchestrator

__all__ = [
    "EVENTS_PATH",
    "HMR_CLIENT",
    "HMR_SCRIPT_PATH",
    "REFRESH",
    "LiveReloadChannel",
    "ReloadConnection",
    "WatchOrchestrator",
    "inject_live_reload",
]
