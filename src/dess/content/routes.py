"""Route table for the set of logical pages in a source tree.

A route is the page's site-relative path without extension: the source
``blog/post1.md`` under the source root becomes ``/blog/post1`` and is
written to ``blog/post1.html``.  The table is rebuilt from disk on every
build and rebuild; it is never cached.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dess._types import Route
    from dess.config import DessConfig

logger = logging.getLogger("dess.build")


class RouteTable:
    """Immutable snapshot of a site's routes.

    Membership is an exact string match.  Iteration is sorted so anything
    rendered from the table (navigation, for instance) is deterministic.

    Args:
        sources: Mapping of route to the source file it was derived from.

    """

    __slots__ = ("_sources",)

    def __init__(self, sources: dict[Route, Path] | None = None) -> None:
        self._sources: dict[Route, Path] = dict(sorted((sources or {}).items()))

    @classmethod
    def from_routes(cls, routes: Iterable[Route]) -> RouteTable:
        """Build a table of routes with no known source files."""
        return cls({route: Path(route.lstrip("/")) for route in routes})

    def __contains__(self, route: object) -> bool:
        return route in self._sources

    def __iter__(self) -> Iterator[Route]:
        return iter(self._sources)

    def __len__(self) -> int:
        return len(self._sources)

    def __repr__(self) -> str:
        return f"RouteTable({list(self._sources)!r})"

    @property
    def routes(self) -> tuple[Route, ...]:
        """All routes, sorted."""
        return tuple(self._sources)

    def source_for(self, route: Route) -> Path | None:
        """Source file a route was derived from, if known."""
        return self._sources.get(route)


def page_route(path: Path, src_dir: Path) -> Route:
    """Return the route for a source file: ``"/" + relative path`` minus extension."""
    relative = Path(path).resolve().relative_to(Path(src_dir).resolve())
    return "/" + relative.with_suffix("").as_posix()


def split_suffix(url: str) -> tuple[str, str]:
    """Split *url* into its path and its ``?query`` / ``#fragment`` suffix."""
    cut = len(url)
    for marker in ("?", "#"):
        idx = url.find(marker)
        if idx != -1:
            cut = min(cut, idx)
    return url[:cut], url[cut:]


def add_extension(url: str, ext: str = ".html") -> str:
    """Insert *ext* before a ``?query`` or ``#fragment`` suffix, else append it.

    ``/page?x=1`` becomes ``/page.html?x=1``; ``/page#top`` becomes
    ``/page.html#top``.
    """
    path, suffix = split_suffix(url)
    return path + ext + suffix


def _ignore_patterns(names: Iterable[str]) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(re.escape(name), re.IGNORECASE) for name in names)


def is_page_source(path: Path, config: DessConfig) -> bool:
    """Whether *path* would be collected as a page of the site."""
    path = Path(path).resolve()
    if not path.is_relative_to(config.src_dir) or config.is_output_path(path):
        return False
    relative = path.relative_to(config.src_dir)
    if any(part.startswith(".") for part in relative.parts):
        return False
    name = path.name
    if not name.lower().endswith(config.content_ext.lower()):
        return False
    return not any(pattern.search(name) for pattern in _ignore_patterns(config.ignore_names))


def collect(config: DessConfig) -> RouteTable:
    """Walk the source root and build the route table.

    Skips dotfiles and dot-directories, files whose name matches one of
    ``config.ignore_names`` (case-insensitive, anywhere in the name), and
    everything inside the output tree.

    """
    ignored = _ignore_patterns(config.ignore_names)
    ext = config.content_ext.lower()
    src_dir = config.src_dir
    sources: dict[Route, Path] = {}

    for dirpath, dirnames, filenames in os.walk(src_dir):
        current = Path(dirpath)
        # Prune in place so os.walk never descends into skipped trees.
        dirnames[:] = sorted(
            d for d in dirnames
            if not d.startswith(".") and not config.is_output_path(current / d)
        )
        for name in sorted(filenames):
            if name.startswith("."):
                continue
            if not name.lower().endswith(ext):
                continue
            if any(pattern.search(name) for pattern in ignored):
                continue
            path = current / name
            route = page_route(path, src_dir)
            if route in sources:
                logger.warning(
                    "Route %s already provided by %s, skipping %s",
                    route, sources[route], path,
                )
                continue
            sources[route] = path

    return RouteTable(sources)
