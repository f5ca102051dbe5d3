"""Static build: render every document of a site to the output tree.

The build clears the output directory, collects the route table, renders
every document concurrently (bounded by ``config.jobs``) and finally copies
the static-assets directory verbatim.

Failures are collected rather than raised: one broken document never stops
the others from being written.  The caller decides what a non-empty
``failures`` means (``dess build`` exits non-zero).
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from dess._errors import DessError, ExportError

if TYPE_CHECKING:
    from dess.config import DessConfig
    from dess.content.routes import RouteTable
    from dess.export.page import PageRenderer

logger = logging.getLogger("dess.build")


@dataclass(frozen=True, slots=True)
class ExportedFile:
    """Record of a single file written during a build.

    Attributes:
        source_path: Logical source (a route such as ``"/blog/post1"``, or an
            asset path such as ``"/public/logo.png"``).
        output_path: Absolute filesystem path to the written file.
        source_type: Category of the written file.
        size_bytes: Size of the written file in bytes.
        duration_ms: Time taken to render and write this file.

    """

    source_path: str
    output_path: Path
    source_type: Literal["content", "asset"]
    size_bytes: int
    duration_ms: float


@dataclass(frozen=True, slots=True)
class PageFailure:
    """A document that failed to render.

    Attributes:
        path: Source file of the document.
        error: The exception that stopped it.

    """

    path: Path
    error: Exception


@dataclass(frozen=True, slots=True)
class BuildResult:
    """Aggregate result of a full build.

    Attributes:
        pages: Pages written, sorted by route.
        assets: Static assets copied.
        failures: Documents that failed, sorted by path.
        duration_ms: Total wall-clock time for the build.
        output_dir: Absolute path to the output directory.

    """

    pages: tuple[ExportedFile, ...]
    assets: tuple[ExportedFile, ...]
    failures: tuple[PageFailure, ...]
    duration_ms: float
    output_dir: Path

    @property
    def ok(self) -> bool:
        """Whether every document was written."""
        return not self.failures


class SiteBuilder:
    """Builds a whole site into ``config.out_dir``.

    Args:
        config: Site configuration.
        renderer: Page renderer; one without live reload is created when
            omitted.

    """

    def __init__(self, config: DessConfig, renderer: PageRenderer | None = None) -> None:
        if renderer is None:
            from dess.export.page import PageRenderer

            renderer = PageRenderer(config)
        self._config = config
        self._renderer = renderer

    @property
    def renderer(self) -> PageRenderer:
        return self._renderer

    async def build(self) -> BuildResult:
        """Run the full build and return the result.

        Pipeline order:
            1. Clean output directory
            2. Collect routes
            3. Render every document (concurrently)
            4. Copy static assets

        Raises:
            ExportError: If the output directory cannot be prepared.

        """
        from dess.content.routes import collect
        from dess.export.assets import copy_public

        start = time.perf_counter()
        config = self._config

        await asyncio.to_thread(self._clean_output)

        routes = await asyncio.to_thread(collect, config)
        logger.info("Building %d page%s from %s", len(routes), "s" if len(routes) != 1 else "", config.src_dir)

        limit = asyncio.Semaphore(max(1, config.jobs))

        async def _bounded(path: Path) -> ExportedFile | PageFailure:
            async with limit:
                return await self._render_one(path, routes)

        sources = [routes.source_for(route) for route in routes]
        outcomes = await asyncio.gather(*(_bounded(path) for path in sources if path is not None))

        pages = tuple(o for o in outcomes if isinstance(o, ExportedFile))
        failures = tuple(sorted(
            (o for o in outcomes if isinstance(o, PageFailure)),
            key=lambda f: str(f.path),
        ))

        assets = await asyncio.to_thread(copy_public, config.public_path, config.public_out_path)

        elapsed = (time.perf_counter() - start) * 1000
        return BuildResult(
            pages=pages,
            assets=assets,
            failures=failures,
            duration_ms=elapsed,
            output_dir=config.out_dir,
        )

    async def _render_one(self, path: Path, routes: RouteTable) -> ExportedFile | PageFailure:
        t0 = time.perf_counter()
        try:
            page = await self._renderer.write_page(path, routes)
        except (DessError, OSError) as exc:
            logger.error("Failed to build %s: %s", path, exc)
            return PageFailure(path=path, error=exc)
        except Exception as exc:
            logger.exception("Unexpected error building %s", path)
            return PageFailure(path=path, error=exc)

        elapsed = (time.perf_counter() - t0) * 1000
        output_path = page.output_path or self._renderer.output_path(page.route)
        return ExportedFile(
            source_path=page.route,
            output_path=output_path,
            source_type="content",
            size_bytes=len(page.html.encode("utf-8")),
            duration_ms=elapsed,
        )

    def _clean_output(self) -> None:
        """Remove and recreate the output directory.

        Refuses to delete a directory that contains the source root.
        """
        output_dir = self._config.out_dir
        if self._config.src_dir.is_relative_to(output_dir):
            msg = f"Refusing to clear {output_dir}: it contains the source directory"
            raise ExportError(msg)
        if output_dir.exists():
            shutil.rmtree(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
