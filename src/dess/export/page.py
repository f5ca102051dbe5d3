"""Page renderer: one source document to one HTML file.

The steps for a document always run in the same order: read, extract
frontmatter, tokenize and rewrite, resolve the layout, render, bundle the
declared scripts and inject their tags, write.  :meth:`PageRenderer.render`
is the pure middle of that sequence; :meth:`PageRenderer.write_page` adds
the file I/O around it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING

from dess._errors import BundleError, LayoutResolutionError, SourceReadError
from dess.content.frontmatter import extract_frontmatter, script_paths
from dess.content.markdown import Markdown
from dess.content.rewriter import Heading, TokenRewriter
from dess.content.routes import RouteTable, page_route
from dess.export.assets import (
    CLIENT_MODULE_PREFIX,
    CLIENT_OUTPUT_DIR,
    EsbuildBundler,
    ScriptBundler,
    client_module,
    deployable_path,
)
from dess.theme import (
    DEBUG_LAYOUT,
    DEFAULT_LAYOUT,
    LayoutContext,
    LayoutRegistry,
    with_live_reload,
)

if TYPE_CHECKING:
    from markdown_it.token import Token

    from dess._types import Frontmatter, LayoutFunc, Route
    from dess.config import DessConfig

logger = logging.getLogger("dess.render")


@dataclass(frozen=True, slots=True)
class ScriptAsset:
    """A script declared by a page.

    Attributes:
        source: Absolute path of the script source.
        output_path: Where the bundled script is written.
        url: Site URL the page loads it from.

    """

    source: Path
    output_path: Path
    url: str

    @property
    def tag(self) -> str:
        return f'<script type="module" src="{self.url}"></script>'


@dataclass(frozen=True, slots=True)
class RenderedPage:
    """Result of rendering one document.

    Attributes:
        route: Route of the page.
        html: Complete HTML document.
        headings: Headings in document order.
        scripts: Scripts the page declared, in declaration order.
        frontmatter: Parsed metadata block.
        output_path: File the page was written to (``None`` until written).

    """

    route: Route
    html: str
    headings: tuple[Heading, ...]
    scripts: tuple[ScriptAsset, ...] = ()
    frontmatter: Frontmatter | None = None
    output_path: Path | None = None


def inject_scripts(html: str, scripts: Sequence[ScriptAsset]) -> str:
    """Insert module script tags before ``</head>``, else prepend them."""
    if not scripts:
        return html
    tags = "".join(script.tag + "\n" for script in scripts)
    idx = html.find("</head>")
    if idx == -1:
        return tags + html
    return html[:idx] + tags + html[idx:]


def _dump_tokens(tokens: Sequence[Token], indent: int = 0) -> str:
    lines: list[str] = []
    pad = "  " * indent
    for token in tokens:
        detail = token.content if token.type in ("text", "code_inline", "html_block", "html_inline") else ""
        href = token.attrGet("href")
        if href is not None:
            detail = f"href={href}"
        lines.append(f"{pad}{token.type} {token.tag} {detail!r}".rstrip())
        if token.children:
            lines.append(_dump_tokens(token.children, indent + 1))
    return "\n".join(lines)


def _write_html(path: Path, html: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(html, encoding="utf-8")


class PageRenderer:
    """Renders source documents to HTML pages.

    Args:
        config: Site configuration.
        registry: Layout registry.  A fresh one rooted at ``config.src_dir``
            is created when omitted.
        default_layout: Layout used when a page names none, or names one
            that cannot be loaded.  A registry name, a template path or a
            layout callable; defaults to ``config.layout``, else the
            bundled ``default`` (``debug`` in debug mode).
        bundler: Script bundler.  Defaults to :class:`EsbuildBundler`.
        live_reload: Load the live-reload client from every page (dev mode).

    """

    def __init__(
        self,
        config: DessConfig,
        registry: LayoutRegistry | None = None,
        default_layout: str | LayoutFunc | None = None,
        bundler: ScriptBundler | None = None,
        *,
        live_reload: bool = False,
    ) -> None:
        self._config = config
        self._registry = registry or LayoutRegistry(config.src_dir, auto_reload=live_reload)
        self._markdown = Markdown()
        self._bundler: ScriptBundler = bundler or EsbuildBundler()
        self._live_reload = live_reload
        self._default_layout = self._resolve_default(default_layout)

    @property
    def config(self) -> DessConfig:
        return self._config

    @property
    def registry(self) -> LayoutRegistry:
        return self._registry

    @property
    def live_reload(self) -> bool:
        return self._live_reload

    def _builtin_default(self) -> LayoutFunc:
        return self._registry.get(DEBUG_LAYOUT if self._config.debug else DEFAULT_LAYOUT)

    def _resolve_default(self, layout: str | LayoutFunc | None) -> LayoutFunc:
        if layout is None:
            layout = self._config.layout
        if layout is None:
            return self._builtin_default()
        if callable(layout):
            return layout
        try:
            return self._registry.resolve(layout, relative_to=Path.cwd())
        except LayoutResolutionError as exc:
            logger.warning("%s; using the built-in layout", exc)
            return self._builtin_default()

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def output_path(self, route: Route) -> Path:
        """File a route is written to: ``out_dir/a/b.html`` for ``/a/b``."""
        return self._config.out_dir / (route.lstrip("/") + self._config.page_ext)

    def plan_scripts(self, meta: Frontmatter, source: Path | None = None) -> tuple[ScriptAsset, ...]:
        """Resolve the scripts a page declares to sources, outputs and URLs.

        Relative paths are resolved against the document's directory,
        ``/``-rooted ones against the source root.  A ``dess:<name>`` entry
        names a client module shipped with dess (``dess:island``); it is
        written under ``_dess/`` in the output root.

        Raises:
            BundleError: If a script lies outside the source root, or names
                a client module dess does not ship.

        """
        src_dir = self._config.src_dir
        doc_dir = source.parent if source is not None else src_dir
        assets: list[ScriptAsset] = []

        for entry in script_paths(meta):
            if entry.startswith(CLIENT_MODULE_PREFIX):
                script = client_module(entry)
                relative = Path(CLIENT_OUTPUT_DIR) / script.name
                assets.append(ScriptAsset(
                    source=script,
                    output_path=self._config.out_dir / relative,
                    url="/" + relative.as_posix(),
                ))
                continue
            base = src_dir if entry.startswith("/") else doc_dir
            script = (base / entry.lstrip("/")).resolve()
            if not script.is_relative_to(src_dir):
                raise BundleError(script, "script is outside the source directory")
            relative = deployable_path(script.relative_to(src_dir))
            assets.append(ScriptAsset(
                source=script,
                output_path=self._config.out_dir / relative,
                url="/" + relative.as_posix(),
            ))

        return tuple(assets)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def resolve_layout(self, meta: Frontmatter, source: Path | None = None) -> LayoutFunc:
        """Layout for a page: the one its frontmatter names, else the default.

        A layout that cannot be loaded is logged and replaced by the
        default layout; it never fails the page.
        """
        ref = meta.get("layout")
        layout = self._default_layout
        if ref:
            relative_to = source.parent if source is not None else self._config.src_dir
            try:
                layout = self._registry.resolve(str(ref), relative_to=relative_to)
            except LayoutResolutionError as exc:
                logger.warning("%s: %s; using the default layout", source or "<page>", exc)
        if self._live_reload:
            layout = with_live_reload(layout)
        return layout

    def render(
        self,
        route: Route,
        text: str,
        routes: RouteTable | Iterable[Route],
        source: Path | None = None,
    ) -> RenderedPage:
        """Render one document's text to a complete HTML page.

        Pure apart from logging: nothing is read or written.

        Raises:
            FrontmatterError: If the metadata block is malformed.
            BundleError: If a declared script lies outside the source root.

        """
        table = routes if isinstance(routes, RouteTable) else RouteTable.from_routes(routes)
        debug = self._config.debug

        meta, body = extract_frontmatter(text, path=source)
        parsed = self._markdown.parse(body)
        if debug:
            logger.debug("Tokens for %s:\n%s", route, _dump_tokens(parsed.tokens))

        rewriter = TokenRewriter(
            route, table, self._markdown,
            env=parsed.env,
            page_ext=self._config.page_ext,
        )
        result = rewriter.rewrite(parsed.tokens)
        if debug:
            logger.debug("Rewritten tokens for %s:\n%s", route, _dump_tokens(result.tokens))
            logger.debug("Headings for %s: %s", route, [(h.text, h.slug) for h in result.headings])

        body_html = self._markdown.render(result.tokens, parsed.env)
        layout = self.resolve_layout(meta, source)
        context = LayoutContext(
            route=route,
            routes=table.routes,
            body_html=body_html,
            frontmatter=meta,
            headings=result.headings,
            page_ext=self._config.page_ext,
        )
        html = layout(context)

        scripts = self.plan_scripts(meta, source)
        html = inject_scripts(html, scripts)

        return RenderedPage(
            route=route,
            html=html,
            headings=result.headings,
            scripts=scripts,
            frontmatter=meta,
        )

    async def write_page(self, path: Path, routes: RouteTable | Iterable[Route]) -> RenderedPage:
        """Read, render and write the document at *path*.

        Declared scripts are bundled before the page is written.

        Raises:
            SourceReadError: If the document cannot be read.
            FrontmatterError: If the metadata block is malformed.
            BundleError: If a declared script cannot be bundled.

        """
        path = Path(path)
        route = page_route(path, self._config.src_dir)

        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise SourceReadError(path, exc) from exc

        page = self.render(route, text, routes, source=path.resolve())

        for script in page.scripts:
            await self._bundler.bundle(script.source, script.output_path)

        out = self.output_path(route)
        await asyncio.to_thread(_write_html, out, page.html)
        logger.debug("Wrote %s -> %s", path, out)

        return replace(page, output_path=out)
