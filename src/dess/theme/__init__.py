"""Layouts: the function that wraps a page body with site chrome.

A layout is any callable taking a :class:`LayoutContext` and returning a
complete HTML document.  Layouts are looked up by name in a
:class:`LayoutRegistry`; a reference that is not a registered name is
treated as a kida template file path.  Nothing is imported dynamically.

The bundled ``default`` and ``debug`` layouts are kida templates under
``default/templates``.  That directory is always on the loader path, so a
user template can ``{% extends "default.html" %}`` and override blocks.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from kida import ChoiceLoader, Environment, FileSystemLoader
from kida.environment.exceptions import TemplateNotFoundError, TemplateSyntaxError
from kida.template import Markup

from dess._errors import LayoutResolutionError
from dess.content.routes import add_extension

if TYPE_CHECKING:
    from dess._types import LayoutFunc, Route
    from dess.content.rewriter import Heading

logger = logging.getLogger("dess.render")

DEFAULT_LAYOUT = "default"
DEBUG_LAYOUT = "debug"


def _bundled_theme_path() -> Path:
    """Return the absolute path to the bundled default theme."""
    return Path(__file__).parent / "default"


def bundled_templates_dir() -> Path:
    """Directory holding the bundled layout and error-page templates."""
    return _bundled_theme_path() / "templates"


def bundled_client_dir() -> Path:
    """Directory holding the browser modules pages can declare as ``dess:<name>``."""
    return _bundled_theme_path() / "client"


@dataclass(frozen=True, slots=True)
class NavLink:
    """One navigation entry.

    Attributes:
        route: Route the link points at.
        href: URL of the rendered page (route plus page extension).
        active: Whether this is the page being rendered.

    """

    route: Route
    href: str
    active: bool

    @property
    def label(self) -> str:
        """Human-readable link text derived from the route."""
        name = self.route.rstrip("/").rsplit("/", 1)[-1]
        if name == "index":
            parent = self.route.rstrip("/").rsplit("/", 2)
            name = parent[-2] if len(parent) > 2 and parent[-2] else "home"
        return name.replace("-", " ").replace("_", " ")


@dataclass(frozen=True, slots=True)
class LayoutContext:
    """Everything a layout may use to render one page.

    Attributes:
        route: Route of the page.
        routes: Every route of the site, sorted.
        body_html: Rendered markdown body.
        frontmatter: Parsed metadata block (empty when absent).
        headings: Headings of the page in document order.
        page_ext: Extension of rendered pages, used for nav hrefs.

    """

    route: Route
    routes: tuple[Route, ...]
    body_html: str
    frontmatter: Mapping[str, Any] = field(default_factory=dict)
    headings: tuple[Heading, ...] = ()
    page_ext: str = ".html"

    @property
    def title(self) -> str:
        """Frontmatter title, else the first heading, else the route."""
        title = self.frontmatter.get("title")
        if title:
            return str(title)
        for heading in self.headings:
            if heading.text:
                return heading.text
        return self.route

    @property
    def nav(self) -> tuple[NavLink, ...]:
        return tuple(
            NavLink(
                route=route,
                href=add_extension(route, self.page_ext),
                active=route == self.route,
            )
            for route in self.routes
        )

    def template_context(self) -> dict[str, Any]:
        """Variables exposed to kida layout templates."""
        body = Markup(self.body_html)
        return {
            "route": self.route,
            "routes": self.routes,
            "body": body,
            "body_html": body,
            "frontmatter": self.frontmatter,
            "headings": self.headings,
            "title": self.title,
            "nav": self.nav,
            "page_count": len(self.routes),
        }


def _environment(search_dirs: list[Path], *, auto_reload: bool = False) -> Environment:
    """Kida environment searching *search_dirs* then the bundled templates."""
    dirs: list[Path] = []
    for d in [*search_dirs, bundled_templates_dir()]:
        if d not in dirs:
            dirs.append(d)
    return Environment(
        loader=ChoiceLoader([FileSystemLoader(str(d)) for d in dirs]),
        autoescape=True,
        auto_reload=auto_reload,
        trim_blocks=True,
        lstrip_blocks=True,
    )


class TemplateLayout:
    """A layout backed by a kida template file.

    The template is compiled on construction so a missing or broken file
    is reported when the layout is resolved, not halfway through a render.

    Raises:
        LayoutResolutionError: If the file is missing or does not compile.

    """

    __slots__ = ("_auto_reload", "_env", "_path", "_template")

    def __init__(self, path: Path, *, auto_reload: bool = False) -> None:
        self._path = Path(path).resolve()
        if not self._path.is_file():
            raise LayoutResolutionError(str(path), "template file not found")
        self._auto_reload = auto_reload
        self._env = _environment([self._path.parent], auto_reload=auto_reload)
        try:
            self._template = self._env.get_template(self._path.name)
        except (TemplateNotFoundError, TemplateSyntaxError, OSError) as exc:
            raise LayoutResolutionError(str(path), str(exc)) from exc

    @property
    def path(self) -> Path:
        return self._path

    def __call__(self, context: LayoutContext) -> str:
        if self._auto_reload:
            # The environment recompiles the file when its mtime changes.
            self._template = self._env.get_template(self._path.name)
        return self._template.render(**context.template_context())

    def __repr__(self) -> str:
        return f"TemplateLayout({str(self._path)!r})"


class LayoutRegistry:
    """Named layouts plus template-file lookup.

    Args:
        src_dir: Source root; layout paths that are not found next to the
            document are looked up here.
        auto_reload: Recompile template files when they change (dev mode).

    """

    def __init__(self, src_dir: Path | None = None, *, auto_reload: bool = False) -> None:
        self._src_dir = Path(src_dir).resolve() if src_dir is not None else None
        self._auto_reload = auto_reload
        self._files: dict[Path, TemplateLayout] = {}
        bundled = bundled_templates_dir()
        self._layouts: dict[str, LayoutFunc] = {
            DEFAULT_LAYOUT: TemplateLayout(bundled / "default.html"),
            DEBUG_LAYOUT: TemplateLayout(bundled / "debug.html"),
        }

    def __contains__(self, name: object) -> bool:
        return name in self._layouts

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(sorted(self._layouts))

    def register(self, name: str, layout: LayoutFunc) -> None:
        """Register *layout* under *name*, replacing any previous entry."""
        self._layouts[name] = layout

    def get(self, name: str) -> LayoutFunc:
        """Return the layout registered as *name*.

        Raises:
            LayoutResolutionError: If nothing is registered under *name*.

        """
        try:
            return self._layouts[name]
        except KeyError:
            raise LayoutResolutionError(name, "no layout registered with that name") from None

    def resolve(self, ref: str, *, relative_to: Path | None = None) -> LayoutFunc:
        """Resolve a layout reference from configuration or frontmatter.

        Registered names win.  Otherwise *ref* is a template path, tried
        relative to *relative_to* (the document's directory) and then to
        the source root.

        Raises:
            LayoutResolutionError: If *ref* is neither a registered name
                nor a loadable template file.

        """
        if ref in self._layouts:
            return self._layouts[ref]

        for candidate in self._candidates(ref, relative_to):
            if candidate.is_file():
                return self._load(candidate)

        raise LayoutResolutionError(ref, "no registered layout or template file with that name")

    def _load(self, path: Path) -> TemplateLayout:
        """Return the compiled layout for *path*, compiling it on first use."""
        key = path.resolve()
        layout = self._files.get(key)
        if layout is None:
            layout = TemplateLayout(key, auto_reload=self._auto_reload)
            self._files[key] = layout
        return layout

    def _candidates(self, ref: str, relative_to: Path | None) -> list[Path]:
        path = Path(ref)
        if path.is_absolute():
            return [path]
        bases = [b for b in (relative_to, self._src_dir) if b is not None]
        return [Path(base) / path for base in bases]


def with_live_reload(layout: LayoutFunc) -> LayoutFunc:
    """Wrap *layout* so its output loads the live-reload client."""
    from dess.reactive.hmr import inject_live_reload

    def _layout(context: LayoutContext) -> str:
        return inject_live_reload(layout(context))

    _layout.__wrapped__ = layout  # type: ignore[attr-defined]
    return _layout


def render_not_found(path: str) -> str:
    """Render the bundled 404 page for a missing request path."""
    env = _environment([])
    return env.get_template("404.html").render(path=path)


__all__ = [
    "DEBUG_LAYOUT",
    "DEFAULT_LAYOUT",
    "LayoutContext",
    "LayoutRegistry",
    "NavLink",
    "TemplateLayout",
    "bundled_client_dir",
    "bundled_templates_dir",
    "render_not_found",
    "with_live_reload",
]
