"""Tests for dess.theme: layout context, registry and bundled templates."""

from __future__ import annotations

from pathlib import Path

import pytest

from dess._errors import LayoutResolutionError
from dess.content.rewriter import Heading
from dess.theme import (
    DEBUG_LAYOUT,
    DEFAULT_LAYOUT,
    LayoutContext,
    LayoutRegistry,
    NavLink,
    TemplateLayout,
    bundled_templates_dir,
    render_not_found,
    with_live_reload,
)

ROUTES = ("/about", "/blog/index", "/blog/my-post", "/index")


def _context(**kwargs: object) -> LayoutContext:
    defaults: dict[str, object] = {"route": "/about", "routes": ROUTES, "body_html": "<p>Hi</p>"}
    return LayoutContext(**{**defaults, **kwargs})  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# LayoutContext / NavLink
# ---------------------------------------------------------------------------


class TestNavLink:
    """Labels derived from routes."""

    @pytest.mark.parametrize(
        ("route", "label"),
        [
            ("/about", "about"),
            ("/index", "home"),
            ("/blog/index", "blog"),
            ("/blog/my-post", "my post"),
            ("/snake_case", "snake case"),
        ],
    )
    def test_label(self, route: str, label: str) -> None:
        assert NavLink(route=route, href=route + ".html", active=False).label == label


class TestLayoutContext:
    """Values handed to layouts."""

    def test_title_prefers_frontmatter(self) -> None:
        ctx = _context(frontmatter={"title": "Custom"}, headings=(Heading("h", "Heading"),))
        assert ctx.title == "Custom"

    def test_title_from_heading(self) -> None:
        ctx = _context(headings=(Heading("", ""), Heading("first", "First")))
        assert ctx.title == "First"

    def test_title_from_route(self) -> None:
        assert _context().title == "/about"

    def test_nav(self) -> None:
        nav = _context().nav
        assert [link.href for link in nav] == [
            "/about.html", "/blog/index.html", "/blog/my-post.html", "/index.html",
        ]
        assert [link.active for link in nav] == [True, False, False, False]

    def test_nav_uses_page_ext(self) -> None:
        assert _context(page_ext=".htm").nav[0].href == "/about.htm"

    def test_template_context(self) -> None:
        values = _context().template_context()
        assert values["route"] == "/about"
        assert values["page_count"] == 4
        assert str(values["body"]) == "<p>Hi</p>"
        assert values["title"] == "/about"


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestLayoutRegistry:
    """Built-ins, registration and template lookup."""

    def test_builtins(self) -> None:
        registry = LayoutRegistry()
        assert DEFAULT_LAYOUT in registry
        assert DEBUG_LAYOUT in registry
        assert registry.names == ("debug", "default")

    def test_get_unknown(self) -> None:
        with pytest.raises(LayoutResolutionError, match="no layout registered"):
            LayoutRegistry().get("nope")

    def test_register_replaces(self) -> None:
        registry = LayoutRegistry()
        registry.register("default", lambda ctx: "mine")
        assert registry.get("default")(_context()) == "mine"

    def test_resolve_name_before_file(self, tmp_path: Path) -> None:
        (tmp_path / "default").write_text("FILE")
        registry = LayoutRegistry(tmp_path)
        assert registry.resolve("default") is registry.get("default")

    def test_resolve_relative_to_document(self, tmp_path: Path) -> None:
        docs = tmp_path / "docs"
        docs.mkdir()
        (docs / "page.html").write_text("DOC {{ route }}")
        (tmp_path / "page.html").write_text("ROOT {{ route }}")
        registry = LayoutRegistry(tmp_path)
        assert registry.resolve("page.html", relative_to=docs)(_context()).startswith("DOC /about")

    def test_resolve_falls_back_to_source_root(self, tmp_path: Path) -> None:
        docs = tmp_path / "docs"
        docs.mkdir()
        (tmp_path / "page.html").write_text("ROOT {{ route }}")
        registry = LayoutRegistry(tmp_path)
        assert registry.resolve("page.html", relative_to=docs)(_context()).startswith("ROOT /about")

    def test_resolve_absolute(self, tmp_path: Path) -> None:
        layout_file = tmp_path / "abs.html"
        layout_file.write_text("ABS")
        registry = LayoutRegistry()
        assert registry.resolve(str(layout_file))(_context()).startswith("ABS")

    def test_resolve_compiles_file_once(self, tmp_path: Path) -> None:
        docs = tmp_path / "docs"
        docs.mkdir()
        (tmp_path / "page.html").write_text("ROOT {{ route }}")
        registry = LayoutRegistry(tmp_path)
        first = registry.resolve("page.html")
        assert registry.resolve("page.html") is first
        assert registry.resolve("../page.html", relative_to=docs) is first
        assert registry.resolve(str(tmp_path / "page.html")) is first

    def test_resolve_distinct_files(self, tmp_path: Path) -> None:
        (tmp_path / "a.html").write_text("A")
        (tmp_path / "b.html").write_text("B")
        registry = LayoutRegistry(tmp_path)
        assert registry.resolve("a.html") is not registry.resolve("b.html")

    def test_resolve_missing(self, tmp_path: Path) -> None:
        with pytest.raises(LayoutResolutionError, match="nope.html"):
            LayoutRegistry(tmp_path).resolve("nope.html")


class TestTemplateLayout:
    """Kida template files as layouts."""

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(LayoutResolutionError, match="template file not found"):
            TemplateLayout(tmp_path / "missing.html")

    def test_extends_bundled_default(self, tmp_path: Path) -> None:
        path = tmp_path / "custom.html"
        path.write_text(
            '{% extends "default.html" %}\n'
            '{% block footer %}<footer class="custom">bye</footer>{% endblock %}\n',
        )
        html = TemplateLayout(path)(_context())
        assert '<footer class="custom">bye</footer>' in html
        assert "<p>Hi</p>" in html
        assert 'href="/index.html"' in html

    def test_body_is_not_escaped_but_title_is(self, tmp_path: Path) -> None:
        path = tmp_path / "t.html"
        path.write_text("{{ body }}|{{ title }}")
        html = TemplateLayout(path)(_context(frontmatter={"title": "<b>x</b>"}))
        assert html.startswith("<p>Hi</p>|&lt;b&gt;x&lt;/b&gt;")

    def test_path_and_repr(self, tmp_path: Path) -> None:
        path = tmp_path / "t.html"
        path.write_text("x")
        layout = TemplateLayout(path)
        assert layout.path == path.resolve()
        assert "t.html" in repr(layout)


# ---------------------------------------------------------------------------
# Bundled templates
# ---------------------------------------------------------------------------


class TestBundledTemplates:
    """Templates shipped with the package."""

    def test_directory_contents(self) -> None:
        names = {p.name for p in bundled_templates_dir().iterdir()}
        assert {"default.html", "debug.html", "404.html"} <= names

    def test_default_layout(self) -> None:
        html = LayoutRegistry().get(DEFAULT_LAYOUT)(_context())
        assert html.startswith("<!DOCTYPE html>")
        assert "<title>/about</title>" in html
        assert 'href="/about.html" aria-current="page"' in html
        assert ">my post</a>" in html
        assert "footer" not in html.split("</style>")[1]

    def test_debug_layout(self) -> None:
        ctx = _context(headings=(Heading("intro", "Intro"),))
        html = LayoutRegistry().get(DEBUG_LAYOUT)(ctx)
        assert 'class="debug"' in html
        assert "Intro <code>#intro</code>" in html
        assert "4 pages in site" in html

    def test_not_found_page(self) -> None:
        html = render_not_found("/a<b>")
        assert "404" in html
        assert "<code>/a&lt;b&gt;</code>" in html


class TestWithLiveReload:
    """Wrapping a layout with the live-reload client."""

    def test_injects_script(self) -> None:
        layout = with_live_reload(lambda ctx: "<html><head></head><body></body></html>")
        assert '<script src="/hmr.js" type="module"></script>' in layout(_context())

    def test_keeps_wrapped_layout(self) -> None:
        def base(ctx: LayoutContext) -> str:
            return "x"

        assert with_live_reload(base).__wrapped__ is base  # type: ignore[attr-defined]
