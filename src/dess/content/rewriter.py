"""Token rewriter for intra-site links and heading anchors.

One pass over a parsed token stream produces a new stream:

- Links whose path is a route of the site get the page extension inserted
  before any ``?query`` or ``#fragment``, so ``[post](/blog/post1)``
  points at ``/blog/post1.html``.  Other links are left alone.
- Each heading span (``heading_open`` … ``heading_close``) is replaced by
  one literal HTML token carrying an ``id`` slug and a permalink anchor,
  and the heading is recorded for the layout (tables of contents, etc.).

Unaffected tokens are copied into the output as-is; the input list is
never mutated.
"""

from __future__ import annotations

import html
import re
from collections.abc import Container, MutableMapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import unquote

from markdown_it.token import Token

from dess.content.routes import add_extension, split_suffix

if TYPE_CHECKING:
    from dess._types import Route
    from dess.content.markdown import Markdown


@dataclass(frozen=True, slots=True)
class Heading:
    """A heading collected during rewriting.

    Attributes:
        slug: Anchor id derived from ``text``.  May be empty.
        text: Plain text of the heading (text nodes only).

    """

    slug: str
    text: str


@dataclass(frozen=True, slots=True)
class RewriteResult:
    """Rewritten token stream and the headings found, in document order."""

    tokens: list[Token]
    headings: tuple[Heading, ...]


# Stripped from heading text before slugging.
_SLUG_PUNCTUATION = re.compile(r"""[$*_+~.()'"!:@,;?&=/\\\[\]{}<>`#%^|]""")
_DASH_RUNS = re.compile(r"-{2,}")


def slugify(text: str) -> str:
    """Derive an anchor id from heading text.

    Strips punctuation, lowercases, and joins whitespace-separated words
    with ``-``.  Pure: the same text always yields the same slug.
    """
    stripped = _SLUG_PUNCTUATION.sub("", text)
    slug = "-".join(stripped.lower().split())
    return _DASH_RUNS.sub("-", slug).strip("-")


class TokenRewriter:
    """Rewrites the token stream of one page.

    Args:
        page: Route of the page being rendered (e.g. ``"/blog/post1"``).
        routes: Routes of the whole site; only exact path matches are rewritten.
        markdown: Renderer used to serialize heading interiors.
        env: Parser env of the token stream (footnote state).
        page_ext: Extension inserted into rewritten links and permalinks.

    """

    __slots__ = ("_env", "_markdown", "_page", "_page_ext", "_routes")

    def __init__(
        self,
        page: Route,
        routes: Container[Route],
        markdown: Markdown,
        *,
        env: MutableMapping[str, Any] | None = None,
        page_ext: str = ".html",
    ) -> None:
        self._page = page
        self._routes = routes
        self._markdown = markdown
        self._env = env if env is not None else {}
        self._page_ext = page_ext

    def rewrite(self, tokens: Sequence[Token]) -> RewriteResult:
        """Return a new token stream with links and headings rewritten."""
        out: list[Token] = []
        headings: list[Heading] = []
        i = 0
        n = len(tokens)

        while i < n:
            token = tokens[i]
            if token.type == "heading_open":
                end = _find_heading_close(tokens, i)
                if end is not None:
                    heading, replacement = self._rewrite_heading(token, tokens[i + 1:end])
                    out.append(replacement)
                    headings.append(heading)
                    i = end + 1
                    continue
            out.append(self._rewrite_links(token))
            i += 1

        return RewriteResult(tokens=out, headings=tuple(headings))

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    def _is_route(self, path: str) -> bool:
        if not path:
            return False
        return path in self._routes or unquote(path) in self._routes

    def rewrite_url(self, url: str) -> str:
        """Rewrite one link target, or return it unchanged."""
        path, _suffix = split_suffix(url)
        if not self._is_route(path):
            return url
        return add_extension(url, self._page_ext)

    def _rewrite_links(self, token: Token) -> Token:
        if token.type == "link_open":
            href = token.attrGet("href")
            if isinstance(href, str):
                new_href = self.rewrite_url(href)
                if new_href != href:
                    return token.copy(attrs={**token.attrs, "href": new_href})
            return token

        if token.children:
            children = [self._rewrite_links(child) for child in token.children]
            if any(new is not old for new, old in zip(children, token.children, strict=True)):
                return token.copy(children=children)
        return token

    # ------------------------------------------------------------------
    # Headings
    # ------------------------------------------------------------------

    def _rewrite_heading(
        self,
        opening: Token,
        interior: Sequence[Token],
    ) -> tuple[Heading, Token]:
        interior = [self._rewrite_links(t) for t in interior]
        text = _plain_text(interior)
        slug = slugify(text)
        level = _heading_level(opening)
        inner_html = self._markdown.render(interior, self._env)
        permalink = f"{add_extension(self._page, self._page_ext)}#{slug}"

        markup = (
            f'<h{level} id="{html.escape(slug)}">'
            f'<a class="anchor" href="{html.escape(permalink)}">#</a> '
            f"{inner_html}</h{level}>\n"
        )
        replacement = Token(
            "html_block", "", 0,
            content=markup,
            map=opening.map,
            level=opening.level,
            block=True,
        )
        return Heading(slug=slug, text=text), replacement


def _find_heading_close(tokens: Sequence[Token], start: int) -> int | None:
    """Index of the ``heading_close`` matching ``tokens[start]``, if any.

    Headings never nest, so meeting another ``heading_open`` first means
    the span is unterminated.
    """
    for j in range(start + 1, len(tokens)):
        kind = tokens[j].type
        if kind == "heading_close":
            return j
        if kind == "heading_open":
            return None
    return None


def _heading_level(token: Token) -> int:
    tag = token.tag
    if len(tag) == 2 and tag[0] == "h" and tag[1].isdigit():
        return int(tag[1])
    return 1


def _plain_text(tokens: Sequence[Token]) -> str:
    parts: list[str] = []
    for token in tokens:
        if token.type == "text":
            parts.append(token.content)
        if token.children:
            parts.append(_plain_text(token.children))
    return "".join(parts)


def rewrite_tokens(
    page: Route,
    tokens: Sequence[Token],
    routes: Container[Route],
    markdown: Markdown,
    *,
    env: MutableMapping[str, Any] | None = None,
    page_ext: str = ".html",
) -> RewriteResult:
    """Convenience wrapper around :class:`TokenRewriter`."""
    rewriter = TokenRewriter(page, routes, markdown, env=env, page_ext=page_ext)
    return rewriter.rewrite(tokens)
