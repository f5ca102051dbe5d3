"""Markdown tokenizer adapter.

Parses markdown into markdown-it's flat token stream and serializes token
runs back to HTML.  Block tokens sit in one flat list; inline content
(links, emphasis, text) lives one level down in each ``inline`` token's
``children``.

Enabled syntax: CommonMark plus tables, strikethrough, task lists and
footnotes.  Raw HTML passes through.
"""

from __future__ import annotations

from collections.abc import MutableMapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from markdown_it import MarkdownIt
from markdown_it.token import Token
from mdit_py_plugins.footnote import footnote_plugin
from mdit_py_plugins.tasklists import tasklists_plugin

__all__ = ["Markdown", "ParsedMarkdown", "Token"]


@dataclass(slots=True)
class ParsedMarkdown:
    """A token stream plus the parser env it was produced with.

    The env carries footnote references and must be handed back to the
    renderer.
    """

    tokens: list[Token]
    env: MutableMapping[str, Any] = field(default_factory=dict)


class Markdown:
    """Markdown parser and token renderer.

    One instance per renderer; ``MarkdownIt`` instances are reusable across
    documents.
    """

    __slots__ = ("_md",)

    def __init__(self) -> None:
        self._md = (
            MarkdownIt("commonmark", {"html": True})
            .enable(["table", "strikethrough"])
            .use(footnote_plugin)
            .use(tasklists_plugin)
        )

    def parse(self, text: str) -> ParsedMarkdown:
        """Tokenize *text*."""
        env: dict[str, Any] = {}
        tokens = self._md.parse(text, env)
        return ParsedMarkdown(tokens=tokens, env=env)

    def render(
        self,
        tokens: Sequence[Token],
        env: MutableMapping[str, Any] | None = None,
    ) -> str:
        """Serialize a token run (block or inline level) to HTML."""
        return self._md.renderer.render(list(tokens), self._md.options, env or {})
