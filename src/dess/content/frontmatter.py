"""Frontmatter extraction: split a document into metadata and body.

A document may open with a delimited metadata block::

    ---
    title: Hello
    layout: ./post.html
    ---

    # Hello

YAML (``---`` / ``---yaml``), TOML (``+++`` / ``---toml``) and JSON
(``---json``) blocks are recognized.  Text without a complete block is
returned untouched.
"""

from __future__ import annotations

import json
import re
import tomllib
from typing import TYPE_CHECKING, Any

import yaml

from dess._errors import FrontmatterError

if TYPE_CHECKING:
    from pathlib import Path

    from dess._types import Frontmatter


def _block(opening: str, closing: str) -> re.Pattern[str]:
    return re.compile(
        rf"\A\ufeff?(?:{opening})[ \t]*\r?\n"
        rf"(?P<block>.*?)(?:\r?\n)?"
        rf"^(?:{closing})[ \t]*(?:\r?\n|\Z)",
        re.DOTALL | re.MULTILINE,
    )


# Order matters: the bare ``---`` opener must be tried after ``---toml``
# and ``---json``.
_FORMATS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("toml", _block(r"\+\+\+|---toml", r"\+\+\+|---")),
    ("json", _block(r"---json", r"---")),
    ("yaml", _block(r"---yaml|---", r"---")),
)

# Keys the renderer understands.  Anything else is passed to the layout.
KNOWN_KEYS = frozenset({"layout", "title", "slug", "date", "script", "scripts", "js"})

_SCRIPT_KEYS = ("script", "scripts", "js")


def _match(text: str) -> tuple[str, re.Match[str]] | None:
    for fmt, pattern in _FORMATS:
        m = pattern.match(text)
        if m is not None:
            return fmt, m
    return None


def has_frontmatter(text: str) -> bool:
    """Whether *text* opens with a complete metadata block."""
    return _match(text) is not None


def extract_frontmatter(
    text: str,
    *,
    path: Path | None = None,
) -> tuple[Frontmatter, str]:
    """Split *text* into ``(metadata, body)``.

    Without a metadata block the result is ``({}, text)`` and the body is
    the input verbatim.

    Raises:
        FrontmatterError: If a block is present but does not parse to a
            mapping.

    """
    found = _match(text)
    if found is None:
        return {}, text

    fmt, m = found
    raw = m.group("block")
    try:
        data = _parse(fmt, raw)
    except (yaml.YAMLError, tomllib.TOMLDecodeError, json.JSONDecodeError) as exc:
        msg = f"invalid {fmt} frontmatter: {exc}"
        raise FrontmatterError(msg, path) from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        msg = f"{fmt} frontmatter must be a mapping, got {type(data).__name__}"
        raise FrontmatterError(msg, path)

    return data, text[m.end():]


def _parse(fmt: str, raw: str) -> Any:
    if fmt == "toml":
        return tomllib.loads(raw)
    if fmt == "json":
        return json.loads(raw) if raw.strip() else {}
    return yaml.safe_load(raw)


def script_paths(meta: Frontmatter) -> tuple[str, ...]:
    """Return the script assets a page declares, in declaration order.

    Accepts ``script``, ``scripts`` or ``js``, each either a single path or
    a list of paths.  Duplicates are dropped.
    """
    paths: list[str] = []
    for key in _SCRIPT_KEYS:
        value = meta.get(key)
        if not value:
            continue
        items = value if isinstance(value, (list, tuple)) else [value]
        for item in items:
            entry = str(item).strip()
            if entry and entry not in paths:
                paths.append(entry)
    return tuple(paths)
