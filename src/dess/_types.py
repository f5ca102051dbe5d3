"""Shared type definitions for dess."""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from dess.theme import LayoutContext

# Mode of operation
type DessMode = Literal["build", "serve", "dev"]

# Logical site path of a page, e.g. "/blog/post1" (no extension)
type Route = str

# Parsed frontmatter block
type Frontmatter = dict[str, Any]

# What kind of filesystem change a watch event carries
type ChangeKind = Literal["created", "modified", "deleted"]

# How the watch loop treats a changed path
type PathCategory = Literal["output", "content", "asset"]

# A layout renders a page context to a full HTML document
type LayoutFunc = Callable[[LayoutContext], str]
