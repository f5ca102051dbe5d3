"""Content layer: documents as frontmatter, routes and token streams.

Handles frontmatter extraction, route collection, markdown tokenizing,
token rewriting and file watching.
"""

from dess.content.frontmatter import extract_frontmatter, has_frontmatter, script_paths
from dess.content.markdown import Markdown, ParsedMarkdown
from dess.content.rewriter import Heading, RewriteResult, TokenRewriter, rewrite_tokens, slugify
from dess.content.routes import RouteTable, add_extension, collect, page_route
from dess.content.watcher import ContentWatcher, WatchEvent

__all__ = [
    "ContentWatcher",
    "Heading",
    "Markdown",
    "ParsedMarkdown",
    "RewriteResult",
    "RouteTable",
    "TokenRewriter",
    "WatchEvent",
    "add_extension",
    "collect",
    "extract_frontmatter",
    "has_frontmatter",
    "page_route",
    "rewrite_tokens",
    "script_paths",
]
