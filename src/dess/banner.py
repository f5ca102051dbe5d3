"""Startup banner and build summary: mode-aware status output.

Prints to stderr.  Detects ``NO_COLOR`` / ``TERM`` for safe fallback.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dess.config import DessConfig
    from dess.export.static import BuildResult


# ---------------------------------------------------------------------------
# ANSI helpers: respect NO_COLOR (https://no-color.org)
# ---------------------------------------------------------------------------

def _supports_color() -> bool:
    """Return True if the terminal supports ANSI colors."""
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("TERM") == "dumb":
        return False
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


_COLOR = _supports_color()

_RESET = "\033[0m" if _COLOR else ""
_BOLD = "\033[1m" if _COLOR else ""
_DIM = "\033[2m" if _COLOR else ""
_CYAN = "\033[36m" if _COLOR else ""
_GREEN = "\033[32m" if _COLOR else ""
_RED = "\033[31m" if _COLOR else ""


_MODE_STYLES: dict[str, tuple[str, str]] = {
    "dev": (_GREEN, "dev"),
    "serve": (_CYAN, "serve"),
}


def _mode_badge(mode: str) -> str:
    """Return a styled [mode] badge."""
    color, label = _MODE_STYLES.get(mode, (_DIM, mode))
    return f"{color}[{label}]{_RESET}"


def _clickable_url(url: str) -> str:
    """Wrap *url* in an OSC 8 hyperlink escape if the terminal supports it."""
    if not _COLOR:
        return url
    return f"\033]8;;{url}\033\\{_BOLD}{_CYAN}{url}{_RESET}\033]8;;\033\\"


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def print_banner(
    config: DessConfig,
    page_count: int,
    mode: str,
    *,
    live_reload: bool = False,
    load_ms: float = 0.0,
) -> None:
    """Print the dess startup banner to stderr.

    Args:
        config: Resolved DessConfig.
        page_count: Number of pages built.
        mode: ``"dev"`` or ``"serve"``.
        live_reload: Whether the live-reload channel is active.
        load_ms: Time spent on the initial build in milliseconds.

    """
    from dess import __version__

    lines: list[str] = [
        "",
        f"  {_BOLD}dess{_RESET} {_DIM}v{__version__}{_RESET}  {_mode_badge(mode)}",
        f"  {_DIM}{'─' * 43}{_RESET}",
    ]

    timing = f" {_DIM}in {load_ms:.0f}ms{_RESET}" if load_ms > 0 else ""
    lines.append(f"  {_DIM}├─{_RESET} {_plural(page_count, 'page')} built{timing}")
    lines.append(f"  {_DIM}├─{_RESET} source: {_DIM}{config.src_dir}{_RESET}")
    if live_reload:
        lines.append(f"  {_DIM}├─{_RESET} {_GREEN}live reload{_RESET} on {_DIM}/__dess/events{_RESET}")
    lines.append(f"  {_DIM}└─{_RESET} output: {_DIM}{config.out_dir}{_RESET}")

    url = f"http://{config.host}:{config.port}"
    lines.append("")
    lines.append(f"  {_clickable_url(url)}")

    if mode == "dev":
        lines.append("")
        lines.append(f"  {_DIM}Watching for changes...{_RESET}")

    lines.append("")
    print("\n".join(lines), file=sys.stderr)


def print_build_summary(result: BuildResult) -> None:
    """Print a build completion summary to stderr."""
    lines = [
        "",
        "─" * 41,
        f"  Built {_plural(len(result.pages), 'page')}",
    ]
    if result.assets:
        lines.append(f"  Copied {_plural(len(result.assets), 'asset')}")
    if result.failures:
        lines.append(f"  {_RED}Failed {_plural(len(result.failures), 'page')}:{_RESET}")
        lines.extend(f"    {_RED}✗{_RESET} {failure.path}: {failure.error}" for failure in result.failures)
    lines.append(f"  Output: {result.output_dir}")
    lines.append(f"  Done in {result.duration_ms:.0f}ms")

    print("\n".join(lines), file=sys.stderr)
