"""Dess error hierarchy.

All dess-specific errors inherit from DessError for easy catching.
"""

from __future__ import annotations

from pathlib import Path


class DessError(Exception):
    """Base error for all dess operations."""


class ConfigError(DessError):
    """Invalid or missing configuration, or an unusable source directory."""


class ContentError(DessError):
    """Error in content processing (reading, frontmatter, rewriting)."""


class SourceReadError(ContentError):
    """A source document could not be read."""

    def __init__(self, path: Path, reason: object) -> None:
        self.path = path
        super().__init__(f"Couldn't read file {path}: {reason}")


class FrontmatterError(ContentError):
    """A metadata block is present but malformed."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path = path
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message)


class LayoutResolutionError(DessError):
    """A declared layout could not be loaded."""

    def __init__(self, ref: str, reason: object) -> None:
        self.ref = ref
        super().__init__(f"Couldn't use layout {ref!r}: {reason}")


class ExportError(DessError):
    """Error while writing output."""


class BundleError(ExportError):
    """A declared script asset could not be bundled."""

    def __init__(self, source: Path, reason: object) -> None:
        self.source = source
        super().__init__(f"Couldn't bundle {source}: {reason}")


class BuildError(ExportError):
    """A full build finished but one or more documents failed."""

    def __init__(self, failures: tuple[object, ...]) -> None:
        self.failures = failures
        count = len(failures)
        super().__init__(f"{count} page{'s' if count != 1 else ''} failed to build")


class ReactiveError(DessError):
    """Error in the dev loop (watching, rebuilding, broadcasting)."""


class WatchReadRaceError(ReactiveError):
    """A change event fired before the write was flushed to disk."""

    def __init__(self, path: Path, reason: object) -> None:
        self.path = path
        super().__init__(f"{path} not readable yet: {reason}")


class SocketSendError(ReactiveError):
    """A live-reload message could not be delivered to a subscriber."""
