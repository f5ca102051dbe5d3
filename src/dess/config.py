"""Dess configuration.

DessConfig is the central configuration object, frozen after creation.
"""

from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_IGNORE_NAMES = ("readme", "license", "contributing", "changelog")


@dataclass(frozen=True, slots=True)
class DessConfig:
    """Configuration for a dess site.

    Attributes:
        src_dir: Source root containing markdown documents.  Always resolved
            to an absolute path on construction.
        out_dir: Output root.  Relative paths resolve against the current
            working directory, like ``src_dir``.
        host: Bind address for dev/serve modes.
        port: Bind port for dev/serve modes.
        layout: Default layout, either a registered layout name or a path
            to a template file.  ``None`` uses the bundled default layout.
        debug: Verbose logging, token dumps and the debug layout footer.
        public_dir: Static-assets subdirectory of ``src_dir``, copied
            verbatim to ``out_dir/public_dir``.
        content_ext: Extension of content documents (matched case-insensitively).
        page_ext: Extension of rendered pages.
        ignore_names: Case-insensitive filename patterns never treated as pages.
        jobs: Maximum number of documents rendered concurrently.

    """

    src_dir: Path = field(default_factory=Path.cwd)
    out_dir: Path = field(default_factory=lambda: Path("dist"))
    host: str = "127.0.0.1"
    port: int = 3000
    layout: str | None = None
    debug: bool = False
    public_dir: str = "public"
    content_ext: str = ".md"
    page_ext: str = ".html"
    ignore_names: tuple[str, ...] = DEFAULT_IGNORE_NAMES
    jobs: int = 8

    def __post_init__(self) -> None:
        # watchfiles reports absolute paths; resolve both roots so that
        # Path.relative_to() comparisons work.
        object.__setattr__(self, "src_dir", Path(self.src_dir).resolve())
        object.__setattr__(self, "out_dir", Path(self.out_dir).resolve())

    @property
    def public_path(self) -> Path:
        """Absolute path to the static-assets source directory."""
        return self.src_dir / self.public_dir

    @property
    def public_out_path(self) -> Path:
        """Absolute path the static assets are copied to."""
        return self.out_dir / self.public_dir

    def is_output_path(self, path: Path) -> bool:
        """Whether *path* lies inside the output tree."""
        return Path(path).resolve().is_relative_to(self.out_dir)
