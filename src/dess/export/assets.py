"""Asset handling: script bundling and static file copying.

Scripts declared in frontmatter are bundled to the same source-relative
location under the output root, with TypeScript/JSX extensions rewritten
to ``.js``.  Bundling shells out to ``esbuild`` when it is installed;
plain JavaScript is copied as-is when it is not.

The static-assets directory (``public/``) is copied byte-for-byte.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import time
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from dess._errors import BundleError, ExportError
from dess.export.static import ExportedFile

if TYPE_CHECKING:
    from dess.config import DessConfig

logger = logging.getLogger("dess.build")

# Script sources whose deployable form is a ``.js`` file.
COMPILED_SCRIPT_SUFFIXES = frozenset({".ts", ".tsx", ".jsx", ".mts", ".cts"})

# Script sources that browsers load as-is.
PLAIN_SCRIPT_SUFFIXES = frozenset({".js", ".mjs"})

# Script references naming a client module shipped with dess.
CLIENT_MODULE_PREFIX = "dess:"

# Output directory, under the output root, for bundled client modules.
CLIENT_OUTPUT_DIR = "_dess"


def deployable_path(path: Path) -> Path:
    """Return *path* with a compiled-script suffix rewritten to ``.js``."""
    if path.suffix.lower() in COMPILED_SCRIPT_SUFFIXES:
        return path.with_suffix(".js")
    return path


def client_module(ref: str) -> Path:
    """Return the bundled source for a ``dess:<name>`` script reference.

    Raises:
        BundleError: If dess ships no client module called *name*.

    """
    from dess.theme import bundled_client_dir

    name = ref.removeprefix(CLIENT_MODULE_PREFIX)
    source = bundled_client_dir() / f"{name}.js"
    if not name or "/" in name or "\\" in name or not source.is_file():
        raise BundleError(Path(ref), "no bundled client module with that name")
    return source


class ScriptBundler(Protocol):
    """Turns one script source into one deployable file."""

    async def bundle(self, source: Path, dest: Path) -> None: ...


class EsbuildBundler:
    """Bundles scripts with the ``esbuild`` executable.

    Without esbuild, plain ``.js`` / ``.mjs`` sources are copied verbatim
    and anything that needs compiling fails with :class:`BundleError`.

    Args:
        executable: Path to esbuild.  Looked up on ``PATH`` when omitted.
        minify: Pass ``--minify`` to esbuild.

    """

    def __init__(self, executable: str | None = None, *, minify: bool = False) -> None:
        self._executable = executable or shutil.which("esbuild")
        self._minify = minify

    @property
    def available(self) -> bool:
        """Whether an esbuild executable was found."""
        return self._executable is not None

    async def bundle(self, source: Path, dest: Path) -> None:
        """Bundle *source* into *dest*.

        Raises:
            BundleError: If the source is missing, esbuild is needed but not
                installed, or esbuild exits non-zero.

        """
        if not source.is_file():
            raise BundleError(source, "file not found")

        await asyncio.to_thread(dest.parent.mkdir, parents=True, exist_ok=True)

        if self._executable is None:
            if source.suffix.lower() not in PLAIN_SCRIPT_SUFFIXES:
                raise BundleError(source, "esbuild is not installed")
            await asyncio.to_thread(shutil.copyfile, source, dest)
            return

        args = [
            str(source),
            "--bundle",
            "--format=esm",
            f"--outfile={dest}",
            "--log-level=error",
        ]
        if self._minify:
            args.append("--minify")

        try:
            proc = await asyncio.create_subprocess_exec(
                self._executable,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise BundleError(source, exc) from exc

        _stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            reason = stderr.decode("utf-8", errors="replace").strip() or f"esbuild exited {proc.returncode}"
            raise BundleError(source, reason)


def copy_public(public_path: Path, dest_root: Path) -> tuple[ExportedFile, ...]:
    """Recursively copy the static-assets directory to *dest_root*.

    Every file is copied byte-for-byte, dotfiles included.

    Args:
        public_path: Source directory (e.g. ``src_dir/public``).
        dest_root: Destination directory (e.g. ``out_dir/public``).

    Returns:
        Tuple of :class:`ExportedFile` entries, one per copied file.

    """
    if not public_path.is_dir():
        return ()

    results: list[ExportedFile] = []
    for src_file in sorted(public_path.rglob("*")):
        if not src_file.is_file():
            continue
        relative = src_file.relative_to(public_path)
        results.append(_copy_file(src_file, dest_root / relative, source_path=f"/{public_path.name}/{relative.as_posix()}"))

    return tuple(results)


def copy_asset(path: Path, config: DessConfig) -> ExportedFile:
    """Copy one file from the static-assets directory into the output tree.

    Raises:
        ExportError: If *path* is not inside ``config.public_path``.

    """
    path = Path(path).resolve()
    public_path = config.public_path.resolve()
    if not path.is_relative_to(public_path):
        msg = f"{path} is not inside {public_path}"
        raise ExportError(msg)

    relative = path.relative_to(public_path)
    return _copy_file(
        path,
        config.public_out_path / relative,
        source_path=f"/{config.public_dir}/{relative.as_posix()}",
    )


def _copy_file(src_file: Path, dest_file: Path, *, source_path: str) -> ExportedFile:
    t0 = time.perf_counter()

    dest_file.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src_file, dest_file)

    size = dest_file.stat().st_size
    elapsed = (time.perf_counter() - t0) * 1000
    logger.debug("Copied %s -> %s", src_file, dest_file)

    return ExportedFile(
        source_path=source_path,
        output_path=dest_file,
        source_type="asset",
        size_bytes=size,
        duration_ms=elapsed,
    )
