"""Shared test fixtures for dess."""

from __future__ import annotations

from pathlib import Path

import pytest

from dess.config import DessConfig


@pytest.fixture
def tmp_site(tmp_path: Path) -> Path:
    """Create a small source tree for testing.

    Returns the source root::

        index.md          frontmatter title, links to /blog/post1 and /about#team
        about.md          two headings
        blog/post1.md     links back to /index
        README.md         ignored by name
        public/style.css  static asset
    """
    src = tmp_path / "site"
    src.mkdir()
    (src / "index.md").write_text(
        "---\ntitle: Home\n---\n\n# Welcome\n\n"
        "Read the [first post](/blog/post1) or meet the [team](/about#team).\n",
        encoding="utf-8",
    )
    (src / "about.md").write_text(
        "# About\n\n## Team\n\nWe are small.\n",
        encoding="utf-8",
    )

    blog = src / "blog"
    blog.mkdir()
    (blog / "post1.md").write_text(
        "# First Post\n\nBack [home](/index).\n",
        encoding="utf-8",
    )

    (src / "README.md").write_text("# Not a page\n", encoding="utf-8")

    public = src / "public"
    public.mkdir()
    (public / "style.css").write_text("body { margin: 0; }\n", encoding="utf-8")

    return src


@pytest.fixture
def config(tmp_site: Path) -> DessConfig:
    """A DessConfig for tmp_site writing to a sibling ``dist`` directory."""
    return DessConfig(src_dir=tmp_site, out_dir=tmp_site.parent / "dist")


class RecordingBundler:
    """Script bundler that writes a stub file and records each call."""

    def __init__(self) -> None:
        self.calls: list[tuple[Path, Path]] = []

    async def bundle(self, source: Path, dest: Path) -> None:
        self.calls.append((source, dest))
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(f"// bundled from {source.name}\n", encoding="utf-8")


@pytest.fixture
def bundler() -> RecordingBundler:
    return RecordingBundler()
