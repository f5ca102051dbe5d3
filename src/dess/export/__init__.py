"""Export layer: rendering pages and writing the output tree."""

from dess.export.static import BuildResult, ExportedFile, PageFailure, SiteBuilder
from dess.export.assets import EsbuildBundler, ScriptBundler, copy_asset, copy_public
from dess.export.page import PageRenderer, RenderedPage, ScriptAsset

__all__ = [
    "BuildResult",
    "EsbuildBundler",
    "ExportedFile",
    "PageFailure",
    "PageRenderer",
    "RenderedPage",
    "ScriptAsset",
    "ScriptBundler",
    "SiteBuilder",
    "copy_asset",
    "copy_public",
]
