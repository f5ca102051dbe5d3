"""Dess: a markdown static site generator with a live-reloading dev server.

Markdown documents under a source directory become HTML pages in an
output directory.  Links between pages are rewritten to the rendered
files, headings get anchors, and each page is wrapped in a layout.

Quick start::

    import dess

    dess.build("my-site/")        # Render to ./dist
    dess.serve("my-site/")        # Render, then serve the output
    dess.dev("my-site/")          # Serve and rebuild on change, with live reload

Built on:

    chirp       Web framework     (serves the output tree)
    pounce      ASGI server       (runs the app)
    kida        Template engine   (renders layouts)
    markdown-it Markdown parser   (tokenizes content)
    watchfiles  File watcher      (drives rebuilds)

"""

# PEP 703: Declare this module as free-threading safe
_Py_mod_gil = 0

__version__ = "0.1.0"
__all__ = [
    "DessConfig",
    "__version__",
    "build",
    "dev",
    "serve",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import dess`` fast while providing a clean top-level API.
    """
    if name == "DessConfig":
        from dess.config import DessConfig

        return DessConfig

    if name == "build":
        from dess.app import build

        return build

    if name == "dev":
        from dess.app import dev

        return dev

    if name == "serve":
        from dess.app import serve

        return serve

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
