"""Dess CLI: dess build / dess serve / dess dev.

Entry point for the ``dess`` command-line interface.
"""

from __future__ import annotations

import argparse
import logging
import sys

from dess._errors import DessError

_LOG_FORMAT = "  %(levelname)s %(message)s"


def _add_site_options(parser: argparse.ArgumentParser) -> None:
    """Options shared by every subcommand."""
    parser.add_argument(
        "--src-dir", "--srcDir",
        dest="src_dir",
        default="./",
        help="Source directory (default: ./)",
    )
    parser.add_argument(
        "--out-dir", "--outDir",
        dest="out_dir",
        default=None,
        help="Output directory (default: ./dist)",
    )
    parser.add_argument("--port", type=int, default=None, help="Bind port (default: 3000)")
    parser.add_argument("--host", default=None, help="Bind address (default: 127.0.0.1)")
    parser.add_argument(
        "--layout",
        default=None,
        help="Default layout: a registered layout name or a template file",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Verbose logging, token dumps and the debug layout",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the dess CLI."""
    parser = argparse.ArgumentParser(
        prog="dess",
        description="Markdown static site generator with a live-reloading dev server.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # dess build
    build_parser = subparsers.add_parser("build", help="Render the site to static HTML files")
    _add_site_options(build_parser)

    # dess serve
    serve_parser = subparsers.add_parser("serve", help="Build once and serve the output directory")
    _add_site_options(serve_parser)

    # dess dev
    dev_parser = subparsers.add_parser("dev", help="Build, serve and rebuild on change with live reload")
    _add_site_options(dev_parser)

    # dess help
    subparsers.add_parser("help", help="Show this message")

    return parser


def _get_version() -> str:
    """Get the package version."""
    from dess import __version__

    return __version__


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=_LOG_FORMAT,
        stream=sys.stderr,
    )
    if not debug:
        # Keep markdown-it and watchfiles chatter out of normal output.
        logging.getLogger("markdown_it").setLevel(logging.WARNING)
        logging.getLogger("watchfiles").setLevel(logging.WARNING)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command in (None, "help"):
        parser.print_help()
        sys.exit(0)

    _configure_logging(bool(args.debug))

    from dess.app import build, dev, serve

    commands = {"build": build, "serve": serve, "dev": dev}
    overrides = {
        "out_dir": args.out_dir,
        "port": args.port,
        "host": args.host,
        "layout": args.layout,
        "debug": args.debug,
    }

    try:
        commands[args.command](args.src_dir, **overrides)
    except DessError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    main()
