"""CLI entrypoints for docsite commands."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from .config import SiteConfig, load_config
from .errors import DocsError
from .logging import configure_logging
from .server import DevServerOptions
from .site import build_site, serve_site


def _add_verbose_option(parser: argparse.ArgumentParser, *, suppress_default: bool = False) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Enable debug logging.",
    )


def _add_project_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Project root containing docsite.yml (defaults to current directory).",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Explicit configuration file; its directory becomes the project root.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docsite",
        description="Build static documentation sites from Markdown.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser("build", help="Render the site into the output directory.")
    _add_verbose_option(build_parser, suppress_default=True)
    _add_project_options(build_parser)

    dev_parser = subparsers.add_parser("dev", help="Serve the site and rebuild on change.")
    _add_verbose_option(dev_parser, suppress_default=True)
    _add_project_options(dev_parser)
    dev_parser.add_argument("--host", default=None, help="Interface to listen on (default: localhost).")
    dev_parser.add_argument("--port", type=int, default=None, help="Port to listen on (default: 3000).")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for docsite commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    try:
        config = load_config(Path(args.config) if args.config else Path(args.path))
        if args.command == "build":
            manifest = asyncio.run(build_site(config))
            print(
                f"Built {len(manifest.pages)} pages and {len(manifest.assets)} assets "
                f"in {manifest.build_time:.2f}s -> {_relativize(config.out_path)}"
            )
        elif args.command == "dev":
            asyncio.run(_run_dev(config, args.host, args.port))
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except DocsError as exc:
        parser.exit(1, f"{exc.format()}\n")
    except ValueError as exc:
        parser.exit(1, f"docsite {args.command} failed: {exc}\n")
    except KeyboardInterrupt:
        print("Stopped")


async def _run_dev(config: SiteConfig, host: str | None, port: int | None) -> None:
    options = DevServerOptions(
        host=host or config.dev.host,
        port=config.dev.port if port is None else port,
    )
    server = await serve_site(config, options=options)
    print(f"Serving {_relativize(config.out_path)} at {server.url}")
    await server.serve_forever()


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
