"""Command-line interface for animatch."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from . import __version__


def _load_dotenv_files() -> None:
    """Load a .env file from the working directory (or its parents)."""
    dotenv_path = find_dotenv(usecwd=True)
    if dotenv_path:
        load_dotenv(dotenv_path, override=False)


def _add_db_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--db",
        type=Path,
        help="Catalog DB path (default: settings catalog_db)",
    )


def _add_json_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        action="store_true",
        help="Emit machine-readable JSON output",
    )


def build_parser() -> argparse.ArgumentParser:
    from .settings import default_config_path

    parser = argparse.ArgumentParser(
        prog="animatch",
        description="Recognize which catalogued anime a noisy title refers to",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"animatch {__version__}",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=default_config_path(),
        help="Settings path (default: ~/.config/animatch/settings.json)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override the configured log level",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    normalize_parser = subparsers.add_parser(
        "normalize",
        help="Show the normalized comparison form of titles",
    )
    normalize_parser.add_argument("titles", nargs="+", help="Raw titles")
    _add_json_argument(normalize_parser)

    import_parser = subparsers.add_parser(
        "import",
        help="Import a JSON catalog file into the catalog DB",
    )
    import_parser.add_argument("catalog", type=Path, help="JSON array of anime objects")
    _add_db_argument(import_parser)
    _add_json_argument(import_parser)

    recognize_parser = subparsers.add_parser(
        "recognize",
        help="Recognize raw titles against the catalog",
    )
    recognize_parser.add_argument("titles", nargs="+", help="Raw titles as detected")
    _add_db_argument(recognize_parser)
    _add_json_argument(recognize_parser)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    _load_dotenv_files()
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        from .settings import load_settings

        settings = load_settings(args.config)
        logging.basicConfig(
            level=args.log_level or settings.log_level,
            format="%(levelname)s: %(name)s: %(message)s",
        )

        if args.command == "normalize":
            from .commands.normalize import run_normalize
            return run_normalize(args)

        from .infrastructure.catalog_store import CatalogStore

        store = CatalogStore(args.db or settings.catalog_db)
        try:
            if args.command == "import":
                from .commands.import_catalog import run_import
                return run_import(args, store=store)
            elif args.command == "recognize":
                from .commands.recognize import run_recognize
                return run_recognize(args, store=store)
            else:
                parser.print_help()
                return 1
        finally:
            store.close()
    except Exception as exc:  # pragma: no cover - exercised in CLI tests
        from .errors import exit_code_for_exception

        print(str(exc), file=sys.stderr)
        return exit_code_for_exception(exc)


if __name__ == "__main__":
    sys.exit(main())
