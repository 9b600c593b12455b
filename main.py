# main.py

"""Entry point for the catalog_sync command-line interface."""

import argparse
import asyncio
import logging
import sys

from catalog_sync.config.logging_config import setup_logging
from catalog_sync.config.settings import Settings
from catalog_sync.filters.projections import CatalogQuery

logger = logging.getLogger("catalog_sync.main")


def _add_view_arguments(parser: argparse.ArgumentParser) -> None:
    """Arguments shared by the ``show`` and ``watch`` commands."""
    from catalog_sync.cli.runner import VIEWS

    parser.add_argument(
        "-v",
        "--view",
        choices=VIEWS,
        default="listing",
        help="Which projection to print (default: listing).",
    )
    parser.add_argument(
        "-c",
        "--category",
        default="all",
        help="Category filter for the listing view (default: all).",
    )
    parser.add_argument(
        "-b",
        "--brand",
        default="all",
        help="Brand filter for the listing view (default: all).",
    )
    parser.add_argument(
        "-q",
        "--search",
        default="",
        help="Case-insensitive search term.",
    )
    parser.add_argument(
        "-s",
        "--sort",
        choices=Settings.SORT_KEYS,
        default="newest",
        dest="sort_by",
        help="Sort order (default: newest).",
    )
    parser.add_argument(
        "-p",
        "--page",
        type=int,
        default=1,
        help="Number of cumulative pages to show (default: 1).",
    )
    parser.add_argument(
        "--page-size",
        type=int,
        default=Settings.PAGE_SIZE,
        dest="page_size",
        help=f"Products per page (default: {Settings.PAGE_SIZE}).",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="json",
        dest="output_format",
        help="Output format (default: json).",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="catalog_sync",
        description="Storefront catalog synchronisation engine.",
        epilog=f"API: {Settings.API_BASE_URL}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show INFO messages on stderr (default: CATALOG_LOG_LEVEL).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    show = sub.add_parser("show", help="Load the catalog once and print it.")
    _add_view_arguments(show)

    watch = sub.add_parser(
        "watch", help="Keep the catalog in sync and re-print on change."
    )
    _add_view_arguments(watch)
    watch.add_argument(
        "-d",
        "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds (default: run until Ctrl-C).",
    )

    sub.add_parser("health", help="Check the catalog API endpoints.")
    return parser


def _query_from_args(args: argparse.Namespace) -> CatalogQuery:
    return CatalogQuery(
        category=args.category,
        brand=args.brand,
        search=args.search,
        sort_by=args.sort_by,
        page=args.page,
        page_size=args.page_size,
    )


def _run_show(args: argparse.Namespace) -> None:
    """Print one view of the catalog and exit."""
    from catalog_sync.cli.runner import cli_show

    exit_code = asyncio.run(
        cli_show(args.view, _query_from_args(args), args.output_format)
    )
    sys.exit(exit_code)


def _run_watch(args: argparse.Namespace) -> None:
    """Run a live catalog context until the duration elapses."""
    from catalog_sync.cli.runner import cli_watch

    try:
        exit_code = asyncio.run(
            cli_watch(
                args.view,
                _query_from_args(args),
                args.output_format,
                args.duration,
            )
        )
    except KeyboardInterrupt:
        logger.info("Watch interrupted by user")
        exit_code = 0
    sys.exit(exit_code)


def _run_health_check() -> None:
    """Run catalog API connectivity health check."""
    from catalog_sync.cli.runner import run_health_check

    exit_code = asyncio.run(run_health_check())
    sys.exit(exit_code)


def main() -> None:
    """Route to the requested sub-command."""
    parser = _build_parser()
    args = parser.parse_args()

    log_file = setup_logging("INFO" if args.verbose else None)
    logger.info("catalog_sync starting, log file: %s", log_file)

    if args.command == "health":
        _run_health_check()
    elif args.command == "watch":
        _run_watch(args)
    else:
        _run_show(args)


if __name__ == "__main__":
    main()
