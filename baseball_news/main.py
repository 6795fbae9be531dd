#!/usr/bin/env python3
"""Main entry point for the baseball news pipeline.

Usage:
    baseball-news serve --port 8000      # Run the HTTP API
    baseball-news sync                   # Sync every category
    baseball-news sync --category npb    # Sync one category
    baseball-news seed --category mlb    # Seed one category in the foreground
    baseball-news -v sync                # Verbose logging

Scheduling with cron, one category every ten minutes within the hour,
every six hours:

    0 */6 * * *  baseball-news sync --category npb
    10 */6 * * * baseball-news sync --category mlb
    20 */6 * * * baseball-news sync --category hs
    30 */6 * * * baseball-news sync --category other
"""

import argparse
import logging
import sys

from baseball_news.agent.runner import (
    EXIT_CONFIG_ERROR,
    EXIT_SUCCESS,
    build_orchestrator,
    run_seed,
    run_sync,
    setup_logging,
)
from baseball_news.config.settings import ConfigurationError, load_settings
from baseball_news.engines.article_normalizer import Category


logger = logging.getLogger(__name__)


def _category(value: str) -> Category:
    try:
        return Category.parse(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        args: Command line arguments. If None, uses sys.argv.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        prog="baseball-news",
        description="Baseball news pipeline - scrape listings and generate articles",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging output",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve.add_argument("--port", type=int, default=8000, help="Bind port")

    sync = subparsers.add_parser("sync", help="Fetch and store the newest articles")
    sync.add_argument(
        "--category",
        type=_category,
        help="Category to sync (default: all categories)",
    )

    seed = subparsers.add_parser("seed", help="Fill an empty category")
    seed.add_argument("--category", type=_category, required=True, help="Category to seed")

    return parser.parse_args(args)


def serve(host: str, port: int, verbose: bool = False) -> int:
    """Run the HTTP API until interrupted."""
    import uvicorn

    from baseball_news.api.app import create_app

    setup_logging(verbose)

    try:
        settings = load_settings(validate=True)
        orchestrator = build_orchestrator(settings)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    uvicorn.run(create_app(orchestrator), host=host, port=port)
    return EXIT_SUCCESS


def main(args: list[str] | None = None) -> int:
    """Main entry point.

    Args:
        args: Command line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    parsed = parse_args(args)

    if parsed.command == "serve":
        return serve(parsed.host, parsed.port, verbose=parsed.verbose)
    if parsed.command == "sync":
        categories = [parsed.category] if parsed.category else list(Category)
        return run_sync(categories, verbose=parsed.verbose)
    return run_seed(parsed.category, verbose=parsed.verbose)


if __name__ == "__main__":
    sys.exit(main())
