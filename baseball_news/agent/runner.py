"""Runner module for the baseball news pipeline.

This module wires together all components and runs seed and sync jobs
from the command line.
"""

import logging
import sys

from baseball_news.agent.jobs import JobState, NewsOrchestrator
from baseball_news.config.settings import ConfigurationError, Settings, load_settings
from baseball_news.connectors.generation_backend import build_backend
from baseball_news.connectors.news_store import InMemoryNewsRepository, NewsRepository
from baseball_news.engines.article_normalizer import Category
from baseball_news.engines.generator import NewsGenerator
from baseball_news.engines.source_fetcher import build_fetchers


# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_PIPELINE_ERROR = 2


logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application.

    Args:
        verbose: If True, set log level to DEBUG. Otherwise INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


def build_repository(settings: Settings) -> NewsRepository:
    """Return a Postgres repository when DATABASE_URL is set, else in-memory."""
    if not settings.database_url:
        logger.warning("DATABASE_URL is not set; articles are kept in memory only")
        return InMemoryNewsRepository()

    from baseball_news.connectors.postgres_store import PostgresNewsRepository

    repository = PostgresNewsRepository(settings.database_url)
    repository.ensure_schema()
    return repository


def build_orchestrator(
    settings: Settings,
    repository: NewsRepository | None = None,
) -> NewsOrchestrator:
    """Wire the backend, generator, fetchers and repository together."""
    backend = build_backend(settings)
    logger.info(f"Using generation backend: {backend.name}")

    return NewsOrchestrator(
        repository=repository if repository is not None else build_repository(settings),
        generator=NewsGenerator.from_settings(backend, settings),
        fetchers=build_fetchers(settings),
        seed_limit=settings.seed_limit,
        sync_limit=settings.sync_limit,
        run_log_dir=settings.run_log_dir,
    )


def _load_orchestrator() -> NewsOrchestrator | None:
    try:
        settings = load_settings(validate=True)
        logger.info("Configuration loaded successfully")
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return None

    try:
        return build_orchestrator(settings)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return None


def run_sync(categories: list[Category], verbose: bool = False) -> int:
    """Sync the given categories one after another.

    A failing category is logged and does not stop the others.

    Returns:
        Exit code:
        - 0: Every category synced
        - 1: Configuration error
        - 2: At least one category failed
    """
    setup_logging(verbose)

    orchestrator = _load_orchestrator()
    if orchestrator is None:
        return EXIT_CONFIG_ERROR

    failed: list[str] = []
    for category in categories:
        try:
            result = orchestrator.sync_latest(category)
            logger.info(f"Sync for {category.value}: {result.inserted} inserted")
        except Exception as e:
            logger.exception(f"Sync for {category.value} failed: {e}")
            failed.append(category.value)

    if failed:
        logger.warning(f"Sync completed with failures: {', '.join(failed)}")
        return EXIT_PIPELINE_ERROR

    logger.info("Sync completed successfully")
    return EXIT_SUCCESS


def run_seed(category: Category, verbose: bool = False) -> int:
    """Seed one category in the foreground and report the final status."""
    setup_logging(verbose)

    orchestrator = _load_orchestrator()
    if orchestrator is None:
        return EXIT_CONFIG_ERROR

    try:
        orchestrator.start_seed_if_empty(category)
        orchestrator.worker.wait_idle()
        status = orchestrator.get_seed_status(category)
    except Exception as e:
        logger.exception(f"Seed for {category.value} failed: {e}")
        return EXIT_PIPELINE_ERROR
    finally:
        orchestrator.shutdown(timeout=5.0)

    logger.info(f"Seed status for {category.value}: {status.to_dict()}")
    return EXIT_PIPELINE_ERROR if status.state is JobState.ERROR else EXIT_SUCCESS
