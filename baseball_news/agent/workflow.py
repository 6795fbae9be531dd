"""Collection workflow: discover, generate, deduplicate, persist.

One call handles one category. Seed and sync runs share this flow and
differ only in the discovery limit.
"""

import logging
from dataclasses import dataclass

from baseball_news.connectors.generation_backend import GenerationFailedError
from baseball_news.connectors.news_store import NewsRepository
from baseball_news.engines.deduplication import dedupe
from baseball_news.engines.generator import NewsGenerator
from baseball_news.engines.observability import RunMetrics, log_stage_counts, write_run_log
from baseball_news.engines.source_fetcher import SourceFetcher


logger = logging.getLogger(__name__)


@dataclass
class CollectionResult:
    """Result of one collection run.

    Attributes:
        inserted: Rows inserted into the repository
        metrics: Run metrics collected during execution
    """
    inserted: int
    metrics: RunMetrics


def run_collection(
    fetcher: SourceFetcher,
    generator: NewsGenerator,
    repository: NewsRepository,
    limit: int,
    mode: str,
    run_log_dir: str = "",
) -> CollectionResult:
    """Run the discover, generate, dedupe and save flow for one category.

    Stages:
    1. Discover up to ``limit`` candidate URLs from the listing page(s)
    2. Skip URLs already stored, so they are not generated again
    3. Generate articles for the remaining URLs
    4. Deduplicate against the URLs stored at that point
    5. Save the new articles

    Per-batch and per-item generation failures are absorbed by the
    generator as long as at least one request reaches the backend.
    Discovery failures, backend connection failures and runs in which
    every generation request failed propagate to the caller.

    Args:
        fetcher: Source fetcher of the category
        generator: Article generator
        repository: Article repository
        limit: Maximum URLs to discover
        mode: "seed" or "sync", for logs and metrics
        run_log_dir: Directory for the JSON run log; empty disables it

    Returns:
        CollectionResult with the inserted count and run metrics

    Raises:
        DiscoveryError: If the listing page cannot be fetched or parsed
        BackendConnectionError: If the generation backend is unreachable
        GenerationFailedError: If every generation request failed
    """
    category = fetcher.category
    metrics = RunMetrics(category=category.value, mode=mode)

    logger.info(f"Starting {mode} run for {category.value} (limit={limit})")

    try:
        return _collect(fetcher, generator, repository, limit, metrics, run_log_dir)
    except Exception as e:
        metrics.errors.append(f"{type(e).__name__}: {e}")
        _finish(metrics, run_log_dir)
        raise


def _collect(
    fetcher: SourceFetcher,
    generator: NewsGenerator,
    repository: NewsRepository,
    limit: int,
    metrics: RunMetrics,
    run_log_dir: str,
) -> CollectionResult:
    category = fetcher.category
    mode = metrics.mode

    urls = fetcher.discover(limit)
    metrics.discovered_count = len(urls)
    log_stage_counts("discovered", len(urls), category.value)

    if not urls:
        logger.warning(f"No article URLs discovered for {category.value}")
        _finish(metrics, run_log_dir)
        return CollectionResult(inserted=0, metrics=metrics)

    known = repository.existing_reference_urls(category)
    pending = [url for url in urls if url not in known]
    log_stage_counts("pending", len(pending), category.value)

    if not pending:
        logger.info(f"All discovered {category.value} URLs are already stored")
        _finish(metrics, run_log_dir)
        return CollectionResult(inserted=0, metrics=metrics)

    batch_result = generator.generate(pending, category, fetcher.source_name)
    metrics.generated_count = len(batch_result.articles)
    metrics.failed_urls = list(batch_result.failed_urls)
    log_stage_counts("generated", len(batch_result.articles), category.value)

    if batch_result.all_requests_failed:
        raise GenerationFailedError(
            f"All {batch_result.requests_failed} generation requests failed for "
            f"{category.value}: {batch_result.last_error}"
        )

    # Generation can take minutes; compare against what is stored now
    dedup_result = dedupe(batch_result.articles, repository.existing_reference_urls(category))
    metrics.deduped_count = len(dedup_result.articles)
    log_stage_counts("deduped", len(dedup_result.articles), category.value)

    inserted = repository.save(dedup_result.articles) if dedup_result.articles else 0
    metrics.inserted_count = inserted
    log_stage_counts("inserted", inserted, category.value)

    logger.info(f"{mode.capitalize()} run for {category.value} completed: {inserted} inserted")

    _finish(metrics, run_log_dir)
    return CollectionResult(inserted=inserted, metrics=metrics)


def _finish(metrics: RunMetrics, run_log_dir: str) -> None:
    if not run_log_dir:
        return
    try:
        write_run_log(metrics, run_log_dir)
    except OSError as e:
        logger.error(f"Failed to write run log: {e}")
