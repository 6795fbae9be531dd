"""Deduplication of generated articles against already stored ones."""

import logging
from dataclasses import dataclass
from typing import Iterable

from baseball_news.engines.article_normalizer import GeneratedArticle, normalize_url


logger = logging.getLogger(__name__)


@dataclass
class DeduplicationResult:
    """Result of deduplication operation.

    Attributes:
        articles: Articles whose reference URL is new, in input order
        removed_count: Total number of articles removed
        removed_known: Number removed because the URL is already stored
        removed_repeated: Number removed because the URL repeats within the input
    """
    articles: list[GeneratedArticle]
    removed_count: int
    removed_known: int
    removed_repeated: int


def dedupe(
    articles: list[GeneratedArticle],
    known_reference_urls: Iterable[str],
) -> DeduplicationResult:
    """Drop articles whose reference URL is already known.

    Both sides are compared in ``normalize_url`` form, the same form used by
    discovery, so a stored URL differing only in query string, fragment, or
    host case still counts as known. When the input repeats a URL, the first
    occurrence is kept.

    Args:
        articles: Freshly generated articles
        known_reference_urls: Reference URLs already persisted

    Returns:
        DeduplicationResult containing the new articles and removal counts

    Example:
        >>> result = dedupe(articles, {"https://npb.jp/news/detail/1.html"})
        >>> all(a.reference_url != "https://npb.jp/news/detail/1.html" for a in result.articles)
        True
    """
    known = {normalize_url(url) for url in known_reference_urls}
    seen: set[str] = set()
    kept: list[GeneratedArticle] = []
    removed_known = 0
    removed_repeated = 0

    for article in articles:
        key = normalize_url(article.reference_url)
        if key in known:
            removed_known += 1
            continue
        if key in seen:
            removed_repeated += 1
            continue
        seen.add(key)
        kept.append(article)

    if removed_known:
        logger.info(f"Removed {removed_known} articles that are already stored")
    if removed_repeated:
        logger.info(f"Removed {removed_repeated} articles with repeated URLs")

    return DeduplicationResult(
        articles=kept,
        removed_count=removed_known + removed_repeated,
        removed_known=removed_known,
        removed_repeated=removed_repeated,
    )
