"""News repository protocol and the in-memory implementation."""

import logging
import threading
from typing import Protocol, runtime_checkable

from baseball_news.engines.article_normalizer import Category, GeneratedArticle, normalize_url


logger = logging.getLogger(__name__)


@runtime_checkable
class NewsRepository(Protocol):
    """Persistence boundary for generated articles.

    Implementations enforce uniqueness of ``reference_url``: saving an
    article whose URL is already stored skips that article only and
    leaves the rest of the call unaffected.
    """

    def count(self, category: Category) -> int:
        """Return the number of stored articles in a category."""
        ...

    def existing_reference_urls(self, category: Category) -> set[str]:
        """Return the reference URLs stored for a category."""
        ...

    def save(self, articles: list[GeneratedArticle]) -> int:
        """Store articles and return how many rows were inserted."""
        ...

    def find_by_category(self, category: Category, limit: int = 100) -> list[GeneratedArticle]:
        """Return the most recently published articles of a category."""
        ...

    def find_by_reference_url(self, reference_url: str) -> GeneratedArticle | None:
        """Return the article stored for a reference URL, if any."""
        ...


class InMemoryNewsRepository:
    """Thread-safe repository held in process memory.

    Used for local runs without a database and in tests.
    """

    def __init__(self, articles: list[GeneratedArticle] | None = None) -> None:
        self._lock = threading.Lock()
        self._articles: dict[str, GeneratedArticle] = {}
        if articles:
            self.save(articles)

    def count(self, category: Category) -> int:
        with self._lock:
            return sum(1 for a in self._articles.values() if a.category == category)

    def existing_reference_urls(self, category: Category) -> set[str]:
        with self._lock:
            return {url for url, a in self._articles.items() if a.category == category}

    def save(self, articles: list[GeneratedArticle]) -> int:
        inserted = 0
        with self._lock:
            for article in articles:
                key = normalize_url(article.reference_url)
                if key in self._articles:
                    logger.warning(f"Skipping duplicate reference_url: {key}")
                    continue
                self._articles[key] = article
                inserted += 1
        return inserted

    def find_by_category(self, category: Category, limit: int = 100) -> list[GeneratedArticle]:
        with self._lock:
            matching = [a for a in self._articles.values() if a.category == category]
        matching.sort(key=lambda a: a.reference_published_at, reverse=True)
        return matching[:limit]

    def find_by_reference_url(self, reference_url: str) -> GeneratedArticle | None:
        with self._lock:
            return self._articles.get(normalize_url(reference_url))
