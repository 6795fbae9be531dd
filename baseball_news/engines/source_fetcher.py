"""Source fetcher protocol and the per-category scraper registry."""

from typing import Protocol, runtime_checkable

from baseball_news.config.settings import Settings
from baseball_news.engines.article_normalizer import Category
from baseball_news.engines.listing_scraper import ListingScraper
from baseball_news.engines.mlb_scraper import MLBNewsScraper
from baseball_news.engines.nikkansports_scraper import NikkanSportsHighSchoolScraper
from baseball_news.engines.npb_scraper import NPBNewsScraper
from baseball_news.engines.sanspo_scraper import SanspoBaseballScraper


@runtime_checkable
class SourceFetcher(Protocol):
    """Protocol defining the interface for source fetchers.

    Any object with these members can feed the collection workflow; the
    listing scrapers below are the production implementations and tests
    substitute simple fakes.
    """

    @property
    def category(self) -> Category:
        """Return the category this source feeds."""
        ...

    @property
    def source_name(self) -> str:
        """Return the source display name."""
        ...

    def discover(self, limit: int) -> list[str]:
        """Return up to ``limit`` normalized article URLs, newest first.

        Raises:
            DiscoveryError: On network or parsing errors.
        """
        ...


SCRAPER_REGISTRY: dict[Category, type[ListingScraper]] = {
    Category.NPB: NPBNewsScraper,
    Category.MLB: MLBNewsScraper,
    Category.HS: NikkanSportsHighSchoolScraper,
    Category.OTHER: SanspoBaseballScraper,
}


def build_fetcher(category: Category, settings: Settings) -> SourceFetcher:
    """Instantiate the registered scraper for a category."""
    return SCRAPER_REGISTRY[category](settings)


def build_fetchers(settings: Settings) -> dict[Category, SourceFetcher]:
    """Instantiate one scraper per category."""
    return {category: build_fetcher(category, settings) for category in Category}
