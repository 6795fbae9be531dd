"""Base class for listing-page scrapers that discover article URLs."""

import logging
import time
from typing import Callable

import requests
from bs4 import BeautifulSoup
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from baseball_news.config.settings import Settings
from baseball_news.engines.article_normalizer import Category, normalize_url


logger = logging.getLogger(__name__)


BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/18.3 Safari/605.1.15"
)


def is_retryable_fetch_error(error: BaseException) -> bool:
    """Connection failures, timeouts, 429 and 5xx responses are worth retrying."""
    if isinstance(error, (requests.ConnectionError, requests.Timeout)):
        return True
    if isinstance(error, requests.HTTPError) and error.response is not None:
        status = error.response.status_code
        return status == 429 or status >= 500
    return False


class DiscoveryError(Exception):
    """Raised when a listing page cannot be fetched or parsed.

    Attributes:
        category: Category whose listing failed
        url: Listing page URL that failed
        cause: Description of the underlying failure
    """

    def __init__(self, category: Category, url: str, cause: str) -> None:
        self.category = category
        self.url = url
        self.cause = cause
        super().__init__(f"Failed to discover {category.value} articles from {url}: {cause}")


class ListingScraper:
    """Discovers candidate article URLs on one source's listing page(s).

    Subclasses declare the source (category, name, listing URL) and implement
    ``extract_candidates``, the structural rule deciding which links on a
    page are article detail pages. The base class handles fetching with
    retries, pagination, limit enforcement and de-duplication.

    Attributes:
        category: Category this source feeds
        source_name: Display name stored as reference_name
        listing_url: First listing page
        paginated: Whether further pages are read to reach the limit
        accept_language: Accept-Language header sent to the source
    """

    category: Category
    source_name: str
    listing_url: str
    paginated: bool = False
    accept_language: str = "ja,en-US;q=0.9,en;q=0.8"

    def __init__(self, settings: Settings, sleep: Callable[[float], None] = time.sleep):
        self.settings = settings
        self._sleep = sleep

    def page_url(self, page: int) -> str:
        """Return the URL of the given 1-based listing page."""
        return self.listing_url

    def extract_candidates(self, html: str, page_url: str) -> list[str]:
        """Return normalized article URLs found on one page, in page order."""
        raise NotImplementedError

    def discover(self, limit: int) -> list[str]:
        """Fetch listing page(s) and return up to ``limit`` unique article URLs.

        Pagination stops when the limit is reached, when a page yields no new
        URLs, or after ``settings.max_listing_pages`` pages.

        Args:
            limit: Maximum number of URLs to return

        Returns:
            Normalized URLs, most recent first (page order)

        Raises:
            DiscoveryError: If a page cannot be fetched or parsed
        """
        if limit < 1:
            return []

        collected: list[str] = []
        seen: set[str] = set()
        max_pages = self.settings.max_listing_pages if self.paginated else 1
        page = 1

        while len(collected) < limit and page <= max_pages:
            url = self.page_url(page)
            logger.debug(f"Fetching {self.category.value} listing page: {url}")

            try:
                html = self._fetch_url(url)
            except requests.RequestException as e:
                raise DiscoveryError(self.category, url, str(e)) from e

            try:
                candidates = self.extract_candidates(html, url)
            except Exception as e:
                raise DiscoveryError(self.category, url, f"failed to parse listing: {e}") from e

            new_on_page = 0
            for candidate in candidates:
                if len(collected) >= limit:
                    break
                if candidate in seen:
                    continue
                seen.add(candidate)
                collected.append(candidate)
                new_on_page += 1

            if new_on_page == 0:
                break

            page += 1

        logger.info(f"Discovered {len(collected)} {self.category.value} article URLs")
        return collected

    def _soup(self, html: str) -> BeautifulSoup:
        return BeautifulSoup(html, "lxml")

    def _normalized_links(self, soup: BeautifulSoup, selector: str, page_url: str) -> list[str]:
        """Normalize the href of every element matching ``selector``."""
        links: list[str] = []
        for anchor in soup.select(selector):
            href = (anchor.get("href") or "").strip()
            if not href or href.startswith(("javascript:", "mailto:", "#")):
                continue
            normalized = normalize_url(href, page_url)
            if normalized:
                links.append(normalized)
        return links

    def _fetch_url(self, url: str) -> str:
        """Fetch content from URL with retry logic.

        Args:
            url: URL to fetch

        Returns:
            Response content as string

        Raises:
            requests.RequestException: On network errors after retries, or at
                once for errors that retrying cannot fix (such as a 404)
        """
        headers = {
            "User-Agent": BROWSER_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": self.accept_language,
        }

        for attempt in Retrying(
            stop=stop_after_attempt(self.settings.max_retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception(is_retryable_fetch_error),
            sleep=self._sleep,
            reraise=True,
        ):
            with attempt:
                response = requests.get(
                    url,
                    headers=headers,
                    timeout=self.settings.request_timeout_seconds,
                )
                response.raise_for_status()
                return response.text
