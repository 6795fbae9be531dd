"""Sanspo other-baseball listing scraper."""

from urllib.parse import urlparse

import tldextract

from baseball_news.engines.article_normalizer import Category
from baseball_news.engines.listing_scraper import ListingScraper


SANSPO_LISTING_URL = "https://www.sanspo.com/sports/baseball/others/"

SANSPO_DOMAIN = "sanspo.com"

SANSPO_ARTICLE_PREFIX = "/article/"

# Bundled public suffix snapshot only; no network fetch
_extract_domain = tldextract.TLDExtract(suffix_list_urls=())


def is_sanspo_article(url: str) -> bool:
    """Return True for sanspo.com (or subdomain) URLs under /article/."""
    parsed = urlparse(url)
    extracted = _extract_domain(parsed.netloc)
    if f"{extracted.domain}.{extracted.suffix}".lower() != SANSPO_DOMAIN:
        return False
    return parsed.path.startswith(SANSPO_ARTICLE_PREFIX)


class SanspoBaseballScraper(ListingScraper):
    """Scraper for sanspo.com "other baseball" news.

    Article URLs look like ``https://www.sanspo.com/article/20260218-XXXXXX/``;
    every link on the page is kept if it points at that path on sanspo.com.
    """

    category = Category.OTHER
    source_name = "sanspo.com | サンスポ"
    listing_url = SANSPO_LISTING_URL

    def extract_candidates(self, html: str, page_url: str) -> list[str]:
        soup = self._soup(html)
        return [
            url for url in self._normalized_links(soup, "a[href]", page_url)
            if is_sanspo_article(url)
        ]
