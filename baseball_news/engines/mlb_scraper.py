"""MLB.com news listing scraper."""

import re

from baseball_news.engines.article_normalizer import Category, normalize_url
from baseball_news.engines.listing_scraper import ListingScraper


MLB_LISTING_URL = "https://www.mlb.com/news"

# Article cards carry the story slug as their id
SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$", re.IGNORECASE)

AD_ID_PREFIX = "ad-"


class MLBNewsScraper(ListingScraper):
    """Scraper for the MLB.com news listing.

    Each story card is an ``<article id="slug">`` element; the article URL
    is ``https://www.mlb.com/news/{slug}``. Ad slots (ids starting with
    ``ad-``) and ids that are not plain slugs are skipped.
    """

    category = Category.MLB
    source_name = "MLB.com | The Official Site of Major League Baseball"
    listing_url = MLB_LISTING_URL
    accept_language = "en-US,en;q=0.9,ja;q=0.8"

    def extract_candidates(self, html: str, page_url: str) -> list[str]:
        soup = self._soup(html)
        urls: list[str] = []

        for element in soup.select("article[id]"):
            article_id = (element.get("id") or "").strip()
            if not article_id or article_id.lower().startswith(AD_ID_PREFIX):
                continue
            if not SLUG_PATTERN.match(article_id):
                continue
            urls.append(normalize_url(f"{MLB_LISTING_URL}/{article_id}"))

        return urls
