"""Nikkan Sports high school baseball listing scraper."""

from baseball_news.engines.article_normalizer import Category, normalize_url
from baseball_news.engines.listing_scraper import ListingScraper


HS_LISTING_URL = "https://www.nikkansports.com/baseball/highschool/news/index.html"

HS_ARTICLE_PATH = "/baseball/highschool/news/"


class NikkanSportsHighSchoolScraper(ListingScraper):
    """Scraper for nikkansports.com high school baseball news.

    Articles are the links inside ``ul.newslist`` whose path lies under
    ``/baseball/highschool/news/``. The list is rendered newest first.
    """

    category = Category.HS
    source_name = "nikkansports.com | 日刊スポーツ"
    listing_url = HS_LISTING_URL

    def extract_candidates(self, html: str, page_url: str) -> list[str]:
        soup = self._soup(html)
        listing = normalize_url(self.listing_url)
        return [
            url for url in self._normalized_links(soup, "ul.newslist a[href]", page_url)
            if HS_ARTICLE_PATH in url and url != listing
        ]
