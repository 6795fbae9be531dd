"""NPB.jp news listing scraper."""

from urllib.parse import urlparse

from baseball_news.engines.article_normalizer import Category
from baseball_news.engines.listing_scraper import ListingScraper


# NPB.jp all-news listing; later pages use ?page=N
NPB_LISTING_URL = "https://npb.jp/news/npb_all.html"

NPB_DETAIL_PATH = "/news/detail/"


class NPBNewsScraper(ListingScraper):
    """Scraper for the NPB.jp (Nippon Professional Baseball) news listing.

    Any link whose path contains ``/news/detail/`` is an article. The
    listing is paginated, so further pages are read until the limit is met.
    """

    category = Category.NPB
    source_name = "NPB.jp | 日本野球機構"
    listing_url = NPB_LISTING_URL
    paginated = True

    def page_url(self, page: int) -> str:
        if page <= 1:
            return self.listing_url
        return f"{self.listing_url}?page={page}"

    def extract_candidates(self, html: str, page_url: str) -> list[str]:
        soup = self._soup(html)
        return [
            url for url in self._normalized_links(soup, "a[href]", page_url)
            if NPB_DETAIL_PATH in urlparse(url).path
        ]
