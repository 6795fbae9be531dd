"""Engines module - core processing components."""

from baseball_news.engines.article_normalizer import Category, GeneratedArticle, normalize_url
from baseball_news.engines.deduplication import DeduplicationResult, dedupe
from baseball_news.engines.json_recovery import MalformedOutputError, extract_json_array
from baseball_news.engines.listing_scraper import DiscoveryError

__all__ = [
    # Data model
    "Category",
    "GeneratedArticle",
    "normalize_url",
    # Deduplication
    "DeduplicationResult",
    "dedupe",
    # Output recovery
    "MalformedOutputError",
    "extract_json_array",
    # Discovery
    "DiscoveryError",
]
