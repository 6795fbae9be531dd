"""Article data models and normalization utilities."""

import logging
import re
import unicodedata
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from urllib.parse import urljoin, urlparse, urlunparse

from dateutil import parser as date_parser
from dateutil import tz
from dateutil.parser import ParserError


logger = logging.getLogger(__name__)


DEFAULT_PORTS = {"http": 80, "https": 443}

TEXT_FIELDS = ("header", "subheader", "summary", "body")


class Category(str, Enum):
    """News category; each value maps to exactly one listing source."""

    NPB = "npb"
    MLB = "mlb"
    HS = "hs"
    OTHER = "other"

    @classmethod
    def parse(cls, value: "str | Category") -> "Category":
        """Parse a category tag, case-insensitively.

        Raises:
            ValueError: If the tag is not a known category.
        """
        if isinstance(value, Category):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(c.value for c in cls)
            raise ValueError(f"Unknown category '{value}' (expected one of: {valid})")


@dataclass
class GeneratedArticle:
    """A synthesized article derived from one source article.

    Attributes:
        reference_url: Normalized URL of the source article (natural identity)
        reference_name: Display name of the source site
        reference_published_at: Publication time of the source article (tz-aware)
        header: Headline
        subheader: Secondary headline, may be empty
        summary: Short summary
        body: Article body
        category: Category the article was collected for
    """
    reference_url: str
    reference_name: str
    reference_published_at: datetime
    header: str
    subheader: str
    summary: str
    body: str
    category: Category

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable mapping of the article."""
        return {
            "reference_url": self.reference_url,
            "reference_name": self.reference_name,
            "reference_published_at": self.reference_published_at.isoformat(),
            "header": self.header,
            "subheader": self.subheader,
            "summary": self.summary,
            "body": self.body,
            "category": self.category.value,
        }


def normalize_url(url: str | None, base_url: str | None = None) -> str:
    """Normalize a URL to the canonical form used for article identity.

    Resolves the URL against ``base_url`` when given, lowercases the scheme
    and host, drops default ports, and strips the query string and fragment.
    Discovery, validation and deduplication all compare URLs in this form.

    Args:
        url: The URL to normalize, possibly relative
        base_url: Page URL to resolve relative links against

    Returns:
        Canonical URL string, or "" for empty input

    Example:
        >>> normalize_url("/news/detail/2026.html?utm_source=x#top", "https://NPB.jp/news/")
        'https://npb.jp/news/detail/2026.html'
    """
    if not url:
        return ""

    url = url.strip()
    if not url:
        return ""

    if base_url:
        url = urljoin(base_url, url)

    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    host = (parsed.hostname or "").lower()

    try:
        port = parsed.port
    except ValueError:
        port = None

    netloc = host
    if port is not None and DEFAULT_PORTS.get(scheme) != port:
        netloc = f"{host}:{port}"

    path = parsed.path
    if netloc and not path:
        path = "/"

    return urlunparse((scheme, netloc, path, "", "", ""))


def parse_timestamp(
    value: Any,
    default_timezone: str = "Asia/Tokyo",
    now: datetime | None = None,
) -> datetime:
    """Parse a publication timestamp, falling back to the current time.

    Naive timestamps are interpreted in ``default_timezone``. Missing or
    unparseable values never raise; they yield ``now`` (UTC).

    Args:
        value: ISO string, free-form date string, datetime, or None
        default_timezone: IANA zone name for naive timestamps
        now: Override for the fallback time

    Returns:
        Timezone-aware datetime
    """
    fallback = now or datetime.now(timezone.utc)

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = date_parser.parse(value.strip())
        except (ParserError, ValueError, OverflowError) as e:
            logger.debug(f"Failed to parse timestamp '{value}': {e}")
            return fallback
    else:
        return fallback

    if parsed.tzinfo is None:
        zone = tz.gettz(default_timezone) or timezone.utc
        parsed = parsed.replace(tzinfo=zone)

    return parsed


def normalize_text(text: str | None, keep_newlines: bool = False) -> str:
    """Normalize text by trimming whitespace and normalizing unicode.

    Performs the following normalizations:
    - Normalizes unicode to NFC form
    - Collapses runs of whitespace to a single space (newlines are kept
      as single line breaks when ``keep_newlines`` is set)
    - Strips leading and trailing whitespace

    Args:
        text: Text string to normalize, or None

    Returns:
        Normalized text, "" for None

    Example:
        >>> normalize_text("  Hello   World  ")
        'Hello World'
    """
    if text is None:
        return ""

    normalized = unicodedata.normalize("NFC", str(text))

    if keep_newlines:
        lines = [re.sub(r"[^\S\n]+", " ", line).strip() for line in normalized.splitlines()]
        normalized = "\n".join(line for line in lines if line)
    else:
        normalized = re.sub(r"\s+", " ", normalized)

    return normalized.strip()


def truncate_text(text: str, max_length: int) -> str:
    """Cut text down to ``max_length`` characters."""
    if len(text) <= max_length:
        return text
    return text[:max_length].rstrip()
