"""Validation and normalization of generated article items."""

import logging
from datetime import datetime
from typing import Any

from baseball_news.config.settings import FieldLimits
from baseball_news.engines.article_normalizer import (
    TEXT_FIELDS,
    Category,
    GeneratedArticle,
    normalize_text,
    normalize_url,
    parse_timestamp,
    truncate_text,
)


logger = logging.getLogger(__name__)


# Phrases a backend emits when it could not read the article; lowercase
PLACEHOLDER_PHRASES = (
    "記事が見つかりません",
    "記事を取得できません",
    "アクセスできません",
    "内容を確認できません",
    "情報が見つかりません",
    "could not find the article",
    "couldn't find the article",
    "unable to access",
    "unable to retrieve",
    "cannot access the url",
    "article not found",
    "no information available",
)

REQUIRED_FIELDS = ("header", "summary", "body")


def contains_placeholder(text: str) -> bool:
    """Return True if the text contains a known could-not-read phrase."""
    lowered = text.lower()
    return any(phrase in lowered for phrase in PLACEHOLDER_PHRASES)


def validate_generated_item(
    item: Any,
    allowed_urls: set[str],
    category: Category,
    reference_name: str,
    limits: FieldLimits | None = None,
    default_timezone: str = "Asia/Tokyo",
    now: datetime | None = None,
) -> GeneratedArticle | None:
    """Validate one decoded model item and build a GeneratedArticle from it.

    An item is rejected (None is returned) when it is not a mapping, when its
    reference_url does not normalize into ``allowed_urls``, when header,
    summary or body is missing or blank, or when any text field contains a
    placeholder phrase. Accepted items take category and reference_name from
    the caller, never from the model; over-long fields are truncated.

    Args:
        item: One element of the decoded model output
        allowed_urls: Normalized URLs the request was made for
        category: Category of the run
        reference_name: Source display name of the run
        limits: Field length bounds
        default_timezone: Zone for naive publication timestamps
        now: Fallback publication time

    Returns:
        GeneratedArticle, or None if the item is unusable
    """
    if not isinstance(item, dict):
        return None

    limits = limits or FieldLimits()

    raw_url = item.get("reference_url")
    reference_url = normalize_url(raw_url) if isinstance(raw_url, str) else ""
    if not reference_url or reference_url not in allowed_urls:
        logger.debug(f"Rejected item with unrequested reference_url: {raw_url!r}")
        return None

    texts: dict[str, str] = {}
    for field_name in TEXT_FIELDS:
        value = item.get(field_name)
        if value is not None and not isinstance(value, str):
            value = str(value)
        texts[field_name] = normalize_text(value, keep_newlines=field_name == "body")

    missing = [name for name in REQUIRED_FIELDS if not texts[name]]
    if missing:
        logger.debug(f"Rejected {reference_url}: empty {', '.join(missing)}")
        return None

    if any(contains_placeholder(texts[name]) for name in TEXT_FIELDS):
        logger.debug(f"Rejected {reference_url}: placeholder text")
        return None

    for field_name in TEXT_FIELDS:
        text = texts[field_name]
        maximum = limits.maximum(field_name)
        if len(text) > maximum:
            logger.debug(
                f"Truncating {field_name} of {reference_url} from {len(text)} to {maximum} chars"
            )
            texts[field_name] = truncate_text(text, maximum)
        elif text and len(text) < limits.minimum(field_name):
            logger.debug(f"{field_name} of {reference_url} is shorter than {limits.minimum(field_name)} chars")

    return GeneratedArticle(
        reference_url=reference_url,
        reference_name=reference_name,
        reference_published_at=parse_timestamp(
            item.get("reference_published_at"), default_timezone, now
        ),
        header=texts["header"],
        subheader=texts["subheader"],
        summary=texts["summary"],
        body=texts["body"],
        category=category,
    )
