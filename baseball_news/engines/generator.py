"""Batched article generation from source URLs.

This module turns lists of article URLs into validated GeneratedArticle
objects through a text generation backend. URLs are sent in fixed-size
batches, one request at a time; the raw response is recovered into JSON,
validated against the requested URLs, and batches that yield nothing are
retried URL by URL.

Data Models:
    BatchResult: Outcome of one generate() call

Components:
    PromptBuilder: Builds the generation instruction for one batch
    NewsGenerator: Batching, retry/backoff, recovery and escalation
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
import time
from typing import Callable

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from baseball_news.config.settings import FieldLimits, Settings
from baseball_news.connectors.generation_backend import (
    BackendConnectionError,
    BackendError,
    GenerationBackend,
    TransientBackendError,
)
from baseball_news.engines.article_normalizer import Category, GeneratedArticle, normalize_url
from baseball_news.engines.json_recovery import MalformedOutputError, extract_json_array
from baseball_news.engines.validator import validate_generated_item


logger = logging.getLogger(__name__)


# =============================================================================
# Data Models
# =============================================================================


@dataclass
class BatchResult:
    """Result of generating articles for a list of URLs.

    Attributes:
        articles: Accepted articles, unique by reference_url; order is not
                  guaranteed to follow the input order.
        failed_urls: Input URLs for which no article was accepted.
        batches_sent: Number of batch requests, excluding escalation requests.
        escalated_batches: Number of batches retried URL by URL.
        requests_sent: Backend requests made, escalation requests included;
                       retries of one request count once.
        requests_failed: Requests that ended in a backend error.
        last_error: Message of the most recent backend error.
    """

    articles: list[GeneratedArticle] = field(default_factory=list)
    failed_urls: list[str] = field(default_factory=list)
    batches_sent: int = 0
    escalated_batches: int = 0
    requests_sent: int = 0
    requests_failed: int = 0
    last_error: str | None = None

    @property
    def all_requests_failed(self) -> bool:
        return self.requests_sent > 0 and self.requests_failed == self.requests_sent


def chunk(items: list[str], size: int) -> list[list[str]]:
    """Split a list into consecutive chunks of at most ``size`` items."""
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    return [items[i:i + size] for i in range(0, len(items), size)]


# =============================================================================
# Prompt Construction
# =============================================================================


class PromptBuilder:
    """Construct the generation instruction for one batch of URLs.

    The instruction asks the backend to read each URL (or search for it when
    it cannot be opened), keep strictly to stated facts, and answer with a
    bare JSON array in the GeneratedArticle shape.
    """

    ROLE = "あなたはプロの野球ニュース編集者です。"

    RULES = (
        "推測・憶測・断定の追加は禁止（記事に書かれている事実のみ）",
        "誇張禁止、煽り禁止",
        "元記事の全文コピーは禁止（要約と再構成のみ）",
        "URLを直接開けない場合は検索して同じ記事を特定すること",
        "記事を特定できなかったURLは出力に含めないこと",
        "出力は必ずJSONのみ（コードフェンス不要、余計な文章禁止）",
    )

    def build(
        self,
        urls: list[str],
        category: Category,
        reference_name: str,
        limits: FieldLimits | None = None,
    ) -> str:
        """Build the prompt for one batch.

        Args:
            urls: Normalized article URLs, newest first
            category: Category of the run
            reference_name: Source display name to echo back
            limits: Field length targets

        Returns:
            Prompt text
        """
        limits = limits or FieldLimits()
        rules = "\n".join(f"- {rule}" for rule in self.RULES)
        url_lines = "\n".join(f"- {url}" for url in urls)

        return f"""{self.ROLE}
以下のURLの記事をそれぞれ読み取り、事実に基づいて「要約」し、その要約を元に「再生成したニュース」を作ってください。

# 厳守ルール
{rules}

# 文字数（全角目安）
- header: {limits.header[0]}〜{limits.header[1]}
- subheader: {limits.subheader[0]}〜{limits.subheader[1]}（無ければ空文字）
- summary: {limits.summary[0]}〜{limits.summary[1]}
- body: {limits.body[0]}〜{limits.body[1]}

# 出力形式（必ずこの配列、要素数は最大{len(urls)}件）
[
  {{
    "reference_url": "対象URLをそのまま（必須）",
    "reference_name": "{reference_name}",
    "reference_published_at": "記事内の日時をISO形式で（時刻が不明なら00:00:00、タイムゾーン不明なら日本時間）",
    "header": "…",
    "subheader": "… or \\"\\"",
    "summary": "…",
    "body": "…",
    "category": "{category.value}"
  }}
]

# 対象URL（新しい順のまま処理）
{url_lines}
"""


# =============================================================================
# News Generator
# =============================================================================


class NewsGenerator:
    """Generate validated articles from URLs using a text generation backend.

    Batches are processed sequentially. For each batch:

    1. One request is sent; rate-limited/overloaded/timed-out requests are
       retried up to ``max_retries`` more times, waiting
       ``backoff_seconds × attempt`` between attempts.
    2. The response is recovered into JSON items; unreadable output counts
       as zero items.
    3. Items are validated against the batch's URLs.
    4. A batch of several URLs that yields no article is retried once URL by
       URL, pausing ``single_request_delay_seconds`` before each request.

    Once at least one article exists, ``batch_delay_seconds`` is waited
    before each following batch.

    Attributes:
        backend: Generation backend
        batch_size: URLs per request
        max_retries: Extra attempts for transient failures
        backoff_seconds: Base retry delay
        batch_delay_seconds: Pause between batches
        single_request_delay_seconds: Pause between escalation requests
        limits: Field length bounds
        default_timezone: Zone for naive publication timestamps

    Example:
        >>> generator = NewsGenerator(backend, batch_size=5)
        >>> result = generator.generate(urls, Category.NPB, "NPB.jp | 日本野球機構")
        >>> len(result.articles) <= len(urls)
        True
    """

    def __init__(
        self,
        backend: GenerationBackend,
        batch_size: int = 5,
        max_retries: int = 2,
        backoff_seconds: float = 0.8,
        batch_delay_seconds: float = 2.0,
        single_request_delay_seconds: float = 1.0,
        limits: FieldLimits | None = None,
        default_timezone: str = "Asia/Tokyo",
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        self.backend = backend
        self.batch_size = batch_size
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.batch_delay_seconds = batch_delay_seconds
        self.single_request_delay_seconds = single_request_delay_seconds
        self.limits = limits or FieldLimits()
        self.default_timezone = default_timezone
        self._sleep = sleep
        self._prompt_builder = PromptBuilder()

    @classmethod
    def from_settings(
        cls,
        backend: GenerationBackend,
        settings: Settings,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "NewsGenerator":
        return cls(
            backend=backend,
            batch_size=settings.generation_batch_size,
            max_retries=settings.generation_max_retries,
            backoff_seconds=settings.generation_backoff_seconds,
            batch_delay_seconds=settings.batch_delay_seconds,
            single_request_delay_seconds=settings.single_request_delay_seconds,
            limits=settings.field_limits,
            default_timezone=settings.default_timezone,
            sleep=sleep,
        )

    def generate(
        self,
        urls: list[str],
        category: Category,
        reference_name: str,
    ) -> BatchResult:
        """Generate articles for a list of URLs.

        Args:
            urls: Candidate article URLs (normalized here as well)
            category: Category stamped on every accepted article
            reference_name: Source name stamped on every accepted article

        Returns:
            BatchResult with accepted articles and the URLs that produced none

        Raises:
            BackendConnectionError: If the backend cannot be reached at all.
        """
        ordered: list[str] = []
        seen: set[str] = set()
        for url in urls:
            normalized = normalize_url(url)
            if normalized and normalized not in seen:
                seen.add(normalized)
                ordered.append(normalized)

        result = BatchResult()
        if not ordered:
            return result

        accepted: dict[str, GeneratedArticle] = {}
        batches = chunk(ordered, self.batch_size)
        total = len(batches)

        logger.info(
            f"Starting generation for {len(ordered)} {category.value} URLs "
            f"in {total} batches via {self.backend.name}"
        )

        for index, batch in enumerate(batches, start=1):
            if index > 1 and accepted:
                self._sleep(self.batch_delay_seconds)

            logger.info(f"Processing batch {index}/{total} ({len(batch)} URLs)")
            result.batches_sent += 1
            new_count = self._accept(
                self._generate_batch(batch, category, reference_name, result), accepted
            )

            if new_count == 0 and len(batch) > 1:
                result.escalated_batches += 1
                logger.warning(
                    f"Batch {index}/{total} produced no articles; "
                    f"retrying {len(batch)} URLs individually"
                )
                for url in batch:
                    self._sleep(self.single_request_delay_seconds)
                    articles = self._generate_batch([url], category, reference_name, result)
                    if not self._accept(articles, accepted):
                        logger.warning(f"No article generated for {url}")

        result.articles = list(accepted.values())
        result.failed_urls = [url for url in ordered if url not in accepted]

        logger.info(
            f"Generation complete: {len(result.articles)}/{len(ordered)} URLs produced articles"
        )
        if result.failed_urls:
            logger.info(f"URLs without articles: {result.failed_urls}")

        return result

    def _accept(
        self,
        articles: list[GeneratedArticle],
        accepted: dict[str, GeneratedArticle],
    ) -> int:
        new_count = 0
        for article in articles:
            if article.reference_url in accepted:
                continue
            accepted[article.reference_url] = article
            new_count += 1
        return new_count

    def _generate_batch(
        self,
        batch: list[str],
        category: Category,
        reference_name: str,
        result: BatchResult,
    ) -> list[GeneratedArticle]:
        """Request, recover and validate one batch; failures yield []."""
        prompt = self._prompt_builder.build(batch, category, reference_name, self.limits)

        result.requests_sent += 1
        try:
            raw = self._request(prompt)
        except BackendConnectionError:
            raise
        except BackendError as e:
            result.requests_failed += 1
            result.last_error = str(e)
            logger.warning(f"Generation request failed for {len(batch)} URLs: {e}")
            return []

        try:
            items = extract_json_array(raw)
        except MalformedOutputError as e:
            logger.warning(f"Unusable generation output for {len(batch)} URLs: {e}")
            return []

        allowed = set(batch)
        now = datetime.now(timezone.utc)
        articles: list[GeneratedArticle] = []
        for item in items:
            article = validate_generated_item(
                item,
                allowed,
                category,
                reference_name,
                limits=self.limits,
                default_timezone=self.default_timezone,
                now=now,
            )
            if article is not None:
                articles.append(article)

        logger.debug(f"Accepted {len(articles)} of {len(items)} generated items")
        return articles

    def _request(self, prompt: str) -> str:
        """Send the prompt, retrying transient failures with linear backoff."""
        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_incrementing(start=self.backoff_seconds, increment=self.backoff_seconds),
            retry=retry_if_exception_type(TransientBackendError),
            sleep=self._sleep,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retrying(self.backend.generate_text, prompt)
