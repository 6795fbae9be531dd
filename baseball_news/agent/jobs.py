"""Seed job state, the background seed worker, and the news orchestrator.

A seed fills an empty category with an initial set of articles. It is
started from a request handler, runs on a background thread, and reports
progress through a JobStatusStore. A sync fetches the newest articles of a
category synchronously and is meant to be triggered by a scheduler.

Components:
    JobStatus: Immutable snapshot of one category's seed state
    JobStatusStore / InMemoryJobStatusStore: Per-category status storage
    SeedWorker: Daemon thread consuming queued seed requests
    NewsOrchestrator: Seed and sync entry points
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
import logging
import queue
import threading
from typing import Any, Callable, Mapping, Protocol, runtime_checkable

from baseball_news.agent.workflow import CollectionResult, run_collection
from baseball_news.connectors.news_store import NewsRepository
from baseball_news.engines.article_normalizer import Category
from baseball_news.engines.generator import NewsGenerator
from baseball_news.engines.source_fetcher import SourceFetcher


logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Job Status
# =============================================================================


class JobState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class JobStatus:
    """Seed state of one category.

    ``started_at`` is set for running, done and error; ``finished_at`` and
    ``inserted`` only for done; ``error`` only for error.
    """
    state: JobState
    started_at: datetime | None = None
    finished_at: datetime | None = None
    inserted: int | None = None
    error: str | None = None

    @classmethod
    def idle(cls) -> "JobStatus":
        return cls(state=JobState.IDLE)

    @classmethod
    def running(cls, started_at: datetime) -> "JobStatus":
        return cls(state=JobState.RUNNING, started_at=started_at)

    @classmethod
    def done(cls, started_at: datetime, finished_at: datetime, inserted: int) -> "JobStatus":
        return cls(
            state=JobState.DONE,
            started_at=started_at,
            finished_at=finished_at,
            inserted=inserted,
        )

    @classmethod
    def failed(cls, started_at: datetime, error: str) -> "JobStatus":
        return cls(state=JobState.ERROR, started_at=started_at, error=error)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict, omitting unset fields."""
        data: dict[str, Any] = {"status": self.state.value}
        if self.started_at is not None:
            data["started_at"] = self.started_at.isoformat()
        if self.finished_at is not None:
            data["finished_at"] = self.finished_at.isoformat()
        if self.inserted is not None:
            data["inserted"] = self.inserted
        if self.error is not None:
            data["error"] = self.error
        return data


@runtime_checkable
class JobStatusStore(Protocol):
    """Per-category seed status storage.

    ``try_start`` and ``set_unless_running`` are conditional writes; only
    they may be used by callers that did not start the running job.
    """

    def get(self, category: Category) -> JobStatus:
        ...

    def set(self, category: Category, status: JobStatus) -> None:
        ...

    def try_start(self, category: Category, started_at: datetime) -> bool:
        """Mark the category running unless it already is; True on success."""
        ...

    def set_unless_running(self, category: Category, status: JobStatus) -> bool:
        ...


class InMemoryJobStatusStore:
    """Process-local JobStatusStore. Every category starts idle."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._statuses: dict[Category, JobStatus] = {}

    def get(self, category: Category) -> JobStatus:
        with self._lock:
            return self._statuses.get(category, JobStatus.idle())

    def set(self, category: Category, status: JobStatus) -> None:
        with self._lock:
            self._statuses[category] = status

    def try_start(self, category: Category, started_at: datetime) -> bool:
        return self.set_unless_running(category, JobStatus.running(started_at))

    def set_unless_running(self, category: Category, status: JobStatus) -> bool:
        with self._lock:
            current = self._statuses.get(category)
            if current is not None and current.state is JobState.RUNNING:
                return False
            self._statuses[category] = status
            return True


# =============================================================================
# Seed Worker
# =============================================================================


@dataclass(frozen=True)
class SeedRequest:
    category: Category
    started_at: datetime


class SeedWorker:
    """Run queued seed requests one at a time on a daemon thread.

    The thread is started lazily by the first ``submit``. Requests for
    different categories run sequentially, which also keeps generation
    requests from overlapping.
    """

    def __init__(self, handler: Callable[[SeedRequest], None]) -> None:
        self._handler = handler
        self._queue: "queue.Queue[SeedRequest | None]" = queue.Queue()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.is_alive:
                return
            self._thread = threading.Thread(target=self._run, name="seed-worker", daemon=True)
            self._thread.start()
            logger.debug("Seed worker started")

    def submit(self, request: SeedRequest) -> None:
        self.start()
        self._queue.put(request)
        logger.info(f"Seed queued for {request.category.value}")

    def wait_idle(self) -> None:
        """Block until every submitted request has been handled."""
        self._queue.join()

    def stop(self, timeout: float | None = None) -> None:
        """Finish queued requests, then end the thread."""
        with self._lock:
            thread = self._thread
            if thread is None or not thread.is_alive():
                return
            self._queue.put(None)
        thread.join(timeout)
        logger.debug("Seed worker stopped")

    def _run(self) -> None:
        while True:
            request = self._queue.get()
            try:
                if request is None:
                    return
                self._handler(request)
            except Exception:
                logger.exception("Seed handler raised an unexpected error")
            finally:
                self._queue.task_done()


# =============================================================================
# Orchestrator
# =============================================================================


class NewsOrchestrator:
    """Entry points for seeding and syncing categories.

    Attributes:
        repository: Article repository
        generator: Article generator shared by seed and sync runs
        fetchers: Source fetcher per category
        status_store: Seed status storage
        seed_limit: URLs discovered by a seed run
        sync_limit: URLs discovered by a sync run
        run_log_dir: Directory for JSON run logs; empty disables them

    Example:
        >>> orchestrator = NewsOrchestrator(repository, generator, fetchers)
        >>> orchestrator.start_seed_if_empty(Category.NPB).state
        <JobState.RUNNING: 'running'>
    """

    def __init__(
        self,
        repository: NewsRepository,
        generator: NewsGenerator,
        fetchers: Mapping[Category, SourceFetcher],
        status_store: JobStatusStore | None = None,
        worker: SeedWorker | None = None,
        seed_limit: int = 10,
        sync_limit: int = 5,
        run_log_dir: str = "",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.repository = repository
        self.generator = generator
        self.fetchers = dict(fetchers)
        self.status_store = status_store or InMemoryJobStatusStore()
        self.seed_limit = seed_limit
        self.sync_limit = sync_limit
        self.run_log_dir = run_log_dir
        self._clock = clock
        self._worker = worker or SeedWorker(self._run_seed)

    @property
    def worker(self) -> SeedWorker:
        return self._worker

    def start_seed_if_empty(self, category: Category) -> JobStatus:
        """Start a background seed unless the category already has articles.

        Returns immediately with the resulting status:
        - running: a seed was already running, or this call started one
        - done with inserted 0: the category already has articles
        - error: the emptiness check failed; the message is recorded
        """
        current = self.status_store.get(category)
        if current.state is JobState.RUNNING:
            return current

        try:
            stored = self.repository.count(category)
        except Exception as e:
            logger.exception(f"Emptiness check for {category.value} failed: {e}")
            self.status_store.set_unless_running(category, JobStatus.failed(self._clock(), str(e)))
            return self.status_store.get(category)

        if stored > 0:
            now = self._clock()
            self.status_store.set_unless_running(category, JobStatus.done(now, now, 0))
            return self.status_store.get(category)

        started_at = self._clock()
        if self.status_store.try_start(category, started_at):
            self._worker.submit(SeedRequest(category=category, started_at=started_at))
        else:
            logger.debug(f"Seed for {category.value} already started by another caller")
        return self.status_store.get(category)

    def get_seed_status(self, category: Category) -> JobStatus:
        """Return the seed status of a category; idle when none is recorded."""
        try:
            return self.status_store.get(category)
        except Exception as e:
            logger.error(f"Failed to read seed status for {category.value}: {e}")
            return JobStatus.idle()

    def sync_latest(self, category: Category) -> CollectionResult:
        """Fetch, generate and store the newest articles of a category.

        Raises:
            DiscoveryError: If the listing page cannot be fetched or parsed
            BackendConnectionError: If the generation backend is unreachable
            GenerationFailedError: If every generation request failed
        """
        return self._collect(category, self.sync_limit, "sync")

    def shutdown(self, timeout: float | None = None) -> None:
        self._worker.stop(timeout)

    def _collect(self, category: Category, limit: int, mode: str) -> CollectionResult:
        return run_collection(
            self.fetchers[category],
            self.generator,
            self.repository,
            limit=limit,
            mode=mode,
            run_log_dir=self.run_log_dir,
        )

    def _run_seed(self, request: SeedRequest) -> None:
        category = request.category
        try:
            result = self._collect(category, self.seed_limit, "seed")
        except Exception as e:
            logger.exception(f"Seed for {category.value} failed: {e}")
            self.status_store.set(category, JobStatus.failed(request.started_at, str(e)))
            return

        self.status_store.set(
            category,
            JobStatus.done(request.started_at, self._clock(), result.inserted),
        )
        logger.info(f"Seed for {category.value} done: {result.inserted} inserted")
