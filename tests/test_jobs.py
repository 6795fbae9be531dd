"""Tests for seed job state, the seed worker and the orchestrator."""

import json
import re
import threading
from datetime import datetime, timezone

import pytest

from baseball_news.agent.jobs import (
    InMemoryJobStatusStore,
    JobState,
    JobStatus,
    JobStatusStore,
    NewsOrchestrator,
    SeedRequest,
    SeedWorker,
)
from baseball_news.connectors.generation_backend import BackendError, GenerationFailedError
from baseball_news.connectors.news_store import InMemoryNewsRepository
from baseball_news.engines.article_normalizer import Category, GeneratedArticle
from baseball_news.engines.generator import NewsGenerator
from baseball_news.engines.listing_scraper import DiscoveryError


PROMPT_URL_PATTERN = re.compile(r"^- (https?://\S+)$", re.MULTILINE)

STARTED = datetime(2026, 2, 18, 6, 0, tzinfo=timezone.utc)


class FakeFetcher:

    def __init__(self, category, urls, error=None, gate=None):
        self.category = category
        self.source_name = f"{category.value} source"
        self._urls = urls
        self._error = error
        self._gate = gate
        self.calls = 0

    def discover(self, limit):
        self.calls += 1
        if self._gate is not None:
            self._gate.wait(timeout=5)
        if self._error is not None:
            raise self._error
        return self._urls[:limit]


class EchoBackend:
    name = "echo"

    def __init__(self):
        self.requests = 0

    def generate_text(self, prompt):
        self.requests += 1
        return json.dumps([
            {"reference_url": url, "header": "見出し", "summary": "要約", "body": "本文"}
            for url in PROMPT_URL_PATTERN.findall(prompt)
        ])


class RejectingBackend:
    name = "rejecting"

    def generate_text(self, prompt):
        raise BackendError("403 API key not valid", status_code=403)


class RecordingWorker:
    """Worker that records submissions without running them."""

    def __init__(self):
        self.submitted = []
        self._lock = threading.Lock()

    def submit(self, request):
        with self._lock:
            self.submitted.append(request)

    def wait_idle(self):
        pass

    def stop(self, timeout=None):
        pass


def make_urls(category, count):
    return [f"https://{category.value}.example.com/news/{i}.html" for i in range(count)]


def stored_article(category):
    return GeneratedArticle(
        reference_url=f"https://{category.value}.example.com/news/stored.html",
        reference_name="stored",
        reference_published_at=STARTED,
        header="既存",
        subheader="",
        summary="既存",
        body="既存",
        category=category,
    )


def make_orchestrator(fetchers=None, repository=None, worker=None, backend=None, **kwargs):
    backend = backend or EchoBackend()
    fetchers = fetchers or {c: FakeFetcher(c, make_urls(c, 12)) for c in Category}
    return NewsOrchestrator(
        repository=repository if repository is not None else InMemoryNewsRepository(),
        generator=NewsGenerator(backend, sleep=lambda seconds: None),
        fetchers=fetchers,
        worker=worker,
        clock=lambda: STARTED,
        **kwargs,
    )


class TestJobStatus:
    """Tests for status snapshots."""

    def test_idle_dict_has_only_status(self):
        assert JobStatus.idle().to_dict() == {"status": "idle"}

    def test_done_dict(self):
        finished = datetime(2026, 2, 18, 6, 5, tzinfo=timezone.utc)

        assert JobStatus.done(STARTED, finished, 4).to_dict() == {
            "status": "done",
            "started_at": "2026-02-18T06:00:00+00:00",
            "finished_at": "2026-02-18T06:05:00+00:00",
            "inserted": 4,
        }

    def test_error_dict(self):
        assert JobStatus.failed(STARTED, "boom").to_dict() == {
            "status": "error",
            "started_at": "2026-02-18T06:00:00+00:00",
            "error": "boom",
        }


class TestInMemoryJobStatusStore:
    """Tests for the status store's conditional writes."""

    def test_satisfies_protocol(self):
        assert isinstance(InMemoryJobStatusStore(), JobStatusStore)

    def test_every_category_starts_idle(self):
        store = InMemoryJobStatusStore()

        assert all(store.get(c).state is JobState.IDLE for c in Category)

    def test_try_start_fails_while_running(self):
        store = InMemoryJobStatusStore()

        assert store.try_start(Category.NPB, STARTED) is True
        assert store.try_start(Category.NPB, STARTED) is False
        assert store.try_start(Category.MLB, STARTED) is True

    def test_try_start_after_finish(self):
        store = InMemoryJobStatusStore()
        store.try_start(Category.NPB, STARTED)
        store.set(Category.NPB, JobStatus.failed(STARTED, "boom"))

        assert store.try_start(Category.NPB, STARTED) is True

    def test_set_unless_running_keeps_running_state(self):
        store = InMemoryJobStatusStore()
        store.try_start(Category.NPB, STARTED)

        assert store.set_unless_running(Category.NPB, JobStatus.done(STARTED, STARTED, 0)) is False
        assert store.get(Category.NPB).state is JobState.RUNNING

    def test_concurrent_try_start_has_single_winner(self):
        store = InMemoryJobStatusStore()
        barrier = threading.Barrier(8)
        wins = []

        def attempt():
            barrier.wait()
            wins.append(store.try_start(Category.HS, STARTED))

        threads = [threading.Thread(target=attempt) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert wins.count(True) == 1


class TestSeedWorker:
    """Tests for the background seed worker."""

    def test_runs_requests_in_order(self):
        handled = []
        worker = SeedWorker(handled.append)
        requests = [SeedRequest(c, STARTED) for c in (Category.NPB, Category.MLB)]

        for request in requests:
            worker.submit(request)
        worker.wait_idle()
        worker.stop(timeout=5)

        assert handled == requests
        assert not worker.is_alive

    def test_handler_error_does_not_stop_worker(self):
        handled = []

        def handler(request):
            if request.category is Category.NPB:
                raise RuntimeError("boom")
            handled.append(request.category)

        worker = SeedWorker(handler)
        worker.submit(SeedRequest(Category.NPB, STARTED))
        worker.submit(SeedRequest(Category.HS, STARTED))
        worker.wait_idle()
        worker.stop(timeout=5)

        assert handled == [Category.HS]

    def test_stop_without_start(self):
        SeedWorker(lambda request: None).stop()


class TestStartSeedIfEmpty:
    """Tests for starting seeds."""

    def test_non_empty_category_is_done_without_generation(self):
        backend = EchoBackend()
        worker = RecordingWorker()
        orchestrator = make_orchestrator(
            repository=InMemoryNewsRepository([stored_article(Category.NPB)]),
            worker=worker,
            backend=backend,
        )

        status = orchestrator.start_seed_if_empty(Category.NPB)

        assert status.state is JobState.DONE
        assert status.inserted == 0
        assert worker.submitted == []
        assert backend.requests == 0

    def test_empty_category_returns_running_immediately(self):
        worker = RecordingWorker()
        orchestrator = make_orchestrator(worker=worker)

        status = orchestrator.start_seed_if_empty(Category.MLB)

        assert status.state is JobState.RUNNING
        assert status.started_at == STARTED
        assert worker.submitted == [SeedRequest(Category.MLB, STARTED)]

    def test_repeated_start_while_running_schedules_once(self):
        worker = RecordingWorker()
        orchestrator = make_orchestrator(worker=worker)

        first = orchestrator.start_seed_if_empty(Category.HS)
        second = orchestrator.start_seed_if_empty(Category.HS)

        assert first == second
        assert len(worker.submitted) == 1

    def test_concurrent_starts_schedule_exactly_one_run(self):
        worker = RecordingWorker()
        orchestrator = make_orchestrator(worker=worker)
        barrier = threading.Barrier(10)
        states = []

        def start():
            barrier.wait()
            states.append(orchestrator.start_seed_if_empty(Category.OTHER).state)

        threads = [threading.Thread(target=start) for _ in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(worker.submitted) == 1
        assert set(states) == {JobState.RUNNING}

    def test_seed_completes_with_inserted_count(self):
        orchestrator = make_orchestrator(seed_limit=10)

        orchestrator.start_seed_if_empty(Category.NPB)
        orchestrator.worker.wait_idle()
        status = orchestrator.get_seed_status(Category.NPB)
        orchestrator.shutdown(timeout=5)

        assert status.state is JobState.DONE
        assert status.inserted == 10
        assert status.started_at == STARTED
        assert orchestrator.repository.count(Category.NPB) == 10

    def test_seed_then_start_again_is_idempotent(self):
        orchestrator = make_orchestrator()

        orchestrator.start_seed_if_empty(Category.MLB)
        orchestrator.worker.wait_idle()
        again = orchestrator.start_seed_if_empty(Category.MLB)
        orchestrator.shutdown(timeout=5)

        assert again.state is JobState.DONE
        assert again.inserted == 0

    def test_discovery_failure_becomes_error_state(self):
        error = DiscoveryError(Category.HS, "https://www.nikkansports.com/", "HTTP 503")
        fetchers = {c: FakeFetcher(c, make_urls(c, 3)) for c in Category}
        fetchers[Category.HS] = FakeFetcher(Category.HS, [], error=error)
        orchestrator = make_orchestrator(fetchers=fetchers)

        orchestrator.start_seed_if_empty(Category.HS)
        orchestrator.worker.wait_idle()
        status = orchestrator.get_seed_status(Category.HS)
        orchestrator.shutdown(timeout=5)

        assert status.state is JobState.ERROR
        assert "HTTP 503" in status.error
        assert status.started_at == STARTED

    def test_status_is_running_while_seed_in_progress(self):
        gate = threading.Event()
        fetchers = {c: FakeFetcher(c, make_urls(c, 3)) for c in Category}
        fetchers[Category.NPB] = FakeFetcher(Category.NPB, make_urls(Category.NPB, 3), gate=gate)
        orchestrator = make_orchestrator(fetchers=fetchers)

        orchestrator.start_seed_if_empty(Category.NPB)
        during = orchestrator.get_seed_status(Category.NPB)
        gate.set()
        orchestrator.worker.wait_idle()
        after = orchestrator.get_seed_status(Category.NPB)
        orchestrator.shutdown(timeout=5)

        assert during.state is JobState.RUNNING
        assert after.state is JobState.DONE
        assert fetchers[Category.NPB].calls == 1

    def test_generation_rejected_everywhere_becomes_error_state(self):
        orchestrator = make_orchestrator(backend=RejectingBackend())

        orchestrator.start_seed_if_empty(Category.NPB)
        orchestrator.worker.wait_idle()
        status = orchestrator.get_seed_status(Category.NPB)
        orchestrator.shutdown(timeout=5)

        assert status.state is JobState.ERROR
        assert "403" in status.error
        assert orchestrator.repository.count(Category.NPB) == 0

    def test_emptiness_check_failure_becomes_error_state(self):
        class BrokenRepository(InMemoryNewsRepository):
            def count(self, category):
                raise RuntimeError("db down")

        worker = RecordingWorker()
        orchestrator = make_orchestrator(repository=BrokenRepository(), worker=worker)

        status = orchestrator.start_seed_if_empty(Category.NPB)

        assert status.state is JobState.ERROR
        assert status.error == "db down"
        assert status.started_at == STARTED
        assert worker.submitted == []
        assert orchestrator.get_seed_status(Category.NPB) == status


class TestGetSeedStatus:

    def test_unknown_category_state_is_idle(self):
        assert make_orchestrator().get_seed_status(Category.OTHER) == JobStatus.idle()

    def test_store_failure_reported_as_idle(self):
        class BrokenStore(InMemoryJobStatusStore):
            def get(self, category):
                raise RuntimeError("store unavailable")

        orchestrator = make_orchestrator(status_store=BrokenStore())

        assert orchestrator.get_seed_status(Category.NPB).state is JobState.IDLE


class TestSyncLatest:
    """Tests for synchronous syncs."""

    def test_second_sync_inserts_nothing(self):
        backend = EchoBackend()
        orchestrator = make_orchestrator(backend=backend, sync_limit=5)

        first = orchestrator.sync_latest(Category.NPB)
        requests_after_first = backend.requests
        second = orchestrator.sync_latest(Category.NPB)

        assert first.inserted == 5
        assert second.inserted == 0
        assert backend.requests == requests_after_first

    def test_sync_with_no_urls(self):
        fetchers = {c: FakeFetcher(c, []) for c in Category}

        assert make_orchestrator(fetchers=fetchers).sync_latest(Category.MLB).inserted == 0

    def test_sync_does_not_touch_seed_status(self):
        orchestrator = make_orchestrator()

        orchestrator.sync_latest(Category.HS)

        assert orchestrator.get_seed_status(Category.HS).state is JobState.IDLE

    def test_sync_errors_propagate(self):
        error = DiscoveryError(Category.OTHER, "https://www.sanspo.com/", "timed out")
        fetchers = {c: FakeFetcher(c, [], error=error) for c in Category}

        with pytest.raises(DiscoveryError):
            make_orchestrator(fetchers=fetchers).sync_latest(Category.OTHER)

    def test_sync_fails_when_every_generation_request_fails(self):
        with pytest.raises(GenerationFailedError):
            make_orchestrator(backend=RejectingBackend()).sync_latest(Category.NPB)
