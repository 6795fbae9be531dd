"""Tests for the HTTP surface using FastAPI's TestClient."""

import json
import re
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from baseball_news.agent.jobs import NewsOrchestrator
from baseball_news.api.app import create_app
from baseball_news.connectors.generation_backend import BackendError
from baseball_news.connectors.news_store import InMemoryNewsRepository
from baseball_news.engines.article_normalizer import Category, GeneratedArticle
from baseball_news.engines.generator import NewsGenerator
from baseball_news.engines.listing_scraper import DiscoveryError


PROMPT_URL_PATTERN = re.compile(r"^- (https?://\S+)$", re.MULTILINE)

STARTED = datetime(2026, 2, 18, 6, 0, tzinfo=timezone.utc)


class FakeFetcher:

    def __init__(self, category, urls, error=None):
        self.category = category
        self.source_name = f"{category.value} source"
        self._urls = urls
        self._error = error

    def discover(self, limit):
        if self._error is not None:
            raise self._error
        return self._urls[:limit]


class EchoBackend:
    name = "echo"

    def generate_text(self, prompt):
        return json.dumps([
            {"reference_url": url, "header": "見出し", "summary": "要約", "body": "本文"}
            for url in PROMPT_URL_PATTERN.findall(prompt)
        ])


class RejectingBackend:
    name = "rejecting"

    def generate_text(self, prompt):
        raise BackendError("403 API key not valid", status_code=403)


class RecordingWorker:

    def __init__(self):
        self.submitted = []

    def submit(self, request):
        self.submitted.append(request)

    def wait_idle(self):
        pass

    def stop(self, timeout=None):
        pass


def make_article(n, category=Category.NPB, hours=0):
    return GeneratedArticle(
        reference_url=f"https://npb.jp/news/detail/{n}.html",
        reference_name="NPB.jp | 日本野球機構",
        reference_published_at=STARTED + timedelta(hours=hours),
        header=f"見出し{n}",
        subheader="",
        summary="要約",
        body="本文",
        category=category,
    )


@pytest.fixture
def worker():
    return RecordingWorker()


@pytest.fixture
def repository():
    return InMemoryNewsRepository([make_article(1, hours=1), make_article(2, hours=2)])


def make_client(repository, worker, backend=None):
    fetchers = {
        c: FakeFetcher(c, [f"https://{c.value}.example.com/news/{i}.html" for i in range(3)])
        for c in Category
    }
    fetchers[Category.OTHER] = FakeFetcher(
        Category.OTHER, [], error=DiscoveryError(Category.OTHER, "https://www.sanspo.com/", "HTTP 503")
    )
    orchestrator = NewsOrchestrator(
        repository=repository,
        generator=NewsGenerator(backend or EchoBackend(), sleep=lambda seconds: None),
        fetchers=fetchers,
        worker=worker,
        clock=lambda: STARTED,
    )
    return TestClient(create_app(orchestrator))


@pytest.fixture
def client(repository, worker):
    return make_client(repository, worker)


class TestListNews:

    def test_defaults_to_npb_newest_first(self, client):
        response = client.get("/news")

        assert response.status_code == 200
        assert [item["header"] for item in response.json()] == ["見出し2", "見出し1"]
        assert response.json()[0]["category"] == "npb"

    def test_category_is_case_insensitive(self, client):
        response = client.get("/news", params={"category": "MLB"})

        assert response.status_code == 200
        assert response.json() == []

    def test_unknown_category_rejected(self, client):
        assert client.get("/news", params={"category": "kbo"}).status_code == 422

    def test_limit(self, client):
        assert len(client.get("/news", params={"limit": 1}).json()) == 1


class TestByReferenceUrl:

    def test_found(self, client):
        response = client.get("/news/by-reference-url", params={"url": "https://npb.jp/news/detail/1.html"})

        assert response.status_code == 200
        assert response.json()["header"] == "見出し1"
        assert response.json()["reference_name"] == "NPB.jp | 日本野球機構"

    def test_not_found(self, client):
        response = client.get("/news/by-reference-url", params={"url": "https://npb.jp/news/detail/9.html"})

        assert response.status_code == 404

    def test_url_required(self, client):
        assert client.get("/news/by-reference-url").status_code == 422


class TestSeedRoutes:

    def test_seed_non_empty_category_is_done(self, client, worker):
        response = client.post("/news/seed", params={"category": "npb"})

        assert response.status_code == 200
        assert response.json()["status"] == "done"
        assert response.json()["inserted"] == 0
        assert worker.submitted == []

    def test_seed_empty_category_starts_running(self, client, worker):
        response = client.post("/news/seed", params={"category": "hs"})

        assert response.json()["status"] == "running"
        assert response.json()["started_at"] == "2026-02-18T06:00:00Z"
        assert len(worker.submitted) == 1

        status = client.get("/news/seed/status", params={"category": "hs"})
        assert status.json()["status"] == "running"

    def test_status_defaults_to_idle(self, client):
        response = client.get("/news/seed/status", params={"category": "mlb"})

        assert response.status_code == 200
        assert response.json()["status"] == "idle"
        assert response.json()["started_at"] is None

    def test_seed_unknown_category_rejected(self, client):
        assert client.post("/news/seed", params={"category": "kbo"}).status_code == 422

    def test_seed_repository_failure_reported_as_error(self, worker):
        class BrokenRepository(InMemoryNewsRepository):
            def count(self, category):
                raise RuntimeError("db down")

        client = make_client(BrokenRepository(), worker)

        response = client.post("/news/seed", params={"category": "npb"})

        assert response.status_code == 200
        assert response.json()["status"] == "error"
        assert response.json()["error"] == "db down"
        assert worker.submitted == []
        assert client.get("/news/seed/status", params={"category": "npb"}).json()["status"] == "error"


class TestSyncRoute:

    def test_sync_inserts_and_second_sync_inserts_nothing(self, client):
        first = client.post("/news/sync", params={"category": "mlb"})
        second = client.post("/news/sync", params={"category": "mlb"})

        assert first.json() == {"category": "mlb", "inserted": 3}
        assert second.json() == {"category": "mlb", "inserted": 0}
        assert len(client.get("/news", params={"category": "mlb"}).json()) == 3

    def test_discovery_failure_is_bad_gateway(self, client):
        response = client.post("/news/sync", params={"category": "other"})

        assert response.status_code == 502
        assert "HTTP 503" in response.json()["detail"]

    def test_every_generation_request_rejected_is_bad_gateway(self, repository, worker):
        client = make_client(repository, worker, backend=RejectingBackend())

        response = client.post("/news/sync", params={"category": "mlb"})

        assert response.status_code == 502
        assert "403" in response.json()["detail"]


def test_root(client):
    assert client.get("/").json()["name"] == "Baseball News API"
