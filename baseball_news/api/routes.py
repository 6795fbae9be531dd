"""News API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from baseball_news.agent.jobs import JobStatus, NewsOrchestrator
from baseball_news.api.models import NewsResponse, SeedStatusResponse, SyncResponse
from baseball_news.connectors.generation_backend import BackendConnectionError, GenerationFailedError
from baseball_news.engines.article_normalizer import Category
from baseball_news.engines.listing_scraper import DiscoveryError


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/news", tags=["news"])


def get_orchestrator(request: Request) -> NewsOrchestrator:
    """Dependency to get the orchestrator attached by create_app."""
    return request.app.state.orchestrator


def get_category(
    category: Annotated[str, Query(description="npb, mlb, hs or other")] = Category.NPB.value,
) -> Category:
    try:
        return Category.parse(category)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _status_response(status: JobStatus) -> SeedStatusResponse:
    return SeedStatusResponse(
        status=status.state.value,
        started_at=status.started_at,
        finished_at=status.finished_at,
        inserted=status.inserted,
        error=status.error,
    )


@router.get("", response_model=list[NewsResponse])
def list_news(
    orchestrator: Annotated[NewsOrchestrator, Depends(get_orchestrator)],
    category: Annotated[Category, Depends(get_category)],
    limit: Annotated[int, Query(ge=1, le=100, description="Max results")] = 100,
):
    """List stored articles of a category, newest publication first."""
    articles = orchestrator.repository.find_by_category(category, limit=limit)
    return [NewsResponse.from_article(a) for a in articles]


@router.get("/by-reference-url", response_model=NewsResponse)
def get_by_reference_url(
    orchestrator: Annotated[NewsOrchestrator, Depends(get_orchestrator)],
    url: Annotated[str, Query(min_length=1, description="Source article URL")],
):
    """Get one stored article by its source URL."""
    article = orchestrator.repository.find_by_reference_url(url)

    if article is None:
        raise HTTPException(status_code=404, detail="News not found")

    return NewsResponse.from_article(article)


@router.post("/seed", response_model=SeedStatusResponse)
def start_seed(
    orchestrator: Annotated[NewsOrchestrator, Depends(get_orchestrator)],
    category: Annotated[Category, Depends(get_category)],
):
    """Start a background seed when the category has no articles yet.

    Returns at once with the resulting status; poll /news/seed/status for
    completion.
    """
    return _status_response(orchestrator.start_seed_if_empty(category))


@router.get("/seed/status", response_model=SeedStatusResponse)
def get_seed_status(
    orchestrator: Annotated[NewsOrchestrator, Depends(get_orchestrator)],
    category: Annotated[Category, Depends(get_category)],
):
    """Get the seed status of a category."""
    return _status_response(orchestrator.get_seed_status(category))


@router.post("/sync", response_model=SyncResponse)
def sync_latest(
    orchestrator: Annotated[NewsOrchestrator, Depends(get_orchestrator)],
    category: Annotated[Category, Depends(get_category)],
):
    """Fetch and store the newest articles of a category. Blocks until done."""
    try:
        result = orchestrator.sync_latest(category)
    except (DiscoveryError, BackendConnectionError, GenerationFailedError) as e:
        logger.error(f"Sync for {category.value} failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    return SyncResponse(category=category.value, inserted=result.inserted)
