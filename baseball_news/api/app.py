"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from baseball_news.agent.jobs import NewsOrchestrator
from baseball_news.api import routes


def create_app(orchestrator: NewsOrchestrator) -> FastAPI:
    """Build the API around an already wired orchestrator."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        orchestrator.shutdown(timeout=5.0)

    app = FastAPI(
        title="Baseball News API",
        description="Generated baseball news by category, with seed and sync triggers",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator
    app.include_router(routes.router)

    @app.get("/")
    def root():
        """API root - returns basic info."""
        return {
            "name": "Baseball News API",
            "version": "1.0.0",
            "docs": "/docs",
        }

    return app
