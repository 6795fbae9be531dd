"""HTTP surface - FastAPI application and routes."""

from baseball_news.api.app import create_app

__all__ = ["create_app"]
