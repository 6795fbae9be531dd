"""Connectors module - external service integrations."""

from baseball_news.connectors.generation_backend import (
    BackendConnectionError,
    BackendError,
    GenerationBackend,
    GenerationFailedError,
    TransientBackendError,
    build_backend,
)
from baseball_news.connectors.news_store import InMemoryNewsRepository, NewsRepository

__all__ = [
    "BackendConnectionError",
    "BackendError",
    "GenerationBackend",
    "GenerationFailedError",
    "TransientBackendError",
    "build_backend",
    "InMemoryNewsRepository",
    "NewsRepository",
]
