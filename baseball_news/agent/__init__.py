"""Agent module - collection workflow, seed jobs and runner."""

from baseball_news.agent.jobs import (
    InMemoryJobStatusStore,
    JobState,
    JobStatus,
    JobStatusStore,
    NewsOrchestrator,
    SeedWorker,
)
from baseball_news.agent.workflow import CollectionResult, run_collection

__all__ = [
    "InMemoryJobStatusStore",
    "JobState",
    "JobStatus",
    "JobStatusStore",
    "NewsOrchestrator",
    "SeedWorker",
    "CollectionResult",
    "run_collection",
]
