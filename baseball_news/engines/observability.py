"""Observability and run metrics for the news collection pipeline.

This module provides data structures and functions for tracking collection
run metrics, logging stage counts, and writing run logs.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any


logger = logging.getLogger(__name__)


@dataclass
class RunMetrics:
    """Metrics collected during one seed or sync run.

    Attributes:
        category: Category tag of the run
        mode: "seed" or "sync"
        discovered_count: Candidate URLs found on the listing page(s)
        generated_count: Articles accepted from the generation backend
        deduped_count: Articles left after removing already stored URLs
        inserted_count: Rows actually inserted by the repository
        failed_urls: URLs that produced no article
        errors: Error messages encountered during the run
        run_timestamp: Timestamp when the run started
    """
    category: str
    mode: str
    discovered_count: int = 0
    generated_count: int = 0
    deduped_count: int = 0
    inserted_count: int = 0
    failed_urls: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    run_timestamp: datetime = field(default_factory=datetime.now)


def write_run_log(metrics: RunMetrics, output_dir: str) -> str:
    """Write run metrics to a JSON log file.

    Creates a JSON file in the specified output directory with filename format:
    run_log_{category}_{mode}_YYYYMMDD_HHMMSS.json

    Args:
        metrics: RunMetrics instance to write
        output_dir: Directory path for output file

    Returns:
        The filepath of the written JSON file

    Raises:
        OSError: If the output directory cannot be created or file cannot be written
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    timestamp = metrics.run_timestamp.strftime('%Y%m%d_%H%M%S')
    filename = f"run_log_{metrics.category}_{metrics.mode}_{timestamp}.json"
    filepath = output_path / filename

    with open(filepath, 'w', encoding='utf-8') as f:
        json.dump(_metrics_to_dict(metrics), f, indent=2, ensure_ascii=False)

    logger.info(f"Run log written to {filepath}")
    return str(filepath)


def _metrics_to_dict(metrics: RunMetrics) -> dict[str, Any]:
    """Convert RunMetrics to a JSON-serializable dictionary."""
    return {
        "category": metrics.category,
        "mode": metrics.mode,
        "discovered_count": metrics.discovered_count,
        "generated_count": metrics.generated_count,
        "deduped_count": metrics.deduped_count,
        "inserted_count": metrics.inserted_count,
        "failed_urls": metrics.failed_urls,
        "errors": metrics.errors,
        "run_timestamp": metrics.run_timestamp.isoformat(),
    }


def log_stage_counts(stage: str, count: int, category: str = "") -> None:
    """Log the count for a pipeline stage.

    Example:
        >>> log_stage_counts("discovered", 10, "npb")
        # Logs: "[npb] Pipeline stage 'discovered': 10 items"
    """
    prefix = f"[{category}] " if category else ""
    logger.info(f"{prefix}Pipeline stage '{stage}': {count} items")
