"""Utility functions for branch-atlas.

This package provides utility modules:
- threading: Bounded worker pool, cancellation and worker-count heuristics
- dates: ISO date helpers shared by the aggregators
"""

from .threading import (
    CancellationToken,
    bounded_map,
    get_optimal_worker_count,
    get_threading_info,
)
from .dates import to_iso, days_between, utc_now

__all__ = [
    # Threading
    "CancellationToken",
    "bounded_map",
    "get_optimal_worker_count",
    "get_threading_info",
    # Dates
    "to_iso",
    "days_between",
    "utc_now",
]
