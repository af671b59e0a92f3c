"""Bounded worker pool and cancellation for per-item git fan-out."""

import os
import sys
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from branch_atlas.exceptions import OperationCancelledError
from branch_atlas.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# git serializes on its own locks for some operations; more workers than this
# only adds contention.
MIN_WORKERS = 4
MAX_WORKERS = 8


class CancellationToken:
    """Thread-safe cancellation flag shared between a caller and a running aggregation."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, operation: str = "operation") -> None:
        if self._event.is_set():
            raise OperationCancelledError(operation)


def is_free_threading_enabled() -> bool:
    """Detect if Python is running with free-threading enabled.

    Returns:
        True if running on Python 3.13+ with GIL disabled (free-threading mode)
    """
    return hasattr(sys, "_is_gil_enabled") and not sys._is_gil_enabled()


def get_python_threading_mode() -> str:
    """Get a description of the current threading mode."""
    if hasattr(sys, "_is_gil_enabled"):
        return "GIL-enabled" if sys._is_gil_enabled() else "free-threading"
    return "GIL-enabled (Python < 3.13)"


def get_optimal_worker_count(user_specified: Optional[int] = None) -> int:
    """Calculate the git worker pool size.

    Args:
        user_specified: User-specified worker count, if provided

    Returns:
        Number of workers for per-item git calls
    """
    if user_specified is not None and user_specified > 0:
        return user_specified

    cpu_count = os.cpu_count() or 1
    return max(MIN_WORKERS, min(MAX_WORKERS, cpu_count))


def get_threading_info() -> Dict[str, Any]:
    """Get information about the Python threading configuration."""
    return {
        "mode": get_python_threading_mode(),
        "free_threading": is_free_threading_enabled(),
        "cpu_count": os.cpu_count() or 1,
        "optimal_workers": get_optimal_worker_count(),
        "python_version": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
    }


def bounded_map(
    fn: Callable[[T], R],
    items: Iterable[T],
    max_workers: int,
    cancel_token: Optional[CancellationToken] = None,
    operation: str = "batch",
) -> List[R]:
    """Apply ``fn`` to every item using at most ``max_workers`` threads.

    Results are returned in input order, whatever order the workers finish in.
    On cancellation, work not yet started is dropped, running calls are left to
    finish, and OperationCancelledError is raised instead of a partial list.
    Exceptions raised by ``fn`` propagate; callers isolate per-item failures
    inside ``fn``.

    Args:
        fn: Function applied to each item
        items: Items to process
        max_workers: Upper bound on concurrent calls
        cancel_token: Optional token checked before and during the batch
        operation: Name used in logs and in the cancellation error

    Returns:
        List of results, index-aligned with ``items``
    """
    item_list = list(items)
    if cancel_token is not None:
        cancel_token.raise_if_cancelled(operation)
    if not item_list:
        return []

    workers = max(1, min(max_workers, len(item_list)))
    results: List[Optional[R]] = [None] * len(item_list)
    logger.debug(f"Running {operation} over {len(item_list)} items with {workers} workers")

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="git-worker") as executor:
        future_to_index = {
            executor.submit(_run_unless_cancelled, fn, item, cancel_token): index
            for index, item in enumerate(item_list)
        }
        try:
            for future in as_completed(future_to_index):
                results[future_to_index[future]] = future.result()
                if cancel_token is not None and cancel_token.cancelled:
                    break
        finally:
            if cancel_token is not None and cancel_token.cancelled:
                for future in future_to_index:
                    future.cancel()

    if cancel_token is not None and cancel_token.cancelled:
        logger.debug(f"{operation} cancelled; discarding results")
        raise OperationCancelledError(operation)

    return results  # type: ignore[return-value]


def _run_unless_cancelled(fn: Callable[[T], R], item: T, cancel_token: Optional[CancellationToken]):
    if cancel_token is not None and cancel_token.cancelled:
        return None
    return fn(item)
