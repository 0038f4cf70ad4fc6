"""Worker sizing for the thread pools used by gren."""

import os
import sys
from typing import Any, Dict, Optional

# GitHub allows a limited number of concurrent requests per token
MAX_API_WORKERS = 8


def is_free_threading_enabled() -> bool:
    """Detect if Python is running with the GIL disabled (3.13+ free-threading)."""
    try:
        return hasattr(sys, "_is_gil_enabled") and not sys._is_gil_enabled()
    except Exception:
        return False


def get_optimal_worker_count(task_count: int, user_specified: Optional[int] = None) -> int:
    """Number of workers to use for ``task_count`` I/O-bound tasks.

    Args:
        task_count: Number of independent tasks to run
        user_specified: Explicit worker count, if provided

    Returns:
        A worker count between 1 and ``task_count``
    """
    if task_count <= 0:
        return 1
    if user_specified is not None and user_specified > 0:
        return min(user_specified, task_count)

    cpu_count = os.cpu_count() or 1
    if is_free_threading_enabled():
        workers = cpu_count * 2
    else:
        # I/O-bound work: a few more threads than cores
        workers = cpu_count + 4

    return max(1, min(workers, MAX_API_WORKERS, task_count))


def get_threading_info() -> Dict[str, Any]:
    """Threading configuration, shown by ``gren --debug``."""
    return {
        "free_threading": is_free_threading_enabled(),
        "cpu_count": os.cpu_count() or 1,
        "max_api_workers": MAX_API_WORKERS,
        "python_version": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
    }
