"""
Bounded execution helpers for batches of remote calls.
"""
import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")

ProgressCallback = Callable[[int, int], None]


async def run_in_windows(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    window_size: int,
    on_progress: Optional[ProgressCallback] = None,
) -> List[R]:
    """
    Run worker over items in fixed-size concurrent windows.

    A window must finish before the next one starts, so at most window_size
    calls are in flight. window_size=1 runs the batch sequentially.

    Args:
        items: Inputs to process
        worker: Coroutine function applied to each item; exceptions propagate
        window_size: Maximum number of concurrent calls
        on_progress: Called with (completed, total) after every window

    Returns:
        Results in the same order as items
    """
    if window_size < 1:
        raise ValueError("window_size must be at least 1")

    total = len(items)
    results: List[R] = []

    for start in range(0, total, window_size):
        window = items[start:start + window_size]
        results.extend(await asyncio.gather(*(worker(item) for item in window)))

        if on_progress:
            on_progress(min(start + window_size, total), total)

    return results
