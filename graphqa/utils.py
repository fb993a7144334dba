"""Small helpers shared by indexing and querying."""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def run_in_batches(
    items: Sequence[T],
    func: Callable[[int, T], R],
    batch_size: int
) -> List[R]:
    """Apply ``func(index, item)`` to every item, ``batch_size`` at a time.

    Each batch runs concurrently and must finish before the next starts.
    The first exception raised by ``func`` propagates once its batch is done.

    Returns:
        Results in item order
    """
    results: List[R] = []
    if not items:
        return results
    with ThreadPoolExecutor(max_workers=batch_size) as executor:
        for start in range(0, len(items), batch_size):
            batch = items[start:start + batch_size]
            futures = [
                executor.submit(func, start + offset, item)
                for offset, item in enumerate(batch)
            ]
            results.extend(future.result() for future in futures)
    return results
