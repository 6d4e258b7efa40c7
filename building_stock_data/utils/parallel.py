"""
Order-preserving map over worker threads.

The catalog and the statistics cells are independent computations over
read-only reference data, so they can be mapped in parallel. Results are
returned in input order regardless of completion order.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Sequence, TypeVar
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def parallel_map(
    func: Callable[[T], R],
    items: Sequence[T],
    max_workers: int = 1,
    description: str = "items",
) -> List[R]:
    """
    Apply `func` to every item, sequentially or with `max_workers` threads.

    The first exception raised by `func` propagates to the caller.
    """
    if max_workers <= 1 or len(items) <= 1:
        return [func(item) for item in items]

    results: List[R] = [None] * len(items)  # type: ignore[list-item]
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(func, item): i for i, item in enumerate(items)}

        completed = 0
        for future in as_completed(futures):
            results[futures[future]] = future.result()
            completed += 1
            if completed % 500 == 0:
                logger.debug(f"  Completed {completed}/{len(items)} {description}")
    return results
