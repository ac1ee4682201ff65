"""Bounded-concurrency fan-out over a list of items."""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from .exceptions import BatchError, ValidationError

logger = logging.getLogger(__name__)

I = TypeVar("I")
R = TypeVar("R")


async def run_batch(
    items: Sequence[I],
    concurrency: int,
    unit_of_work: Callable[[I], Awaitable[R]],
) -> List[R]:
    """
    Apply `unit_of_work` to every item with at most `concurrency` in flight.

    Results are returned in input order. The first failure (by completion
    time) stops new units from being started; units already running are
    awaited and their results dropped, then a single BatchError is raised.

    Args:
        items: Work items, e.g. message IDs
        concurrency: Maximum number of units running at once (>= 1)
        unit_of_work: Coroutine function applied to each item

    Returns:
        List where result[i] is unit_of_work(items[i])

    Raises:
        ValidationError: If concurrency is less than 1
        BatchError: Wrapping the first failing unit's exception
    """
    if concurrency < 1:
        raise ValidationError(f"concurrency must be >= 1, got {concurrency}")

    items = list(items)
    if not items:
        return []

    results: List[Optional[R]] = [None] * len(items)
    next_index = 0
    failure: Optional[BatchError] = None

    async def worker():
        nonlocal next_index, failure
        while failure is None and next_index < len(items):
            index = next_index
            next_index += 1
            item = items[index]
            try:
                results[index] = await unit_of_work(item)
            except Exception as e:
                if failure is None:
                    logger.debug(f"Batch item {index} ({item!r}) failed: {e}")
                    failure = BatchError(item, index, e)
                    failure.__cause__ = e
                return

    workers = min(concurrency, len(items))
    logger.debug(f"Running batch of {len(items)} items with {workers} workers")
    await asyncio.gather(*(worker() for _ in range(workers)))

    if failure is not None:
        raise failure
    return results
