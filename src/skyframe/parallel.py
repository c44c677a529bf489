"""Row-partitioned fan-out over fixed worker pools.

Transforms allocate their output once, then hand map_rows() a function that
fills rows [start, stop). Partitions are disjoint, so workers never share
mutable state and the merged result is the same as a sequential run.

One pool exists per worker count in use. Pools live until shutdown_pool();
changing the configured worker count, or passing a different ``workers`` to
a transform, never stops a pool another caller is using.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor

from skyframe.config import get_config
from skyframe.observability import get_logger

__all__ = ["active_pools", "map_rows", "partition_rows", "shutdown_pool"]

logger = get_logger(__name__)

_pools: dict[int, ThreadPoolExecutor] = {}
_pool_lock = threading.Lock()


def partition_rows(rows: int, parts: int) -> list[tuple[int, int]]:
    """Split ``rows`` into at most ``parts`` contiguous, non-empty ranges.

    Example:
        >>> partition_rows(10, 3)
        [(0, 4), (4, 7), (7, 10)]
    """
    parts = max(1, min(parts, rows))
    base, extra = divmod(rows, parts)
    ranges = []
    start = 0
    for i in range(parts):
        stop = start + base + (1 if i < extra else 0)
        ranges.append((start, stop))
        start = stop
    return ranges


def _submit(
    work: Callable[[int, int], None], ranges: list[tuple[int, int]], workers: int
) -> list[Future[None]]:
    # Lookup and submit are atomic with respect to shutdown_pool()
    with _pool_lock:
        pool = _pools.get(workers)
        if pool is None:
            pool = ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix=f"skyframe-{workers}"
            )
            _pools[workers] = pool
        return [pool.submit(work, start, stop) for start, stop in ranges]


def active_pools() -> list[int]:
    """Worker counts of the pools currently running, ascending."""
    with _pool_lock:
        return sorted(_pools)


def shutdown_pool() -> None:
    """Stop every worker pool; the next parallel call starts a new one.

    Already submitted partitions finish first.
    """
    with _pool_lock:
        pools = list(_pools.values())
        _pools.clear()
        for pool in pools:
            pool.shutdown(wait=True)


def map_rows(
    work: Callable[[int, int], None],
    rows: int,
    pixels: int,
    workers: int | None = None,
) -> None:
    """Run ``work(start, stop)`` over all rows, in parallel when worthwhile.

    The pool is used when the worker count is above 1 and the image has at
    least ``parallel_threshold`` pixels. Exceptions raised by a partition
    propagate to the caller after all partitions finish.

    Args:
        work: Fills output rows [start, stop).
        rows: Number of rows.
        pixels: Pixel count used against the parallel threshold.
        workers: Override for the configured worker count.
    """
    config = get_config()
    count = config.workers if workers is None else workers
    if count <= 1 or rows < 2 or pixels < config.parallel_threshold:
        work(0, rows)
        return

    ranges = partition_rows(rows, count)
    logger.debug("Rows partitioned", rows=rows, partitions=len(ranges))
    futures = _submit(work, ranges, count)
    errors = [f.exception() for f in futures]
    for error in errors:
        if error is not None:
            raise error
