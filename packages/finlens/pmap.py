"""Bounded, order-preserving parallel map for parsing one upload batch.

PDF text extraction and the optional AI statement read block on I/O, so the
pipeline parses the files of a batch on a small thread pool. Results come
back in upload order; the first mapper error (taken in input order) is
re-raised once the pool has drained.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor


def p_map[InT, OutT](
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
) -> list[OutT]:
    """Map ``iterable`` through ``mapper`` with at most ``concurrency`` calls in flight.

    ``concurrency=1`` (or a single item) runs everything inline on the
    calling thread.
    """

    if not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    items = list(iterable)
    if concurrency == 1 or len(items) <= 1:
        return [mapper(item) for item in items]

    with ThreadPoolExecutor(
        max_workers=min(concurrency, len(items)), thread_name_prefix="finlens-parse"
    ) as pool:
        return list(pool.map(mapper, items))


__all__ = ["p_map"]
