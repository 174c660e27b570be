"""
Batch scheduler.

Runs one resolution per domain with at most `concurrency` of them in flight,
yielding each result as soon as it settles (completion order, not input
order).
"""

import asyncio
import logging
from collections import deque
from typing import AsyncIterator, Awaitable, Callable, Iterable

from .models import DomainStatus

logger = logging.getLogger(__name__)


def dedupe_domains(domains: Iterable[str]) -> list[str]:
    """Trim and drop case-insensitive duplicates, keeping first occurrences."""
    seen = set()
    result = []
    for domain in domains:
        domain = domain.strip()
        key = domain.lower()
        if not key or key in seen:
            continue
        seen.add(key)
        result.append(domain)
    return result


async def stream_resolutions(
    domains: Iterable[str],
    resolve: Callable[[str], Awaitable[DomainStatus]],
    concurrency: int,
) -> AsyncIterator[DomainStatus]:
    """
    Resolve `domains` through `resolve`, keeping a window of `concurrency`
    tasks. Closing the iterator early cancels whatever is still running.

    Raises:
        ValueError: concurrency is not a positive integer
    """
    if not isinstance(concurrency, int) or isinstance(concurrency, bool) or concurrency < 1:
        raise ValueError(f"concurrency must be a positive integer, got {concurrency!r}")

    queue = deque(dedupe_domains(domains))
    logger.debug("scheduling %d domains with concurrency %d", len(queue), concurrency)

    in_flight: set[asyncio.Task] = set()
    try:
        while queue or in_flight:
            while queue and len(in_flight) < concurrency:
                in_flight.add(asyncio.ensure_future(resolve(queue.popleft())))
            done, in_flight = await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                yield task.result()
    finally:
        for task in in_flight:
            task.cancel()
        if in_flight:
            await asyncio.gather(*in_flight, return_exceptions=True)
