"""
Sequential pagination with a cooperative inter-page delay.

Pages are requested strictly one after another. Before every page after the
first, the loop suspends with ``asyncio.sleep`` so other tasks keep running
while the provider's rate limit recovers.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# A page fetcher receives the 1-based page number and returns the page's
# items plus whether another page is available.
PageFetcher = Callable[[int], Awaitable[tuple[list[T], bool]]]


async def collect_pages(
    fetch_page: PageFetcher[T],
    *,
    limit: int | None = None,
    inter_page_delay_ms: int = 0,
    max_pages: int = 1000,
) -> list[T]:
    """
    Collect items from consecutive pages.

    The loop continues while more pages are available and either no limit is
    set or fewer than ``limit`` items have been accumulated.

    Args:
        fetch_page: Coroutine function returning ``(items, has_more)``
        limit: Maximum number of items to return (None for unbounded)
        inter_page_delay_ms: Delay before requesting page N > 1
        max_pages: Hard stop against a provider that never reports the end

    Returns:
        Accumulated items, truncated to ``limit``
    """
    items: list[T] = []
    page = 1

    while page <= max_pages:
        if page > 1 and inter_page_delay_ms > 0:
            await asyncio.sleep(inter_page_delay_ms / 1000)

        page_items, has_more = await fetch_page(page)
        items.extend(page_items)
        logger.debug("Fetched page %d (%d items, %d total)", page, len(page_items), len(items))

        if not has_more:
            break
        if limit is not None and len(items) >= limit:
            break
        page += 1

    if limit is not None:
        return items[:limit]
    return items
