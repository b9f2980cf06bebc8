from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


async def can_reach(url: str, timeout: float) -> bool:
    """Return True when url answers with any HTTP status within timeout seconds."""
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.head(url)
    except httpx.HTTPError as e:
        logger.debug("Preflight %s failed: %s", url, e)
        return False
    logger.debug("Preflight %s -> HTTP %d", url, response.status_code)
    return True


async def any_reachable(urls: tuple[str, ...], timeout: float) -> bool:
    for url in urls:
        if await can_reach(url, timeout):
            return True
    return False
