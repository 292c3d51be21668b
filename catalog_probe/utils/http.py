from __future__ import annotations

import asyncio
from typing import Optional
from aiohttp import ClientSession, ClientTimeout
import aiohttp
import logging

logger = logging.getLogger(__name__)


async def fetch_text(
    session: ClientSession,
    url: str,
    *,
    timeout: float = 15.0,
    user_agent: Optional[str] = None,
) -> str:
    """
    Fetch a URL and return body text.
    Raises ``aiohttp.ClientError`` or ``asyncio.TimeoutError``; callers map
    them onto the probe error taxonomy. Probes are single-attempt, so no retry.
    """
    headers = {}
    if user_agent:
        headers["User-Agent"] = user_agent

    try:
        async with session.get(url, headers=headers, timeout=ClientTimeout(total=timeout)) as resp:
            resp.raise_for_status()
            return await resp.text()
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        logger.debug("fetch_text failed for %s: %r", url, exc)
        raise


def create_session(limit: int = 0) -> ClientSession:
    """
    Create a shared aiohttp ClientSession.
    """
    # Note: caller is responsible for closing the session (await session.close()).
    connector = aiohttp.TCPConnector(limit=limit)  # 0 = unlimited; concurrency is capped by the worker pool
    return aiohttp.ClientSession(connector=connector)
