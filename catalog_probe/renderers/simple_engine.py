from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import aiohttp
from aiohttp import ClientSession

from ..errors import ExtractionError, FrameTimeoutError, NavigationError, ResourceError
from ..utils.http import create_session, fetch_text
from ..utils.parsing import extract_frame_urls, first_matching, has_selector
from .base import UrlPredicate

logger = logging.getLogger(__name__)


class SimpleFrame:
    """A frame resolved from static markup; its document is fetched on demand."""

    def __init__(self, http: ClientSession, url: str, *, timeout: float, user_agent: Optional[str]) -> None:
        self._http = http
        self.url = url
        self._timeout = timeout
        self._user_agent = user_agent

    async def content(self) -> str:
        try:
            return await fetch_text(self._http, self.url, timeout=self._timeout, user_agent=self._user_agent)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ExtractionError(f"Iframe content extraction failed: {exc!r}") from exc


class SimpleSession:
    def __init__(self, http: ClientSession, *, timeout: float, user_agent: Optional[str]) -> None:
        self._http = http
        self._timeout = timeout
        self._user_agent = user_agent
        self._url: Optional[str] = None
        self._html: Optional[str] = None

    async def navigate(self, url: str) -> None:
        try:
            self._html = await fetch_text(self._http, url, timeout=self._timeout, user_agent=self._user_agent)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise NavigationError(f"Navigation to {url} failed: {exc!r}") from exc
        self._url = url

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None:
        # Static markup never changes, so either the selector is there now or never.
        if self._html is None or not has_selector(self._html, selector):
            raise FrameTimeoutError(f"{selector} not present in static markup")

    def frame_matching(self, predicate: UrlPredicate) -> Optional[SimpleFrame]:
        if self._html is None or self._url is None:
            return None
        url = first_matching(extract_frame_urls(self._html, self._url), predicate)
        if url is None:
            return None
        return SimpleFrame(self._http, url, timeout=self._timeout, user_agent=self._user_agent)

    async def pause(self, ms: int) -> None:
        await asyncio.sleep(ms / 1000)

    async def close(self) -> None:
        self._html = None
        self._url = None


class SimpleRenderer:
    """
    Browserless backend: plain HTTP plus static markup inspection.
    Works when the result frame's ``src`` is present in the served HTML.
    """
    name = "simple"

    def __init__(self, *, request_timeout: float = 15.0, user_agent: Optional[str] = None) -> None:
        self.request_timeout = request_timeout
        self.user_agent = user_agent
        self._http: Optional[ClientSession] = None

    @classmethod
    def from_config(cls, cfg: Any) -> "SimpleRenderer":
        return cls(request_timeout=cfg.request_timeout, user_agent=cfg.user_agent)

    async def __aenter__(self) -> "SimpleRenderer":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def start(self) -> None:
        if self._http is None:
            try:
                self._http = create_session()
            except (OSError, RuntimeError) as exc:
                raise ResourceError(f"HTTP session could not be created: {exc!r}") from exc

    async def close(self) -> None:
        if self._http is not None:
            await self._http.close()
            self._http = None

    async def new_session(self) -> SimpleSession:
        if self._http is None:
            await self.start()
        assert self._http is not None
        return SimpleSession(self._http, timeout=self.request_timeout, user_agent=self.user_agent)
