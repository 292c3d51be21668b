# renderers/browser_engine.py
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, List, Optional

from ..errors import ExtractionError, FrameTimeoutError, NavigationError, ResourceError
from .base import UrlPredicate


def app_data_dir() -> Path:
    base = os.getenv("LOCALAPPDATA") or str(Path.home() / ".catalog-probe")
    p = Path(base) / "catalog-probe"
    p.mkdir(parents=True, exist_ok=True)
    return p


BROWSERS_DIR = app_data_dir() / "ms-playwright"
os.environ.setdefault("PLAYWRIGHT_BROWSERS_PATH", str(BROWSERS_DIR))

# Imported after PLAYWRIGHT_BROWSERS_PATH is set so the driver picks it up.
from playwright.async_api import (  # noqa: E402
    Browser,
    Error as PlaywrightError,
    Frame,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

logger = logging.getLogger(__name__)

DEFAULT_LAUNCH_ARGS = ["--no-sandbox", "--disable-dev-shm-usage"]


class PlaywrightFrame:
    def __init__(self, frame: Frame) -> None:
        self._frame = frame
        self.url = frame.url

    async def content(self) -> str:
        try:
            return await self._frame.content()
        except PlaywrightError as exc:
            raise ExtractionError(f"Iframe content extraction failed: {exc.message}") from exc


class PlaywrightSession:
    """A page plus, in browser isolation, the browser launched for it alone."""

    def __init__(self, page: Page, *, owned_browser: Optional[Browser] = None,
                 navigation_timeout_ms: int = 30000) -> None:
        self._page = page
        self._owned_browser = owned_browser
        self._navigation_timeout_ms = navigation_timeout_ms

    async def navigate(self, url: str) -> None:
        try:
            await self._page.goto(url, timeout=self._navigation_timeout_ms)
        except PlaywrightError as exc:
            raise NavigationError(exc.message) from exc

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None:
        try:
            await self._page.wait_for_selector(selector, timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise FrameTimeoutError(f"{selector} not attached within {timeout_ms} ms") from exc
        except PlaywrightError as exc:
            # Page navigated away or crashed while waiting; the frame is as good as absent.
            raise FrameTimeoutError(exc.message) from exc

    def frame_matching(self, predicate: UrlPredicate) -> Optional[PlaywrightFrame]:
        frame = self._page.frame(url=predicate)
        return PlaywrightFrame(frame) if frame is not None else None

    async def pause(self, ms: int) -> None:
        await self._page.wait_for_timeout(ms)

    async def close(self) -> None:
        try:
            await self._page.close()
        except PlaywrightError as exc:
            logger.debug("Page close failed: %s", exc.message)
        finally:
            if self._owned_browser is not None:
                try:
                    await self._owned_browser.close()
                except PlaywrightError as exc:
                    logger.debug("Browser close failed: %s", exc.message)


class PlaywrightRenderer:
    """
    Headless Chromium backend.

    ``isolation="browser"`` launches a whole browser per session for maximum
    isolation between codes; ``isolation="page"`` keeps one browser for the
    renderer's lifetime and opens a fresh page per session.
    """
    name = "playwright"

    def __init__(
        self,
        *,
        isolation: str = "browser",
        headless: bool = True,
        launch_args: Optional[List[str]] = None,
        navigation_timeout_ms: int = 30000,
        user_agent: Optional[str] = None,
    ) -> None:
        self.isolation = isolation
        self.headless = headless
        self.launch_args = list(launch_args) if launch_args is not None else list(DEFAULT_LAUNCH_ARGS)
        self.navigation_timeout_ms = navigation_timeout_ms
        self.user_agent = user_agent
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    @classmethod
    def from_config(cls, cfg: Any) -> "PlaywrightRenderer":
        return cls(
            isolation=cfg.isolation,
            headless=cfg.headless,
            launch_args=cfg.launch_args,
            navigation_timeout_ms=cfg.navigation_timeout_ms,
            user_agent=cfg.user_agent,
        )

    async def __aenter__(self) -> "PlaywrightRenderer":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def start(self) -> None:
        if self._playwright is not None:
            return
        try:
            self._playwright = await async_playwright().start()
            if self.isolation == "page":
                self._browser = await self._launch()
        except PlaywrightError as exc:
            await self.close()
            raise ResourceError(f"Browser launch failed: {exc.message}") from exc

    async def close(self) -> None:
        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError as exc:
                logger.debug("Browser close failed: %s", exc.message)
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def new_session(self) -> PlaywrightSession:
        if self._playwright is None:
            await self.start()
        owned: Optional[Browser] = None
        try:
            if self.isolation == "browser":
                owned = await self._launch()
                browser = owned
            else:
                if self._browser is None or not self._browser.is_connected():
                    logger.warning("Shared browser disconnected; relaunching")
                    self._browser = await self._launch()
                browser = self._browser
            page = await browser.new_page(user_agent=self.user_agent) if self.user_agent else await browser.new_page()
        except PlaywrightError as exc:
            if owned is not None:
                await owned.close()
            raise ResourceError(f"Could not open a browser page: {exc.message}") from exc
        return PlaywrightSession(page, owned_browser=owned,
                                 navigation_timeout_ms=self.navigation_timeout_ms)

    async def _launch(self) -> Browser:
        assert self._playwright is not None
        return await self._playwright.chromium.launch(headless=self.headless, args=self.launch_args)
