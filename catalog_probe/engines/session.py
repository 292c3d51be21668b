from __future__ import annotations

import logging
from typing import Any, Optional

from ..classifiers.base import ClassificationPolicy
from ..classifiers.catalog import CatalogClassifier
from ..errors import FrameTimeoutError, ProbeError, ResourceError
from ..renderers.base import Renderer, RenderSession
from ..utils.parsing import code_url, url_contains
from .base import Outcome

logger = logging.getLogger(__name__)


class ProbeSession:
    """
    Checks one code on one fresh renderer page.

    Steps: open page -> navigate -> wait for the frame marker -> pick the
    content frame by URL -> optional settle delay -> read markup -> classify.
    Every probe failure becomes an ``Error`` outcome; only ``ResourceError``
    (no page could be opened) propagates, for the worker pool to convert.
    The page is released on every exit path.
    """

    def __init__(
        self,
        *,
        site_root: str,
        frame_selector: str = "iframe#myIframe",
        frame_url_fragment: str = "content.php?param=",
        selector_timeout_ms: int = 8000,
        settle_ms: int = 0,
        classifier: Optional[ClassificationPolicy] = None,
    ) -> None:
        self.site_root = site_root
        self.frame_selector = frame_selector
        self.frame_url_fragment = frame_url_fragment
        self.selector_timeout_ms = selector_timeout_ms
        self.settle_ms = settle_ms
        self.classifier = classifier or CatalogClassifier()

    @classmethod
    def from_config(cls, cfg: Any, classifier: Optional[ClassificationPolicy] = None) -> "ProbeSession":
        return cls(
            site_root=cfg.site_root,
            frame_selector=cfg.frame_selector,
            frame_url_fragment=cfg.frame_url_fragment,
            selector_timeout_ms=cfg.selector_timeout_ms,
            settle_ms=cfg.settle_ms,
            classifier=classifier,
        )

    async def run(self, renderer: Renderer, code: str) -> Outcome:
        page = await renderer.new_session()  # ResourceError propagates
        try:
            return await self._probe(page, code)
        finally:
            await self._release(page, code)

    async def _probe(self, page: RenderSession, code: str) -> Outcome:
        url = code_url(self.site_root, code)
        logger.debug("Probing %s", url)
        try:
            await page.navigate(url)
            frame_text = await self._read_frame(page, code)
        except ResourceError:
            raise
        except ProbeError as exc:
            logger.warning("Probe failed for %s: %s", code, exc.message)
            return Outcome.error(code, exc.message)
        return Outcome.from_classification(code, self.classifier.classify(frame_text))

    async def _read_frame(self, page: RenderSession, code: str) -> Optional[str]:
        """Return the content frame's markup, or None when it never appeared."""
        try:
            await page.wait_for_selector(self.frame_selector, self.selector_timeout_ms)
        except FrameTimeoutError as exc:
            logger.debug("No frame for %s: %s", code, exc.message)
            return None

        frame = page.frame_matching(url_contains(self.frame_url_fragment))
        if frame is None:
            logger.debug("No frame matching %r for %s", self.frame_url_fragment, code)
            return None

        if self.settle_ms:
            # Frame documents populate asynchronously after attaching.
            await page.pause(self.settle_ms)
        return await frame.content()

    async def _release(self, page: RenderSession, code: str) -> None:
        try:
            await page.close()
        except Exception as exc:  # a failed close must not replace the outcome
            logger.warning("Releasing page for %s failed: %r", code, exc)
