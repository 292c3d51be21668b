from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Callable, List, Optional, Sequence, Set, Tuple

from ..errors import ResourceError
from ..renderers.base import Renderer
from .base import Outcome
from .session import ProbeSession

logger = logging.getLogger(__name__)

RendererFactory = Callable[[], Renderer]

ABANDONED_MESSAGE = "Abandoned: pool shut down before the probe completed"


class WorkerPool:
    """
    Bounded pool of probe workers over a shared work queue.

    - ``concurrency`` workers each claim the next unclaimed (index, code) until
      the queue is empty; a code is claimed by exactly one worker.
    - Each worker owns one renderer, started lazily and kept across codes;
      every code still gets its own page from it.
    - Outcomes are yielded as (index, outcome) in completion order.
    - ``request_shutdown`` stops new claims; in-flight probes get
      ``shutdown_grace`` seconds, after which they are cancelled. Codes that
      never completed are yielded as abandoned ``Error`` outcomes.
    """

    def __init__(
        self,
        renderer_factory: RendererFactory,
        session: ProbeSession,
        *,
        concurrency: int = 8,
        shutdown_grace: float = 30.0,
        request_delay_ms: int = 0,
    ) -> None:
        if concurrency <= 0:
            raise ValueError("concurrency must be > 0")
        self.renderer_factory = renderer_factory
        self.session = session
        self.concurrency = concurrency
        self.shutdown_grace = shutdown_grace
        self.request_delay_ms = request_delay_ms
        self._stopping = asyncio.Event()

    @property
    def shutdown_requested(self) -> bool:
        return self._stopping.is_set()

    def request_shutdown(self) -> None:
        if not self._stopping.is_set():
            logger.warning("Shutdown requested; no new codes will be claimed")
        self._stopping.set()

    async def run_all(self, codes: Sequence[str]) -> AsyncIterator[Tuple[int, Outcome]]:
        total = len(codes)
        if total == 0:
            return

        pending: asyncio.Queue[Tuple[int, str]] = asyncio.Queue()
        for item in enumerate(codes):
            pending.put_nowait(item)
        done: asyncio.Queue[Tuple[int, Outcome]] = asyncio.Queue()
        emitted: Set[int] = set()

        workers: List[asyncio.Task] = [
            asyncio.create_task(self._worker(i, pending, done), name=f"probe-worker-{i}")
            for i in range(min(self.concurrency, total))
        ]
        all_exited = asyncio.gather(*workers, return_exceptions=True)
        stop_wait = asyncio.ensure_future(self._stopping.wait())
        logger.info("Probing %s codes with %s worker(s)", total, len(workers))
        getter: Optional[asyncio.Future] = None

        try:
            while len(emitted) < total:
                if not done.empty():
                    index, outcome = done.get_nowait()
                    emitted.add(index)
                    yield index, outcome
                    continue
                if all_exited.done() or stop_wait.done():
                    break
                getter = asyncio.ensure_future(done.get())
                await asyncio.wait({getter, all_exited, stop_wait}, return_when=asyncio.FIRST_COMPLETED)
                if getter.done():
                    index, outcome = getter.result()
                    emitted.add(index)
                    yield index, outcome
                else:
                    getter.cancel()

            if len(emitted) < total:
                if all_exited.done():
                    logger.error("All workers exited with codes still unfinished")
                else:
                    # Outcomes landing during the grace period are yielded at once.
                    loop = asyncio.get_running_loop()
                    deadline = loop.time() + self.shutdown_grace
                    logger.warning("Waiting up to %.1fs for %s in-flight probe(s)",
                                   self.shutdown_grace, sum(1 for w in workers if not w.done()))
                    while not all_exited.done():
                        if not done.empty():
                            index, outcome = done.get_nowait()
                            emitted.add(index)
                            yield index, outcome
                            continue
                        remaining = deadline - loop.time()
                        if remaining <= 0:
                            break
                        getter = asyncio.ensure_future(done.get())
                        await asyncio.wait({getter, all_exited}, timeout=remaining,
                                           return_when=asyncio.FIRST_COMPLETED)
                        if getter.done():
                            index, outcome = getter.result()
                            emitted.add(index)
                            yield index, outcome
                        else:
                            getter.cancel()
                    await self._cancel_stragglers(workers, all_exited)
                while not done.empty():
                    index, outcome = done.get_nowait()
                    emitted.add(index)
                    yield index, outcome
                for index, code in enumerate(codes):
                    if index not in emitted:
                        emitted.add(index)
                        yield index, Outcome.error(code, ABANDONED_MESSAGE)
        finally:
            stop_wait.cancel()
            if getter is not None and not getter.done():
                getter.cancel()
            for worker in workers:
                if not worker.done():
                    worker.cancel()
            await asyncio.gather(all_exited, return_exceptions=True)

    async def _cancel_stragglers(self, workers: List[asyncio.Task], all_exited: "asyncio.Future") -> None:
        stragglers = [w for w in workers if not w.done()]
        if not stragglers:
            return
        logger.warning("Grace period over; cancelling %s probe(s)", len(stragglers))
        for worker in stragglers:
            worker.cancel()
        await asyncio.gather(all_exited, return_exceptions=True)

    async def _worker(
        self,
        worker_id: int,
        pending: "asyncio.Queue[Tuple[int, str]]",
        done: "asyncio.Queue[Tuple[int, Outcome]]",
    ) -> None:
        renderer: Optional[Renderer] = None
        try:
            while not self._stopping.is_set():
                try:
                    index, code = pending.get_nowait()
                except asyncio.QueueEmpty:
                    return

                try:
                    if renderer is None:
                        renderer = await self._start_renderer()
                    outcome = await self.session.run(renderer, code)
                except ResourceError as exc:
                    logger.warning("Worker %s: no renderer for %s: %s", worker_id, code, exc.message)
                    outcome = Outcome.error(code, exc.message)
                except Exception as exc:  # one bad code never aborts the run
                    logger.exception("Worker %s: probe crashed for %s", worker_id, code)
                    outcome = Outcome.error(code, f"{type(exc).__name__}: {exc}")
                done.put_nowait((index, outcome))

                if self.request_delay_ms and not pending.empty():
                    await self._polite_delay()
        finally:
            if renderer is not None:
                await self._close_renderer(renderer, worker_id)

    async def _start_renderer(self) -> Renderer:
        renderer = self.renderer_factory()
        try:
            await renderer.start()
        except Exception:
            await self._close_renderer(renderer, None)
            raise
        return renderer

    async def _close_renderer(self, renderer: Renderer, worker_id: Optional[int]) -> None:
        try:
            await renderer.close()
        except Exception as exc:
            logger.warning("Worker %s: renderer close failed: %r", worker_id, exc)

    async def _polite_delay(self) -> None:
        # Wakes early when a shutdown is requested.
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=self.request_delay_ms / 1000)
        except asyncio.TimeoutError:
            pass
