from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, List, Optional, Sequence, Tuple

from ..errors import IncompleteResultError, OutputError
from ..export.base import ResultSink
from .base import Outcome, ResultSet

logger = logging.getLogger(__name__)


class ResultCollector:
    """
    Fan-in for the worker pool.

    Each arriving outcome is appended to the sink immediately, then stored in
    the slot of its submission index. Slots are sized to the input up front,
    so the final ResultSet is in submission order whatever the completion order.
    """

    def __init__(self, codes: Sequence[str], sink: ResultSink) -> None:
        self._codes = list(codes)
        self._slots: List[Optional[Outcome]] = [None] * len(self._codes)
        self.sink = sink

    @property
    def completed(self) -> int:
        return sum(1 for slot in self._slots if slot is not None)

    def missing(self) -> List[int]:
        return [i for i, slot in enumerate(self._slots) if slot is None]

    def record(self, index: int, outcome: Outcome) -> None:
        self._check_slot(index, outcome)
        try:
            self.sink.write(outcome)
        except OSError as exc:
            raise OutputError(f"Cannot append result for {outcome.code}: {exc}") from exc
        finally:
            self._slots[index] = outcome
        self._log_recorded(outcome)

    async def record_async(self, index: int, outcome: Outcome) -> None:
        """Like ``record``, with the sink write (and its fsync) off the event loop."""
        self._check_slot(index, outcome)
        try:
            await asyncio.to_thread(self.sink.write, outcome)
        except OSError as exc:
            raise OutputError(f"Cannot append result for {outcome.code}: {exc}") from exc
        finally:
            self._slots[index] = outcome
        self._log_recorded(outcome)

    def _check_slot(self, index: int, outcome: Outcome) -> None:
        if not 0 <= index < len(self._slots):
            raise IndexError(f"outcome index {index} outside 0..{len(self._slots) - 1}")
        if self._slots[index] is not None:
            raise ValueError(f"duplicate outcome for index {index} ({outcome.code})")

    def _log_recorded(self, outcome: Outcome) -> None:
        logger.info("[%s/%s] %s: %s", self.completed, len(self._slots), outcome.code, outcome.kind.value)

    async def consume(self, stream: AsyncIterator[Tuple[int, Outcome]]) -> ResultSet:
        try:
            async for index, outcome in stream:
                await self.record_async(index, outcome)
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
        return self.finalize()

    def finalize(self) -> ResultSet:
        missing = self.missing()
        if missing:
            raise IncompleteResultError(missing)
        return ResultSet.from_outcomes([slot for slot in self._slots if slot is not None])

    def partial(self, reason: str) -> ResultSet:
        """
        Result set for an interrupted run: unfinished codes are filled with
        ``Error`` outcomes so the set still has one outcome per code.
        These fillers are not written to the sink.
        """
        outcomes = [
            slot if slot is not None else Outcome.error(code, reason)
            for code, slot in zip(self._codes, self._slots)
        ]
        return ResultSet.from_outcomes(outcomes, interrupted=True)
