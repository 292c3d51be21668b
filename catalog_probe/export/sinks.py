from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import IO, List, Optional

from ..engines.base import Outcome
from .formatting import LineFormatter, bulk_line

logger = logging.getLogger(__name__)


class LineFileSink:
    """
    Appends one formatted line per outcome, flushed (and optionally fsynced)
    before ``write`` returns. The file is truncated when opened.
    """

    def __init__(self, path: str, formatter: LineFormatter = bulk_line, *, fsync: bool = True) -> None:
        self.path = path
        self.formatter = formatter
        self.fsync = fsync
        self._fh: Optional[IO[str]] = None
        self._lock = threading.Lock()
        self.lines_written = 0

    def __enter__(self) -> "LineFileSink":
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def open(self) -> None:
        if self._fh is not None:
            return
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._fh = open(self.path, "w", encoding="utf-8")

    def write(self, outcome: Outcome) -> None:
        line = self.formatter(outcome)
        # One writer at a time so lines never interleave.
        with self._lock:
            if self._fh is None:
                raise OSError(f"sink {self.path} is not open")
            self._fh.write(line + "\n")
            self._fh.flush()
            if self.fsync:
                os.fsync(self._fh.fileno())
            self.lines_written += 1

    def close(self) -> None:
        with self._lock:
            if self._fh is not None:
                self._fh.close()
                self._fh = None
                logger.debug("Closed %s after %s line(s)", self.path, self.lines_written)


class MemorySink:
    """Keeps formatted lines in memory, for API responses and tests."""

    def __init__(self, formatter: LineFormatter = bulk_line) -> None:
        self.formatter = formatter
        self.lines: List[str] = []
        self.outcomes: List[Outcome] = []
        self._lock = threading.Lock()

    def __enter__(self) -> "MemorySink":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def open(self) -> None:
        pass

    def write(self, outcome: Outcome) -> None:
        with self._lock:
            self.outcomes.append(outcome)
            self.lines.append(self.formatter(outcome))

    def close(self) -> None:
        pass
