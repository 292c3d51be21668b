from __future__ import annotations

from typing import Protocol

from ..engines.base import Outcome, ResultSet


class ResultSink(Protocol):
    """
    Durable, write-through destination for outcomes as they land.
    ``write`` must return only once the line is persisted.
    """

    def open(self) -> None:
        ...

    def write(self, outcome: Outcome) -> None:
        ...

    def close(self) -> None:
        ...


class Exporter(Protocol):
    """End-of-run summary writer; receives the ordered result set."""

    def export(self, result: ResultSet, path: str, *, mode: str = "bulk") -> None:
        ...
