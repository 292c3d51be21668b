from __future__ import annotations

import csv
from pathlib import Path

from ..engines.base import ResultSet
from .formatting import STATUS_LABELS


class CSVExporter:
    """
    Writes one row per code, in submission order.
    """

    _headers = [
        "position",
        "code",
        "kind",
        "status",
        "found",
        "products",
        "detail",
    ]

    def export(self, result: ResultSet, path: str, *, mode: str = "bulk") -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            w = csv.writer(f)
            w.writerow(self._headers)
            for position, outcome in enumerate(result.outcomes, start=1):
                w.writerow(
                    [
                        position,
                        outcome.code,
                        outcome.kind.value,
                        STATUS_LABELS[outcome.kind],
                        "yes" if outcome.found else "no",
                        outcome.count,
                        outcome.detail,
                    ]
                )
