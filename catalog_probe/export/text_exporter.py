from __future__ import annotations

from pathlib import Path

from ..engines.base import ResultSet
from .formatting import RULE, line_formatter, summary_lines

HEADERS = {
    "bulk": "CODE CHECK RESULTS",
    "detailed": "CODE ANALYSIS RESULTS",
}


class TextExporter:
    """
    Human-readable report: header, one line per code in submission order,
    then the summary block.
    """

    def export(self, result: ResultSet, path: str, *, mode: str = "bulk") -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        fmt = line_formatter(mode)
        with open(path, "w", encoding="utf-8") as f:
            f.write(HEADERS.get(mode, HEADERS["bulk"]) + "\n")
            f.write(RULE + "\n\n")
            for outcome in result.outcomes:
                f.write(fmt(outcome) + "\n")
            f.write("\n" + RULE + "\n")
            f.write("SUMMARY\n")
            f.write(RULE + "\n")
            for line in summary_lines(result, mode=mode):
                f.write(line + "\n")
