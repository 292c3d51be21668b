from __future__ import annotations

from typing import Callable, Dict, List

from ..classifiers.base import OutcomeKind
from ..engines.base import Outcome, ResultSet

LineFormatter = Callable[[Outcome], str]

RULE = "=" * 60

STATUS_LABELS: Dict[OutcomeKind, str] = {
    OutcomeKind.SINGLE: "SINGLE",
    OutcomeKind.MULTIPLE: "MULTIPLE",
    OutcomeKind.NO_MATCH: "STATIC_HTML",
    OutcomeKind.INDETERMINATE: "STATIC_HTML",
    OutcomeKind.ERROR: "ERROR",
}


def bulk_line(outcome: Outcome) -> str:
    if outcome.is_error:
        return f"{outcome.code}: ERROR - {outcome.detail}"
    return f"{outcome.code}: {'FOUND' if outcome.found else 'NOT FOUND'}"


def detailed_line(outcome: Outcome) -> str:
    description = outcome.detail
    if outcome.is_error:
        description = f"Error analyzing code: {outcome.detail}"
    return f"[{STATUS_LABELS[outcome.kind]}] {outcome.code}: {description} (Products: {outcome.count})"


def line_formatter(mode: str) -> LineFormatter:
    return detailed_line if mode == "detailed" else bulk_line


def summary_lines(result: ResultSet, *, mode: str = "bulk") -> List[str]:
    tally = result.tally
    lines = [
        f"Total codes analyzed: {result.total}",
        f"Single result: {tally[OutcomeKind.SINGLE]}",
        f"Multiple results: {tally[OutcomeKind.MULTIPLE]}",
        f"Static HTML only: {result.static_html_only}",
        f"Errors: {tally[OutcomeKind.ERROR]}",
    ]
    if mode != "detailed":
        lines.insert(1, f"Found: {result.found}")
        lines.insert(2, f"Not found: {result.total - result.found - tally[OutcomeKind.ERROR]}")
    if result.interrupted:
        lines.append("Run was interrupted; unfinished codes are reported as errors.")
    return lines
