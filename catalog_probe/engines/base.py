from __future__ import annotations

from dataclasses import dataclass, field
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from ..classifiers.base import Classification, OutcomeKind


@dataclass(frozen=True)
class Outcome:
    """Terminal result for one submitted code. Exactly one per submission."""

    code: str
    kind: OutcomeKind
    detail: str = ""
    count: int = 0
    found: bool = False

    @classmethod
    def from_classification(cls, code: str, classification: Classification) -> "Outcome":
        return cls(
            code=code,
            kind=classification.kind,
            detail=classification.detail,
            count=classification.count,
            found=classification.found,
        )

    @classmethod
    def error(cls, code: str, message: str) -> "Outcome":
        return cls(code=code, kind=OutcomeKind.ERROR, detail=message)

    @property
    def is_error(self) -> bool:
        return self.kind is OutcomeKind.ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "kind": self.kind.value,
            "detail": self.detail,
            "count": self.count,
            "found": self.found,
        }


def empty_tally() -> Dict[OutcomeKind, int]:
    return {kind: 0 for kind in OutcomeKind}


@dataclass
class ResultSet:
    outcomes: List[Outcome] = field(default_factory=list)  # submission order
    tally: Dict[OutcomeKind, int] = field(default_factory=empty_tally)
    interrupted: bool = False

    @classmethod
    def from_outcomes(cls, outcomes: List[Outcome], *, interrupted: bool = False) -> "ResultSet":
        tally = empty_tally()
        for outcome in outcomes:
            tally[outcome.kind] += 1
        return cls(outcomes=list(outcomes), tally=tally, interrupted=interrupted)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def static_html_only(self) -> int:
        """Codes whose frame gave no sized products (no match or indeterminate)."""
        return self.tally[OutcomeKind.NO_MATCH] + self.tally[OutcomeKind.INDETERMINATE]

    @property
    def found(self) -> int:
        return sum(1 for o in self.outcomes if o.found)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "interrupted": self.interrupted,
            "tally": {kind.value: n for kind, n in self.tally.items()},
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


class CheckEngine(ABC):
    """
    Abstract engine interface. Implementations own the run lifecycle.
    """
    @abstractmethod
    async def run(self, codes: Optional[Sequence[str]] = None) -> ResultSet:  # pragma: no cover - interface
        ...

    @abstractmethod
    def request_shutdown(self) -> None:  # pragma: no cover - interface
        ...
