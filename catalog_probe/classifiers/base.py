from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Protocol


class OutcomeKind(str, enum.Enum):
    NO_MATCH = "NoMatch"
    SINGLE = "Single"
    MULTIPLE = "Multiple"
    INDETERMINATE = "Indeterminate"
    ERROR = "Error"


@dataclass(frozen=True)
class Classification:
    """Verdict for one frame: kind, estimated product count and presence flag."""

    kind: OutcomeKind
    count: int = 0
    # Presence test result; the bulk check reports FOUND/NOT FOUND from this alone.
    found: bool = False
    detail: str = ""


class ClassificationPolicy(Protocol):
    """
    Interface for frame classification heuristics.
    Implementations must be pure: the same text always yields the same verdict.
    """

    name: str

    def classify(self, frame_text: Optional[str]) -> Classification:
        """Classify frame text; ``None`` means the frame never materialized."""
        ...

    def has_results(self, frame_text: str) -> bool:
        """Lightweight presence test sharing the markers of ``classify``."""
        ...
