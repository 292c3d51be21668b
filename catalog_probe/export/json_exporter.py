from __future__ import annotations

import json
from pathlib import Path

from ..engines.base import ResultSet


class JSONExporter:
    def export(self, result: ResultSet, path: str, *, mode: str = "bulk") -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            serializable = {"mode": mode, **result.to_dict()}
            json.dump(serializable, f, indent=2, ensure_ascii=False)
