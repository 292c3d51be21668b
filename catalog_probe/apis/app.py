from __future__ import annotations

from typing import Any, Dict, List, Optional
import logging

try:
    from fastapi import FastAPI, HTTPException
    from pydantic import BaseModel, Field
except Exception as exc:  # pragma: no cover - optional dependency
    raise RuntimeError(
        "FastAPI not installed. Install with `pip install 'catalog-probe[api]'` "
        "or avoid using the API server."
    ) from exc

from ..config import MODES, ProbeConfig
from ..engines.base import ResultSet
from ..engines.orchestrator import Orchestrator
from ..errors import ConfigError, OutputError
from ..export.formatting import line_formatter, summary_lines
from ..export.sinks import MemorySink
from ..version import __version__

logger = logging.getLogger(__name__)

app = FastAPI(title="catalog_probe API", version=__version__)


class CheckRequest(BaseModel):
    codes: List[str] = Field(..., min_length=1)
    mode: Optional[str] = None
    concurrency: Optional[int] = None
    site_root: Optional[str] = None
    renderer: Optional[str] = None


def build_config(req: CheckRequest) -> ProbeConfig:
    if req.mode is not None and req.mode not in MODES:
        raise ConfigError(f"mode must be one of {', '.join(MODES)}")
    cfg = ProbeConfig.from_env(mode=req.mode)
    if req.concurrency is not None:
        cfg.concurrency = req.concurrency
    if req.site_root:
        cfg.site_root = req.site_root
    if req.renderer:
        cfg.renderer = req.renderer
    cfg.validate()
    return cfg


class _NoSummary:
    """The response body is the summary; nothing is written to disk."""

    def export(self, result: ResultSet, path: str, *, mode: str = "bulk") -> None:
        pass


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/check")
async def check(req: CheckRequest) -> Dict[str, Any]:
    codes = [c.strip() for c in req.codes if c.strip()]
    if not codes:
        raise HTTPException(status_code=422, detail="codes must contain at least one non-empty code")
    try:
        cfg = build_config(req)
        sink = MemorySink(line_formatter(cfg.mode))
        orchestrator = Orchestrator(cfg, sink=sink, exporter=_NoSummary())
    except ConfigError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except OutputError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    result = await orchestrator.run(codes)
    logger.info("API check of %s code(s) finished", result.total)
    fmt = line_formatter(cfg.mode)
    return {
        "mode": cfg.mode,
        **result.to_dict(),
        "lines": [fmt(o) for o in result.outcomes],
        "summary": summary_lines(result, mode=cfg.mode),
    }
