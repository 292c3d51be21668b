from __future__ import annotations

import functools
import logging
from typing import Optional, Sequence

from ..classifiers.base import ClassificationPolicy
from ..config import ProbeConfig
from ..errors import OutputError
from ..export.base import Exporter, ResultSink
from ..export.formatting import line_formatter, summary_lines
from ..export.sinks import LineFileSink
from ..utils.loader import load_codes, load_symbol
from .base import CheckEngine, ResultSet
from .collector import ResultCollector
from .pool import RendererFactory, WorkerPool
from .session import ProbeSession

logger = logging.getLogger(__name__)

INTERRUPTED_MESSAGE = "Interrupted before the probe completed"


def renderer_factory_from_config(cfg: ProbeConfig) -> RendererFactory:
    renderer_cls = load_symbol(cfg.renderer)
    return functools.partial(renderer_cls.from_config, cfg)


class Orchestrator(CheckEngine):
    """
    Wires one run together:
    - loads the codes (input failures abort before any probe starts);
    - drives the worker pool into the result collector;
    - writes the end-of-run summary, also for interrupted runs.
    Collaborators default to what the config names and can be injected.
    """
    def __init__(
        self,
        config: ProbeConfig,
        *,
        renderer_factory: Optional[RendererFactory] = None,
        classifier: Optional[ClassificationPolicy] = None,
        sink: Optional[ResultSink] = None,
        exporter: Optional[Exporter] = None,
    ) -> None:
        self.config = config
        self.renderer_factory = renderer_factory or renderer_factory_from_config(config)
        self.classifier = classifier or load_symbol(config.classifier)()
        if sink is None:
            sink = LineFileSink(config.results_path, line_formatter(config.mode), fsync=config.fsync)
        self.sink = sink
        self.exporter = exporter if exporter is not None else load_symbol(config.exporter)()
        self.pool: Optional[WorkerPool] = None
        self._shutdown_requested = False

    def load_codes(self) -> list[str]:
        return load_codes(self.config.codes_path, self.config.skip_prefixes)

    def request_shutdown(self) -> None:
        self._shutdown_requested = True
        if self.pool is not None:
            self.pool.request_shutdown()

    async def run(self, codes: Optional[Sequence[str]] = None) -> ResultSet:
        cfg = self.config
        codes = list(codes) if codes is not None else self.load_codes()
        logger.info("Checking %s code(s) in %s mode against %s", len(codes), cfg.mode, cfg.site_root)

        pool = WorkerPool(
            self.renderer_factory,
            ProbeSession.from_config(cfg, self.classifier),
            concurrency=cfg.concurrency,
            shutdown_grace=cfg.shutdown_grace,
            request_delay_ms=cfg.request_delay_ms,
        )
        self.pool = pool
        if self._shutdown_requested:
            pool.request_shutdown()

        collector = ResultCollector(codes, self.sink)
        try:
            self.sink.open()
        except OSError as exc:
            raise OutputError(f"Cannot open result sink: {exc}") from exc
        try:
            result = await collector.consume(pool.run_all(codes))
        except BaseException:
            logger.error("Run aborted with %s of %s code(s) finished", collector.completed, len(codes))
            self._flush_partial(collector.partial(INTERRUPTED_MESSAGE))
            raise
        finally:
            self.sink.close()

        result.interrupted = pool.shutdown_requested
        self.flush(result)
        return result

    def flush(self, result: ResultSet) -> None:
        try:
            self.exporter.export(result, self.config.summary_path, mode=self.config.mode)
        except OSError as exc:
            raise OutputError(f"Cannot write summary {self.config.summary_path}: {exc}") from exc
        for line in summary_lines(result, mode=self.config.mode):
            logger.info(line)

    def _flush_partial(self, result: ResultSet) -> None:
        try:
            self.flush(result)
        except OutputError as exc:
            logger.error("%s", exc)
