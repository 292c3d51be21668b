from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from typing import List

from ..classifiers.base import OutcomeKind
from ..config import MODES, ISOLATIONS, ProbeConfig
from ..engines.base import ResultSet
from ..engines.orchestrator import Orchestrator
from ..errors import ConfigError, InputError, OutputError
from ..utils.logging import setup_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_OUTPUT = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Check product codes against the catalog site")
    p.add_argument("codes_file", nargs="?", default=None, help="Code list, one per line (default from config)")
    p.add_argument("--config", type=str, help="Path to config JSON", default=None)
    p.add_argument("--mode", choices=MODES, default=None,
                   help="bulk: parallel FOUND/NOT FOUND check; detailed: sequential analysis with counts")
    p.add_argument("--concurrency", type=int, default=None, help="Simultaneous probes (default from mode)")
    p.add_argument("--isolation", choices=ISOLATIONS, default=None,
                   help="browser: fresh browser per code; page: one browser per worker, fresh page per code")
    p.add_argument("--timeout-ms", type=int, default=None, help="Wait for the result frame (default 8000)")
    p.add_argument("--settle-ms", type=int, default=None, help="Delay before reading the frame (default from mode)")
    p.add_argument("--delay-ms", type=int, default=None, help="Pause between codes per worker (default from mode)")
    p.add_argument("--grace", type=float, default=None, help="Seconds to wait for in-flight probes on shutdown")
    p.add_argument("--site-root", type=str, default=None, help="Catalog root URL; the code is appended")
    p.add_argument("--renderer", type=str, default=None, help="Renderer dotted path (module:ClassName)")
    p.add_argument("--exporter", type=str, default=None, help="Summary exporter dotted path (module:ClassName)")
    p.add_argument("--results", type=str, default=None, help="Per-code results file, written as probes finish")
    p.add_argument("--summary", type=str, default=None, help="Ordered summary report file")
    p.add_argument("--headed", action="store_true", help="Show the browser window")
    p.add_argument("--no-fsync", action="store_true", help="Flush result lines without fsync")
    p.add_argument("--log-level", type=str, default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
    p.add_argument("--serve", action="store_true", help="Run REST API server instead of a CLI run")
    p.add_argument("--host", type=str, default="127.0.0.1", help="API host (when --serve)")
    p.add_argument("--port", type=int, default=8000, help="API port (when --serve)")
    return p


def _load_config(args: argparse.Namespace) -> ProbeConfig:
    if args.config:
        cfg = ProbeConfig.from_file(args.config)
        if args.mode:
            cfg.mode = args.mode
    else:
        cfg = ProbeConfig.from_env(mode=args.mode)

    if args.codes_file:
        cfg.codes_path = args.codes_file
    if args.concurrency is not None:
        cfg.concurrency = args.concurrency
    if args.isolation:
        cfg.isolation = args.isolation
    if args.timeout_ms is not None:
        cfg.selector_timeout_ms = args.timeout_ms
    if args.settle_ms is not None:
        cfg.settle_ms = args.settle_ms
    if args.delay_ms is not None:
        cfg.request_delay_ms = args.delay_ms
    if args.grace is not None:
        cfg.shutdown_grace = args.grace
    if args.site_root:
        cfg.site_root = args.site_root
    if args.renderer:
        cfg.renderer = args.renderer
    if args.exporter:
        cfg.exporter = args.exporter
    if args.results:
        cfg.results_path = args.results
    if args.summary:
        cfg.summary_path = args.summary
    if args.headed:
        cfg.headless = False
    if args.no_fsync:
        cfg.fsync = False

    cfg.validate()
    return cfg


def run_server(host: str, port: int) -> None:
    try:
        import uvicorn  # type: ignore
    except Exception as exc:  # pragma: no cover - optional dep
        raise SystemExit("To run the API, install dependencies: pip install 'catalog-probe[api]'") from exc
    uvicorn.run("catalog_probe.apis.app:app", host=host, port=port)


def _install_signal_handlers(orchestrator: Orchestrator) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, orchestrator.request_shutdown)
        except (NotImplementedError, RuntimeError):  # pragma: no cover - Windows
            logger.debug("Signal handlers unavailable; Ctrl+C aborts without grace period")
            return


def run_cli(argv: List[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    setup_logging(args.log_level)

    if args.serve:
        run_server(args.host, args.port)
        return EXIT_OK

    try:
        cfg = _load_config(args)
        orchestrator = Orchestrator(cfg)
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return EXIT_USAGE
    except OutputError as exc:
        logger.error("%s", exc)
        return EXIT_OUTPUT

    async def _run() -> ResultSet:
        _install_signal_handlers(orchestrator)
        return await orchestrator.run()

    try:
        result: ResultSet = asyncio.run(_run())
    except InputError as exc:
        logger.error("%s", exc)
        return EXIT_USAGE
    except OutputError as exc:
        logger.error("%s (lines already written to %s are kept)", exc, cfg.results_path)
        return EXIT_OUTPUT
    except KeyboardInterrupt:
        logger.warning("Interrupted; partial summary written to %s", cfg.summary_path)
        return EXIT_INTERRUPTED

    logger.info("Codes: %s | Found: %s | Errors: %s | Results: %s | Summary: %s",
                result.total,
                result.found,
                result.tally[OutcomeKind.ERROR],
                cfg.results_path,
                cfg.summary_path)
    return EXIT_INTERRUPTED if result.interrupted else EXIT_OK
