from __future__ import annotations

from dataclasses import dataclass, field, asdict, fields
from typing import List, Dict, Any
from pathlib import Path
import os
import json

from .errors import ConfigError, OutputError
from .version import __version__, CONFIG_SCHEMA_VERSION

MODES = ("bulk", "detailed")
ISOLATIONS = ("browser", "page")

# Presets reproducing the two ways the tool is run: a wide, fully isolated
# existence check and a slow sequential analysis with product counts.
MODE_PRESETS: Dict[str, Dict[str, Any]] = {
    "bulk": {
        "concurrency": 8,
        "isolation": "browser",
        "settle_ms": 0,
        "request_delay_ms": 0,
        "results_path": "results.txt",
        "summary_path": "results_summary.txt",
    },
    "detailed": {
        "concurrency": 1,
        "isolation": "page",
        "settle_ms": 2000,
        "request_delay_ms": 1000,
        "results_path": "code_analysis_results.txt",
        "summary_path": "code_analysis_summary.txt",
    },
}


@dataclass
class ProbeConfig:
    """
    Canonical configuration object passed throughout the system.
    Keep it dataclass-only (no heavy deps) so the engine stays import-light.
    """
    schema_version: int = CONFIG_SCHEMA_VERSION
    mode: str = "bulk"
    codes_path: str = "codes.txt"
    # Lines starting with one of these are status/log noise, not codes.
    skip_prefixes: List[str] = field(default_factory=lambda: ["Processing:"])
    site_root: str = "https://deejay.de/"
    frame_selector: str = "iframe#myIframe"
    frame_url_fragment: str = "content.php?param="
    concurrency: int = 8
    isolation: str = "browser"
    selector_timeout_ms: int = 8000
    settle_ms: int = 0
    request_delay_ms: int = 0
    shutdown_grace: float = 30.0
    navigation_timeout_ms: int = 30000
    request_timeout: float = 15.0
    headless: bool = True
    launch_args: List[str] = field(default_factory=lambda: ["--no-sandbox", "--disable-dev-shm-usage"])
    user_agent: str = f"catalog_probe/{__version__}"
    # Dotted paths so backends and policies can be swapped without code changes.
    renderer: str = "catalog_probe.renderers.browser_engine:PlaywrightRenderer"
    classifier: str = "catalog_probe.classifiers.catalog:CatalogClassifier"
    exporter: str = "catalog_probe.export.text_exporter:TextExporter"
    results_path: str = "results.txt"
    summary_path: str = "results_summary.txt"
    fsync: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    # ---------- Loaders ----------

    @classmethod
    def for_mode(cls, mode: str) -> "ProbeConfig":
        if mode not in MODE_PRESETS:
            raise ConfigError(f"Unknown mode {mode!r}; expected one of {', '.join(MODES)}")
        return cls(mode=mode, **MODE_PRESETS[mode])

    @classmethod
    def from_env(cls, mode: str | None = None) -> "ProbeConfig":
        """
        Build config from environment variables (all optional).
        The mode preset (argument, else PROBE_MODE) is applied first;
        explicit variables win over it.
        """
        cfg = cls.for_mode(mode or os.getenv("PROBE_MODE") or "bulk")

        def _get(name: str) -> str | None:
            value = os.getenv(name)
            return value if value not in (None, "") else None

        try:
            for env_name, attr, cast in _ENV_FIELDS:
                raw = _get(env_name)
                if raw is not None:
                    setattr(cfg, attr, cast(raw))
        except ValueError as exc:
            raise ConfigError(f"Invalid environment value: {exc}") from exc

        prefixes = _get("PROBE_SKIP_PREFIXES")
        if prefixes is not None:
            cfg.skip_prefixes = _split_csv(prefixes)
        launch_args = _get("PROBE_LAUNCH_ARGS")
        if launch_args is not None:
            cfg.launch_args = _split_csv(launch_args)
        return cfg

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> "ProbeConfig":
        """
        Load configuration from a JSON file. Supports schema migration for older versions.
        Keys not given in the file fall back to the preset of the file's ``mode``.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigError(f"Cannot read config {path}: {exc}") from exc
        data = migrate_config(data)

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

        cfg = cls.for_mode(data.get("mode", "bulk"))
        for key, value in data.items():
            setattr(cfg, key, value)
        return cfg

    # ---------- Validation ----------

    def validate(self) -> None:
        if self.mode not in MODES:
            raise ConfigError(f"mode must be one of {', '.join(MODES)}")
        if self.isolation not in ISOLATIONS:
            raise ConfigError(f"isolation must be one of {', '.join(ISOLATIONS)}")
        if self.concurrency <= 0:
            raise ConfigError("concurrency must be > 0")
        for name in ("selector_timeout_ms", "settle_ms", "request_delay_ms",
                     "navigation_timeout_ms", "request_timeout", "shutdown_grace"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0")
        if not self.site_root.strip():
            raise ConfigError("site_root cannot be empty")
        if not self.frame_selector.strip():
            raise ConfigError("frame_selector cannot be empty")
        # Output parents must exist or be creatable before any probe starts.
        for path in (self.results_path, self.summary_path):
            try:
                Path(path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise OutputError(f"Cannot create output directory for {path}: {exc}") from exc


def _split_csv(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {raw!r}")


_ENV_FIELDS = (
    ("PROBE_CODES_PATH", "codes_path", str),
    ("PROBE_SITE_ROOT", "site_root", str),
    ("PROBE_FRAME_SELECTOR", "frame_selector", str),
    ("PROBE_FRAME_URL_FRAGMENT", "frame_url_fragment", str),
    ("PROBE_CONCURRENCY", "concurrency", int),
    ("PROBE_ISOLATION", "isolation", str),
    ("PROBE_SELECTOR_TIMEOUT_MS", "selector_timeout_ms", int),
    ("PROBE_SETTLE_MS", "settle_ms", int),
    ("PROBE_REQUEST_DELAY_MS", "request_delay_ms", int),
    ("PROBE_SHUTDOWN_GRACE", "shutdown_grace", float),
    ("PROBE_NAVIGATION_TIMEOUT_MS", "navigation_timeout_ms", int),
    ("PROBE_REQUEST_TIMEOUT", "request_timeout", float),
    ("PROBE_HEADLESS", "headless", _parse_bool),
    ("PROBE_USER_AGENT", "user_agent", str),
    ("PROBE_RENDERER", "renderer", str),
    ("PROBE_CLASSIFIER", "classifier", str),
    ("PROBE_EXPORTER", "exporter", str),
    ("PROBE_RESULTS_PATH", "results_path", str),
    ("PROBE_SUMMARY_PATH", "summary_path", str),
    ("PROBE_FSYNC", "fsync", _parse_bool),
)


def migrate_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Migrate config dict to the latest schema version.
    Keep this pure and additive. Add migrations here as you bump schema.
    """
    data = dict(raw)
    schema = data.get("schema_version", 1)

    if schema < 2:
        # v1 names: max_concurrency, output_path.
        if "max_concurrency" in data:
            data.setdefault("concurrency", data.pop("max_concurrency"))
        if "output_path" in data:
            data.setdefault("results_path", data.pop("output_path"))

    data["schema_version"] = CONFIG_SCHEMA_VERSION
    return data
