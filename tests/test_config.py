import json

import pytest

from catalog_probe.config import MODE_PRESETS, ProbeConfig, migrate_config
from catalog_probe.errors import ConfigError
from catalog_probe.version import CONFIG_SCHEMA_VERSION


def test_mode_presets():
    bulk = ProbeConfig.for_mode("bulk")
    assert bulk.concurrency == 8
    assert bulk.isolation == "browser"
    assert bulk.settle_ms == 0

    detailed = ProbeConfig.for_mode("detailed")
    assert detailed.concurrency == 1
    assert detailed.isolation == "page"
    assert detailed.settle_ms == 2000
    assert detailed.request_delay_ms == 1000
    assert detailed.results_path == MODE_PRESETS["detailed"]["results_path"]


def test_unknown_mode_is_config_error():
    with pytest.raises(ConfigError):
        ProbeConfig.for_mode("turbo")


def test_env_overrides_preset(monkeypatch):
    monkeypatch.setenv("PROBE_MODE", "detailed")
    monkeypatch.setenv("PROBE_CONCURRENCY", "3")
    monkeypatch.setenv("PROBE_HEADLESS", "no")
    monkeypatch.setenv("PROBE_SKIP_PREFIXES", "Processing:, #")
    monkeypatch.setenv("PROBE_SITE_ROOT", "")

    cfg = ProbeConfig.from_env()
    assert cfg.mode == "detailed"
    assert cfg.concurrency == 3
    assert cfg.settle_ms == 2000
    assert cfg.headless is False
    assert cfg.skip_prefixes == ["Processing:", "#"]
    # Empty variables are ignored.
    assert cfg.site_root == "https://deejay.de/"


def test_env_mode_argument_wins_over_variable(monkeypatch):
    monkeypatch.setenv("PROBE_MODE", "detailed")
    assert ProbeConfig.from_env("bulk").mode == "bulk"


@pytest.mark.parametrize("name,value", [("PROBE_CONCURRENCY", "many"), ("PROBE_FSYNC", "maybe")])
def test_bad_env_value_is_config_error(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError):
        ProbeConfig.from_env()


def test_from_file_applies_mode_preset_then_keys(tmp_path):
    path = tmp_path / "probe.json"
    path.write_text(json.dumps({"mode": "detailed", "settle_ms": 500}), encoding="utf-8")

    cfg = ProbeConfig.from_file(path)
    assert cfg.mode == "detailed"
    assert cfg.settle_ms == 500
    assert cfg.concurrency == 1
    assert cfg.schema_version == CONFIG_SCHEMA_VERSION


def test_from_file_migrates_v1_names(tmp_path):
    path = tmp_path / "old.json"
    path.write_text(json.dumps({"max_concurrency": 4, "output_path": "out.txt"}), encoding="utf-8")

    cfg = ProbeConfig.from_file(path)
    assert cfg.concurrency == 4
    assert cfg.results_path == "out.txt"


def test_migrate_keeps_explicit_new_names():
    data = migrate_config({"schema_version": 1, "max_concurrency": 4, "concurrency": 2})
    assert data["concurrency"] == 2
    assert data["schema_version"] == CONFIG_SCHEMA_VERSION


def test_from_file_rejects_unknown_keys(tmp_path):
    path = tmp_path / "probe.json"
    path.write_text(json.dumps({"concurency": 4}), encoding="utf-8")
    with pytest.raises(ConfigError, match="concurency"):
        ProbeConfig.from_file(path)


def test_from_file_unreadable(tmp_path):
    with pytest.raises(ConfigError):
        ProbeConfig.from_file(tmp_path / "nope.json")
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError):
        ProbeConfig.from_file(broken)


@pytest.mark.parametrize(
    "attr,value",
    [
        ("concurrency", 0),
        ("mode", "fast"),
        ("isolation", "process"),
        ("selector_timeout_ms", -1),
        ("shutdown_grace", -0.5),
        ("site_root", "  "),
        ("frame_selector", ""),
    ],
)
def test_validate_rejects(attr, value, tmp_path):
    cfg = ProbeConfig(results_path=str(tmp_path / "r.txt"), summary_path=str(tmp_path / "s.txt"))
    setattr(cfg, attr, value)
    with pytest.raises(ConfigError):
        cfg.validate()


def test_config_error_is_value_error():
    assert issubclass(ConfigError, ValueError)


def test_validate_creates_output_parents(tmp_path):
    cfg = ProbeConfig(
        results_path=str(tmp_path / "a" / "results.txt"),
        summary_path=str(tmp_path / "b" / "summary.txt"),
    )
    cfg.validate()
    assert (tmp_path / "a").is_dir()
    assert (tmp_path / "b").is_dir()
