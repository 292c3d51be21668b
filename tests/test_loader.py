import pytest

from catalog_probe.classifiers.catalog import CatalogClassifier
from catalog_probe.errors import ConfigError, InputError
from catalog_probe.utils.loader import load_codes, load_symbol, parse_codes


def test_parse_codes_trims_and_skips_noise():
    lines = ["  qv002 \n", "\n", "Processing: page 3\n", "dtw004\n", "   \n", "dtw004"]
    assert parse_codes(lines) == ["qv002", "dtw004", "dtw004"]


def test_parse_codes_custom_prefixes():
    assert parse_codes(["# comment", "a", "Processing: x"], skip_prefixes=["#"]) == ["a", "Processing: x"]
    assert parse_codes(["# comment", "a"], skip_prefixes=[]) == ["# comment", "a"]


def test_load_codes_reads_file(tmp_path):
    path = tmp_path / "codes.txt"
    path.write_text("Processing: start\nabc\r\n\r\nxyz\n", encoding="utf-8")
    assert load_codes(str(path)) == ["abc", "xyz"]


def test_load_codes_missing_file(tmp_path):
    with pytest.raises(InputError):
        load_codes(str(tmp_path / "missing.txt"))


def test_load_symbol_both_syntaxes():
    assert load_symbol("catalog_probe.classifiers.catalog:CatalogClassifier") is CatalogClassifier
    assert load_symbol("catalog_probe.classifiers.catalog.CatalogClassifier") is CatalogClassifier


@pytest.mark.parametrize("dotted", ["nowhere.module:Thing", "catalog_probe.config:Nope", "nodots"])
def test_load_symbol_failures_are_config_errors(dotted):
    with pytest.raises(ConfigError):
        load_symbol(dotted)
