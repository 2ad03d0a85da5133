import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import json

import pytest
from prinpos.config import (
    DEFAULT_TAX_RATE,
    MIN_DP_PERCENT,
    ConfigurationError,
    load_settings,
)
from prinpos.transforms import load_seed

SEED = os.path.join(os.path.dirname(__file__), "..", "data", "seed.json")


def write_seed(tmp_path, settings):
    path = tmp_path / "seed.json"
    path.write_text(json.dumps({"settings": settings}), encoding="utf-8")
    return str(path)


def test_missing_file_gives_defaults(tmp_path):
    settings = load_settings(str(tmp_path / "missing.json"), env={})

    assert settings.default_tax_rate == DEFAULT_TAX_RATE
    assert settings.min_dp_percent == MIN_DP_PERCENT
    assert settings.expired_threshold_hours == 24


def test_file_settings_block(tmp_path):
    path = write_seed(tmp_path, {"min_dp_percent": 30, "dp_quick_options": [25, 50]})
    settings = load_settings(path, env={})

    assert settings.min_dp_percent == 30
    assert settings.dp_quick_options == (25, 50)


def test_env_overrides_file(tmp_path):
    path = write_seed(tmp_path, {"default_tax_rate": 0.1})
    env = {"PRINPOS_TAX_RATE": "0.12", "PRINPOS_LOG_LEVEL": "debug", "PRINPOS_MIN_DP_PERCENT": " "}
    settings = load_settings(path, env=env)

    assert settings.default_tax_rate == 0.12
    assert settings.log_level == "debug"
    assert settings.min_dp_percent == MIN_DP_PERCENT


@pytest.mark.parametrize(
    "env",
    [
        {"PRINPOS_TAX_RATE": "abc"},
        {"PRINPOS_TAX_RATE": "1.5"},
        {"PRINPOS_MIN_DP_PERCENT": "120"},
        {"PRINPOS_LOG_LEVEL": "chatty"},
    ],
)
def test_invalid_values_raise(tmp_path, env):
    with pytest.raises(ConfigurationError):
        load_settings(str(tmp_path / "missing.json"), env=env)


@pytest.mark.parametrize("options", [["30", "half"], 50])
def test_invalid_quick_options_raise(tmp_path, options):
    path = write_seed(tmp_path, {"dp_quick_options": options})
    with pytest.raises(ConfigurationError):
        load_settings(path, env={})


def test_invalid_json_raises(tmp_path):
    path = tmp_path / "seed.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_settings(str(path), env={})


def test_load_seed_catalog():
    businesses, items, entries = load_seed(os.path.abspath(SEED))
    by_id = {i.id: i for i in items}

    assert {b.id for b in businesses} == {"org-1", "org-2"}
    assert by_id["item-brosur"].pricing_model == "tiered"
    assert by_id["item-brosur"].tiers[0].min_qty == 1
    assert by_id["item-banner"].finishing_options[0].pricing_type == "per_unit"
    assert len(entries) == 2
