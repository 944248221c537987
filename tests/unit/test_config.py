"""
Unit tests for YAML configuration loading.
"""

import math
from pathlib import Path

import pytest

from tickbars.core.config import AppConfig, RangeATRConfig, config_from_dict, load_config
from tickbars.core.exceptions import ConfigValidationError, InvalidConfigError, MissingConfigError


PROJECT_ROOT = Path(__file__).resolve().parents[2]


def test_shipped_config_loads():
    config = load_config(PROJECT_ROOT / "config" / "config.yaml")

    assert config.range_atr == RangeATRConfig(
        atr_lookback_bars=14, recalc_bars=5, min_ticks=3, min_time_seconds=2
    )
    assert config.tick_size_for("NIFTY") == 0.05
    assert config.tick_size_for("OTHER") == 0.01
    assert config.timezone == "Asia/Kolkata"
    assert config.spike_threshold_std is None


def test_defaults_for_empty_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")

    assert load_config(path) == AppConfig()


def test_partial_sections_fill_defaults():
    config = config_from_dict({'range_atr': {'recalc_bars': 3}, 'monitoring': {'log_level': 'debug'}})

    assert config.range_atr.recalc_bars == 3
    assert config.range_atr.atr_lookback_bars == 14
    assert config.log_level == "DEBUG"
    assert config.log_file is None


def test_missing_file(tmp_path):
    with pytest.raises(MissingConfigError):
        load_config(tmp_path / "nope.yaml")


def test_invalid_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("range_atr: [unclosed\n")

    with pytest.raises(ConfigValidationError):
        load_config(path)


@pytest.mark.parametrize("raw", [
    ["not", "a", "mapping"],
    {'range_atr': "fast"},
    {'range_atr': {'recalc_bars': "five"}},
    {'range_atr': {'min_ticks': 2.5}},
    {'range_atr': {'min_ticks': True}},
    {'symbols': {'NIFTY': 0.05}},
])
def test_malformed_config(raw):
    with pytest.raises(ConfigValidationError):
        config_from_dict(raw)


@pytest.mark.parametrize("raw", [
    {'range_atr': {'recalc_bars': 0}},
    {'range_atr': {'atr_lookback_bars': 0}},
    {'range_atr': {'min_time_seconds': -1}},
    {'data': {'default_tick_size': 0}},
    {'data': {'timezone': 'Mars/Olympus'}},
    {'symbols': {'NIFTY': {'tick_size': -0.05}}},
    {'data': {'default_tick_size': math.nan}},
    {'data': {'default_tick_size': math.inf}},
    {'symbols': {'NIFTY': {'tick_size': math.nan}}},
    {'data': {'spike_threshold_std': 0}},
])
def test_out_of_range_config(raw):
    with pytest.raises(InvalidConfigError):
        config_from_dict(raw)


def test_nan_tick_size_in_yaml_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("data:\n  default_tick_size: .nan\n")

    with pytest.raises(InvalidConfigError):
        load_config(path)


def test_spike_threshold_optional():
    assert config_from_dict({}).spike_threshold_std is None
    assert config_from_dict({'data': {'spike_threshold_std': None}}).spike_threshold_std is None
    assert config_from_dict({'data': {'spike_threshold_std': 8}}).spike_threshold_std == 8.0
