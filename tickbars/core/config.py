"""Configuration loading for the bar aggregation system.

Configuration lives in a YAML file (default ``config/config.yaml``):

    range_atr:
      atr_lookback_bars: 14
      recalc_bars: 5
      min_ticks: 3
      min_time_seconds: 2
    data:
      default_tick_size: 0.01
      timezone: Asia/Kolkata
      spike_threshold_std: null
    symbols:
      NIFTY:
        tick_size: 0.05
    output:
      directory: output
    monitoring:
      log_level: INFO
      log_file: data/logs/tickbars.log

Absent keys fall back to the defaults in ``constants``.
"""

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import pytz
import yaml

from .constants import (
    DEFAULT_ATR_LOOKBACK_BARS,
    DEFAULT_RECALC_BARS,
    DEFAULT_MIN_TICKS,
    DEFAULT_MIN_TIME_SECONDS,
    DEFAULT_TICK_SIZE,
    DEFAULT_TIMEZONE,
)
from .exceptions import ConfigValidationError, InvalidConfigError, MissingConfigError


DEFAULT_CONFIG_PATH = "config/config.yaml"


@dataclass(frozen=True)
class RangeATRConfig:
    """Range ATR aggregator parameters."""
    atr_lookback_bars: int = DEFAULT_ATR_LOOKBACK_BARS
    recalc_bars: int = DEFAULT_RECALC_BARS
    min_ticks: int = DEFAULT_MIN_TICKS
    min_time_seconds: float = DEFAULT_MIN_TIME_SECONDS

    def __post_init__(self):
        if self.atr_lookback_bars < 1:
            raise InvalidConfigError(
                "atr_lookback_bars must be >= 1", atr_lookback_bars=self.atr_lookback_bars
            )
        if self.recalc_bars < 1:
            raise InvalidConfigError("recalc_bars must be >= 1", recalc_bars=self.recalc_bars)
        if self.min_ticks < 0:
            raise InvalidConfigError("min_ticks must be >= 0", min_ticks=self.min_ticks)
        if self.min_time_seconds < 0:
            raise InvalidConfigError(
                "min_time_seconds must be >= 0", min_time_seconds=self.min_time_seconds
            )


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    range_atr: RangeATRConfig = field(default_factory=RangeATRConfig)
    default_tick_size: float = DEFAULT_TICK_SIZE
    timezone: str = DEFAULT_TIMEZONE
    tick_sizes: Dict[str, float] = field(default_factory=dict)
    spike_threshold_std: Optional[float] = None
    output_dir: str = "output"
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def __post_init__(self):
        if not _is_positive(self.default_tick_size):
            raise InvalidConfigError(
                "default_tick_size must be positive", default_tick_size=self.default_tick_size
            )
        for symbol, size in self.tick_sizes.items():
            if not _is_positive(size):
                raise InvalidConfigError("tick_size must be positive", symbol=symbol, tick_size=size)
        if self.spike_threshold_std is not None and not _is_positive(self.spike_threshold_std):
            raise InvalidConfigError(
                "spike_threshold_std must be positive", spike_threshold_std=self.spike_threshold_std
            )
        if self.timezone not in pytz.all_timezones_set:
            raise InvalidConfigError(f"Unknown timezone: {self.timezone}")

    def tick_size_for(self, symbol: str) -> float:
        return self.tick_sizes.get(symbol, self.default_tick_size)


def _is_positive(value) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigValidationError(f"Section '{name}' must be a mapping", section=name)
    return value


def _number(section: Dict[str, Any], key: str, default, kind=float):
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigValidationError(f"'{key}' must be a number", key=key, value=value)
    if kind is int and value != int(value):
        raise ConfigValidationError(f"'{key}' must be an integer", key=key, value=value)
    return kind(value)


def config_from_dict(raw: Optional[Dict[str, Any]]) -> AppConfig:
    """
    Build an AppConfig from a parsed YAML mapping.

    Raises:
        ConfigValidationError: wrong structure or value types
        InvalidConfigError: values out of range
    """
    raw = raw or {}
    if not isinstance(raw, dict):
        raise ConfigValidationError("Configuration root must be a mapping")

    range_cfg = _section(raw, 'range_atr')
    data_cfg = _section(raw, 'data')
    symbols_cfg = _section(raw, 'symbols')
    output_cfg = _section(raw, 'output')
    monitoring_cfg = _section(raw, 'monitoring')

    range_atr = RangeATRConfig(
        atr_lookback_bars=_number(range_cfg, 'atr_lookback_bars', DEFAULT_ATR_LOOKBACK_BARS, int),
        recalc_bars=_number(range_cfg, 'recalc_bars', DEFAULT_RECALC_BARS, int),
        min_ticks=_number(range_cfg, 'min_ticks', DEFAULT_MIN_TICKS, int),
        min_time_seconds=_number(range_cfg, 'min_time_seconds', DEFAULT_MIN_TIME_SECONDS)
    )

    tick_sizes = {}
    for ticker, symbol_cfg in symbols_cfg.items():
        if not isinstance(symbol_cfg, dict):
            raise ConfigValidationError(f"Symbol '{ticker}' must be a mapping", symbol=ticker)
        if 'tick_size' in symbol_cfg:
            tick_sizes[str(ticker)] = _number(symbol_cfg, 'tick_size', None)

    return AppConfig(
        range_atr=range_atr,
        default_tick_size=_number(data_cfg, 'default_tick_size', DEFAULT_TICK_SIZE),
        timezone=str(data_cfg.get('timezone', DEFAULT_TIMEZONE)),
        tick_sizes=tick_sizes,
        spike_threshold_std=(
            _number(data_cfg, 'spike_threshold_std', None)
            if data_cfg.get('spike_threshold_std') is not None else None
        ),
        output_dir=str(output_cfg.get('directory', 'output')),
        log_level=str(monitoring_cfg.get('log_level', 'INFO')).upper(),
        log_file=monitoring_cfg.get('log_file')
    )


def load_config(config_file: Union[str, Path] = DEFAULT_CONFIG_PATH) -> AppConfig:
    """
    Load configuration from a YAML file.

    Raises:
        MissingConfigError: file does not exist
        ConfigValidationError: file is not valid YAML or has the wrong shape
        InvalidConfigError: values out of range
    """
    path = Path(config_file)
    if not path.exists():
        raise MissingConfigError(f"Configuration file not found: {path}")

    with open(path, 'r') as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigValidationError(f"Invalid YAML: {e}", path=str(path)) from e

    return config_from_dict(raw)
