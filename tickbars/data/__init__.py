"""
Data Layer - Tick aggregation and I/O.

Main Components:
    MinuteBarAggregator: Calendar-minute OHLC bars per symbol
    RangeATRBarAggregator: Volatility-adaptive range bars per symbol
    BarEngine: Drives both aggregators from one tick stream
    DataValidator: Tick ordering and spike screening
    read_ticks: NinjaTrader tick file reader
"""

from .minute_bars import MinuteBarAggregator
from .range_atr_bars import RangeATRBarAggregator, average_true_range
from .bar_engine import BarEngine
from .data_validator import DataValidator
from .tick_reader import parse_line, read_ticks

__all__ = [
    "MinuteBarAggregator",
    "RangeATRBarAggregator",
    "average_true_range",
    "BarEngine",
    "DataValidator",
    "parse_line",
    "read_ticks",
]
