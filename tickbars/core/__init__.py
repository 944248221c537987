"""
Core - Data types, constants, exceptions and configuration.
"""

from .types import Tick, OHLCBar, RangeATRBar
from .config import AppConfig, RangeATRConfig, load_config

__all__ = [
    "Tick",
    "OHLCBar",
    "RangeATRBar",
    "AppConfig",
    "RangeATRConfig",
    "load_config",
]
