"""System-wide constants and enumerations for bar aggregation.

Defaults here mirror the values used by the Range ATR demo configuration
and standardize the column names used by the exporters.
"""

from enum import Enum


# ============================================================================
# Enumerations
# ============================================================================

class BarDirection(str, Enum):
    """Direction of a completed bar.

    - BULLISH: close above open
    - BEARISH: close below open
    - DOJI: close equal to open
    """
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    DOJI = "DOJI"


# ============================================================================
# Range ATR Defaults
# ============================================================================

DEFAULT_ATR_LOOKBACK_BARS: int = 14
"""Number of completed bars used for the ATR window."""

DEFAULT_RECALC_BARS: int = 2
"""Recompute the range threshold every N completed bars."""

DEFAULT_MIN_TICKS: int = 1
"""Minimum ticks a range bar must hold before it may close."""

DEFAULT_MIN_TIME_SECONDS: float = 1.0
"""Minimum elapsed tick time before a range bar may close."""

BOOTSTRAP_RANGE_TICKS: float = 10.0
"""Range threshold (in ticks) used until at least two bars are completed."""


# ============================================================================
# Instrument Defaults
# ============================================================================

DEFAULT_TICK_SIZE: float = 0.01
"""Fallback price increment when no per-symbol tick size is configured."""

DEFAULT_TIMEZONE: str = "Asia/Kolkata"
"""Zone that tick file timestamps are localized into (IST)."""


# ============================================================================
# Export Columns
# ============================================================================

BAR_COLUMNS = [
    "DateTime", "Symbol", "Open", "High", "Low", "Close",
    "Volume", "Range", "Body", "IsBullish",
]

RANGE_BAR_COLUMNS = BAR_COLUMNS + [
    "ATRValue", "RangeThreshold", "TickCount", "BarDuration",
]

TICK_COLUMNS = ["DateTime", "Symbol", "Price", "Volume"]
