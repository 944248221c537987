"""Core data types for tick-to-bar aggregation.

This module defines the data structures shared by every aggregator:
- Tick: immutable trade observation (frozen)
- OHLCBar: mutable aggregate while open, validated on creation
- RangeATRBar: an OHLCBar held by composition plus range-bar bookkeeping

Prices are floats and timestamps are datetimes kept exactly as supplied;
no timezone is assumed or rewritten here.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from .constants import BarDirection
from .exceptions import DataValidationError, InvalidBarError


# ============================================================================
# Market Data Types
# ============================================================================

@dataclass(frozen=True)
class Tick:
    """
    Single trade observation.

    Attributes:
        symbol: Instrument name (e.g., "NIFTY")
        timestamp: Trade time, already localized by the producer
        price: Last traded price
        volume: Traded quantity
    """
    symbol: str
    timestamp: datetime
    price: float
    volume: int = 0

    def __post_init__(self):
        """Reject values that would corrupt OHLC invariants."""
        if not self.symbol:
            raise DataValidationError("Tick symbol must not be empty")

        if not isinstance(self.timestamp, datetime):
            raise DataValidationError(
                "Tick timestamp must be a datetime",
                symbol=self.symbol,
                timestamp=self.timestamp
            )

        if not math.isfinite(self.price) or self.price <= 0:
            raise DataValidationError(
                f"Invalid tick price: {self.price}",
                symbol=self.symbol,
                timestamp=self.timestamp.isoformat()
            )

        if self.volume < 0:
            raise DataValidationError(
                f"Invalid tick volume: {self.volume}",
                symbol=self.symbol,
                timestamp=self.timestamp.isoformat()
            )

    def __str__(self) -> str:
        return f"{self.symbol} {self.price:.2f} Vol:{self.volume} @ {self.timestamp:%H:%M:%S.%f}"


@dataclass
class OHLCBar:
    """
    OHLCV bar built from one or more ticks.

    Validates OHLC integrity on creation; mutated in place by update()
    while open and left untouched once sealed.
    """
    symbol: str
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: int = 0

    def __post_init__(self):
        """Validate bar integrity."""
        # High must be >= max(open, close)
        if self.high < max(self.open, self.close):
            raise InvalidBarError(
                f"Invalid bar: high ({self.high}) < max(open, close)",
                symbol=self.symbol,
                timestamp=self.timestamp.isoformat()
            )

        # Low must be <= min(open, close)
        if self.low > min(self.open, self.close):
            raise InvalidBarError(
                f"Invalid bar: low ({self.low}) > min(open, close)",
                symbol=self.symbol,
                timestamp=self.timestamp.isoformat()
            )

    @classmethod
    def from_tick(cls, tick: Tick, timestamp: datetime = None) -> "OHLCBar":
        """Open a bar whose OHLC all equal the tick price."""
        return cls(
            symbol=tick.symbol,
            timestamp=timestamp if timestamp is not None else tick.timestamp,
            open=tick.price,
            high=tick.price,
            low=tick.price,
            close=tick.price,
            volume=tick.volume
        )

    def update(self, price: float, volume: int = 0) -> None:
        """Extend the bar with a new trade price."""
        if price > self.high:
            self.high = price
        if price < self.low:
            self.low = price
        self.close = price
        self.volume += volume

    @property
    def range(self) -> float:
        """High - Low"""
        return self.high - self.low

    @property
    def body(self) -> float:
        """|Close - Open|"""
        return abs(self.close - self.open)

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open

    @property
    def direction(self) -> BarDirection:
        if self.is_bullish:
            return BarDirection.BULLISH
        if self.is_bearish:
            return BarDirection.BEARISH
        return BarDirection.DOJI

    def __str__(self) -> str:
        return (
            f"{self.symbol} OHLC: {self.open:.2f}/{self.high:.2f}/{self.low:.2f}/{self.close:.2f} "
            f"Range: {self.range:.2f} Vol: {self.volume} @ {self.timestamp:%H:%M:%S}"
        )


@dataclass
class RangeATRBar:
    """
    Volatility-adaptive range bar.

    Wraps an OHLCBar and adds the state the Range ATR aggregator needs to
    decide closure. atr_value and range_threshold are in tick units.

    Attributes:
        bar: Embedded OHLC aggregate
        atr_value: ATR at the time the bar was opened
        range_threshold: Range (ticks) at which the bar may close
        tick_count: Ticks applied after the opening tick
        bar_start_time: Timestamp of the opening tick
        last_update_time: Timestamp of the latest tick (or of the closing tick once sealed)
        min_ticks: Tick floor before closure is allowed
        min_time_span: Elapsed-time floor before closure is allowed
    """
    bar: OHLCBar
    atr_value: float = 0.0
    range_threshold: float = 0.0
    tick_count: int = 0
    bar_start_time: datetime = None
    last_update_time: datetime = None
    min_ticks: int = 1
    min_time_span: timedelta = timedelta(seconds=1)

    def __post_init__(self):
        if self.bar_start_time is None:
            self.bar_start_time = self.bar.timestamp
        if self.last_update_time is None:
            self.last_update_time = self.bar_start_time

    @classmethod
    def from_tick(
        cls,
        tick: Tick,
        min_ticks: int,
        min_time_span: timedelta
    ) -> "RangeATRBar":
        """Open a range bar on a tick; thresholds are assigned by the aggregator."""
        return cls(
            bar=OHLCBar.from_tick(tick),
            tick_count=0,
            bar_start_time=tick.timestamp,
            last_update_time=tick.timestamp,
            min_ticks=min_ticks,
            min_time_span=min_time_span
        )

    # OHLC view of the embedded bar

    @property
    def symbol(self) -> str:
        return self.bar.symbol

    @property
    def timestamp(self) -> datetime:
        return self.bar.timestamp

    @property
    def open(self) -> float:
        return self.bar.open

    @property
    def high(self) -> float:
        return self.bar.high

    @property
    def low(self) -> float:
        return self.bar.low

    @property
    def close(self) -> float:
        return self.bar.close

    @property
    def volume(self) -> int:
        return self.bar.volume

    @property
    def range(self) -> float:
        return self.bar.range

    @property
    def body(self) -> float:
        return self.bar.body

    @property
    def is_bullish(self) -> bool:
        return self.bar.is_bullish

    @property
    def is_bearish(self) -> bool:
        return self.bar.is_bearish

    @property
    def duration(self) -> timedelta:
        """Time covered by the bar."""
        return self.last_update_time - self.bar_start_time

    def range_in_ticks(self, price: float, tick_size: float) -> float:
        """Range in ticks the bar would have if `price` were applied."""
        projected_high = max(self.bar.high, price)
        projected_low = min(self.bar.low, price)
        return (projected_high - projected_low) / tick_size

    def should_complete(self, price: float, tick_size: float, now: datetime) -> bool:
        """
        Check whether a tick at `price`/`now` closes this bar.

        The tick's own price counts toward the range, but the tick itself
        belongs to the next bar when the bar closes.
        """
        if self.range_threshold <= 0:
            return False

        return (
            self.range_in_ticks(price, tick_size) >= self.range_threshold
            and self.tick_count >= self.min_ticks
            and (now - self.bar_start_time) >= self.min_time_span
        )

    def update_with_tick(self, tick: Tick) -> None:
        """Extend the bar with a tick that did not close it."""
        self.bar.update(tick.price, tick.volume)
        self.bar.timestamp = tick.timestamp
        self.tick_count += 1
        self.last_update_time = tick.timestamp

    def __str__(self) -> str:
        return (
            f"{self.bar} ATR: {self.atr_value:.2f} Threshold: {self.range_threshold:.2f} "
            f"Ticks: {self.tick_count}"
        )
