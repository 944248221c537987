"""
Range ATR Bar Aggregator - Volatility-adaptive range bars.

A range bar closes once the price range it spans (in ticks) reaches a
threshold derived from the Average True Range of recently completed
bars. Two floors guard against degenerate bars during bursts:
- min_ticks: at least this many ticks must have extended the bar
- min_time_span: at least this much tick time must have elapsed

Per-symbol state machine:
    NoBar -> Open (first tick)
    Open  -> Open (tick extends the bar)
    Open  -> Sealed + Open (tick closes the bar and opens the next one)
    Open  -> Sealed (complete_all_bars at end of stream)

Elapsed time is measured on tick timestamps only, so replaying a file
yields the same bars as processing it live.
"""

import math
from collections import deque
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Deque, Dict, List, Optional, Sequence

import numpy as np

from ..core.types import Tick, OHLCBar, RangeATRBar
from ..core.constants import (
    DEFAULT_ATR_LOOKBACK_BARS,
    DEFAULT_RECALC_BARS,
    DEFAULT_MIN_TICKS,
    DEFAULT_MIN_TIME_SECONDS,
    BOOTSTRAP_RANGE_TICKS,
)
from ..core.exceptions import InvalidConfigError, OutOfOrderTickError
from ..monitoring.logger import get_logger

logger = get_logger(__name__)

RangeBarListener = Callable[[RangeATRBar], None]


def average_true_range(bars: Sequence[OHLCBar], tick_size: float) -> float:
    """
    Average True Range of consecutive bars, in ticks.

    True Range = max(high - low, abs(high - prev_close), abs(low - prev_close))
    ATR = mean of True Range / tick_size over the len(bars) - 1 pairs

    Args:
        bars: Completed bars, oldest first
        tick_size: Price increment used to convert price distances to ticks

    Returns:
        ATR in ticks, or BOOTSTRAP_RANGE_TICKS with fewer than 2 bars
    """
    if len(bars) < 2:
        return BOOTSTRAP_RANGE_TICKS

    high = np.array([bar.high for bar in bars[1:]], dtype=float)
    low = np.array([bar.low for bar in bars[1:]], dtype=float)
    prev_close = np.array([bar.close for bar in bars[:-1]], dtype=float)

    # True Range components
    tr1 = high - low
    tr2 = np.abs(high - prev_close)
    tr3 = np.abs(low - prev_close)

    true_range = np.maximum(tr1, np.maximum(tr2, tr3))

    return float(np.mean(true_range / tick_size))


@dataclass
class SymbolState:
    """Aggregation state for one symbol."""
    current_bar: Optional[RangeATRBar] = None
    history: Deque[RangeATRBar] = field(default_factory=deque)
    completed_count: int = 0


class RangeATRBarAggregator:
    """
    Aggregates ticks into Range ATR bars.

    Symbols never share state: each has its own open bar, ATR history
    and completed-bar counter.
    """

    def __init__(
        self,
        atr_lookback_bars: int = DEFAULT_ATR_LOOKBACK_BARS,
        recalc_bars: int = DEFAULT_RECALC_BARS,
        min_ticks: int = DEFAULT_MIN_TICKS,
        min_time_seconds: float = DEFAULT_MIN_TIME_SECONDS
    ):
        """
        Initialize aggregator.

        Args:
            atr_lookback_bars: Completed bars in the ATR window
            recalc_bars: Recompute the threshold every N completed bars
            min_ticks: Minimum ticks before a bar may close
            min_time_seconds: Minimum elapsed tick time before a bar may close

        Raises:
            InvalidConfigError: any parameter out of range
        """
        if atr_lookback_bars < 1:
            raise InvalidConfigError(
                "atr_lookback_bars must be >= 1", atr_lookback_bars=atr_lookback_bars
            )
        if recalc_bars < 1:
            raise InvalidConfigError("recalc_bars must be >= 1", recalc_bars=recalc_bars)
        if min_ticks < 0:
            raise InvalidConfigError("min_ticks must be >= 0", min_ticks=min_ticks)
        if min_time_seconds < 0:
            raise InvalidConfigError(
                "min_time_seconds must be >= 0", min_time_seconds=min_time_seconds
            )

        self.atr_lookback_bars = atr_lookback_bars
        self.recalc_bars = recalc_bars
        self.min_ticks = min_ticks
        self.min_time_span = timedelta(seconds=min_time_seconds)

        self.states: Dict[str, SymbolState] = {}
        self.completed_bars: List[RangeATRBar] = []
        self.listeners: List[RangeBarListener] = []

    def add_listener(self, listener: RangeBarListener) -> None:
        """Register a callback invoked with every sealed bar."""
        self.listeners.append(listener)

    def process_tick(self, tick: Tick, tick_size: float) -> Optional[RangeATRBar]:
        """
        Apply a tick to its symbol's range bar.

        Args:
            tick: New tick data
            tick_size: Instrument price increment

        Returns:
            The bar sealed by this tick, None otherwise

        Raises:
            InvalidConfigError: tick_size is not a positive number
            OutOfOrderTickError: tick is older than the open bar's last update
        """
        self._check_tick_size(tick_size)

        state = self._get_state(tick.symbol)
        current = state.current_bar

        if current is None:
            state.current_bar = self._open_bar(tick)
            atr = self.calculate_atr(tick.symbol, tick_size)
            state.current_bar.atr_value = atr
            state.current_bar.range_threshold = atr if atr > 0 else BOOTSTRAP_RANGE_TICKS
            return None

        if tick.timestamp < current.last_update_time:
            raise OutOfOrderTickError(
                "Tick is older than the open range bar",
                symbol=tick.symbol,
                tick_time=tick.timestamp.isoformat(),
                last_update=current.last_update_time.isoformat()
            )

        if not current.should_complete(tick.price, tick_size, tick.timestamp):
            current.update_with_tick(tick)
            return None

        # The closing tick marks the end of the bar but opens the next one
        current.last_update_time = tick.timestamp
        completed_bar = self._complete_bar(state)

        new_bar = self._open_bar(tick)
        if state.completed_count % self.recalc_bars == 0:
            atr = self.calculate_atr(tick.symbol, tick_size)
            new_bar.atr_value = atr
            new_bar.range_threshold = atr if atr > 0 else BOOTSTRAP_RANGE_TICKS

            logger.debug(
                "Range threshold recalculated",
                symbol=tick.symbol,
                completed=state.completed_count,
                atr=round(atr, 4)
            )
        else:
            new_bar.atr_value = completed_bar.atr_value or BOOTSTRAP_RANGE_TICKS
            new_bar.range_threshold = completed_bar.range_threshold or BOOTSTRAP_RANGE_TICKS

        state.current_bar = new_bar

        return completed_bar

    def complete_all_bars(self) -> List[RangeATRBar]:
        """
        Seal every open bar without applying any closure criteria.

        Returns:
            Bars sealed by this call, in symbol first-seen order
        """
        sealed = [
            self._complete_bar(state)
            for state in self.states.values()
            if state.current_bar is not None
        ]

        if sealed:
            logger.debug("Flushed open range bars", count=len(sealed))

        return sealed

    def get_completed_bars(self, symbol: Optional[str] = None) -> List[RangeATRBar]:
        """Get sealed bars in sealing order, optionally for one symbol."""
        if symbol is None:
            return list(self.completed_bars)
        return [bar for bar in self.completed_bars if bar.symbol == symbol]

    def get_current_bar(self, symbol: str) -> Optional[RangeATRBar]:
        """Get the open (incomplete) bar for a symbol."""
        state = self.states.get(symbol)
        return state.current_bar if state else None

    def calculate_atr(self, symbol: str, tick_size: float) -> float:
        """
        ATR in ticks over the symbol's most recent completed bars.

        Returns BOOTSTRAP_RANGE_TICKS until two bars have completed.
        """
        self._check_tick_size(tick_size)

        state = self.states.get(symbol)
        if state is None:
            return BOOTSTRAP_RANGE_TICKS

        return average_true_range([bar.bar for bar in state.history], tick_size)

    def reset(self, symbol: Optional[str] = None) -> None:
        """
        Drop aggregation state.

        Args:
            symbol: Reset only this symbol's open bar and ATR history;
                None clears everything including completed bars
        """
        if symbol is None:
            self.states.clear()
            self.completed_bars.clear()
        else:
            self.states.pop(symbol, None)

    def _get_state(self, symbol: str) -> SymbolState:
        if symbol not in self.states:
            self.states[symbol] = SymbolState(
                history=deque(maxlen=self.atr_lookback_bars)
            )
        return self.states[symbol]

    def _open_bar(self, tick: Tick) -> RangeATRBar:
        return RangeATRBar.from_tick(tick, self.min_ticks, self.min_time_span)

    def _complete_bar(self, state: SymbolState) -> RangeATRBar:
        bar = state.current_bar
        state.current_bar = None
        state.history.append(bar)
        state.completed_count += 1
        self.completed_bars.append(bar)

        logger.debug(
            "Range bar completed",
            symbol=bar.symbol,
            o=bar.open, h=bar.high, l=bar.low, c=bar.close,
            ticks=bar.tick_count,
            threshold=round(bar.range_threshold, 2)
        )

        for listener in self.listeners:
            listener(bar)

        return bar

    @staticmethod
    def _check_tick_size(tick_size: float) -> None:
        if tick_size is None or not math.isfinite(tick_size) or tick_size <= 0:
            raise InvalidConfigError("tick_size must be a positive number", tick_size=tick_size)
