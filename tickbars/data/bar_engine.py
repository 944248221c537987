"""
Bar Engine - Drives both aggregators from a single tick stream.

Responsibilities:
1. Screen ticks (ordering, optional spike filter)
2. Fan each accepted tick out to the minute and Range ATR aggregators
3. Resolve the tick size per symbol
4. Flush open bars at end of stream
5. Report per-symbol status
"""

import math
from typing import Dict, Iterable, List, Optional
from datetime import datetime
from collections import defaultdict

from ..core.types import Tick, OHLCBar, RangeATRBar
from ..core.constants import DEFAULT_TICK_SIZE
from ..core.config import RangeATRConfig
from ..core.exceptions import InvalidConfigError, MissingDataError

from .minute_bars import MinuteBarAggregator, MinuteBarListener
from .range_atr_bars import RangeATRBarAggregator, RangeBarListener
from .data_validator import DataValidator

from ..monitoring.logger import get_logger
logger = get_logger(__name__)


class BarEngine:
    """
    Central bar engine.

    The two aggregators share no state; the engine only sequences calls
    into them. Like the aggregators, it is single-threaded: callers must
    serialize on_tick calls per instance.
    """

    def __init__(
        self,
        range_config: Optional[RangeATRConfig] = None,
        tick_sizes: Optional[Dict[str, float]] = None,
        default_tick_size: float = DEFAULT_TICK_SIZE,
        validator: Optional[DataValidator] = None
    ):
        """
        Initialize bar engine.

        Args:
            range_config: Range ATR parameters (defaults when None)
            tick_sizes: Per-symbol tick size overrides
            default_tick_size: Tick size for symbols without an override
            validator: Tick validator (ordering-only validator when None)
        """
        if default_tick_size is None or not math.isfinite(default_tick_size) or default_tick_size <= 0:
            raise InvalidConfigError(
                "default_tick_size must be positive", default_tick_size=default_tick_size
            )
        for symbol, size in (tick_sizes or {}).items():
            if size is None or not math.isfinite(size) or size <= 0:
                raise InvalidConfigError("tick_size must be positive", symbol=symbol, tick_size=size)

        self.range_config = range_config or RangeATRConfig()
        self.tick_sizes = dict(tick_sizes or {})
        self.default_tick_size = default_tick_size

        # Components
        self.data_validator = validator or DataValidator()
        self.minute_aggregator = MinuteBarAggregator()
        self.range_aggregator = RangeATRBarAggregator(
            atr_lookback_bars=self.range_config.atr_lookback_bars,
            recalc_bars=self.range_config.recalc_bars,
            min_ticks=self.range_config.min_ticks,
            min_time_seconds=self.range_config.min_time_seconds
        )
        self.minute_aggregator.add_listener(self._on_minute_bar)

        # State tracking
        self.last_tick_time: Dict[str, datetime] = {}
        self.tick_counts: Dict[str, int] = defaultdict(int)
        self.skipped_counts: Dict[str, int] = defaultdict(int)

    def get_tick_size(self, symbol: str) -> float:
        """Tick size used for a symbol."""
        return self.tick_sizes.get(symbol, self.default_tick_size)

    def add_minute_listener(self, listener: MinuteBarListener) -> None:
        self.minute_aggregator.add_listener(listener)

    def add_range_listener(self, listener: RangeBarListener) -> None:
        self.range_aggregator.add_listener(listener)

    def on_tick(self, tick: Tick) -> bool:
        """
        Process incoming tick.

        Args:
            tick: New tick data

        Returns:
            True if the tick reached the aggregators, False if it was skipped
        """
        if not self.data_validator.validate_tick(tick, self.last_tick_time.get(tick.symbol)):
            self.skipped_counts[tick.symbol] += 1
            logger.warning(
                "Tick skipped",
                symbol=tick.symbol,
                reason=self.data_validator.last_reason,
                time=tick.timestamp.isoformat(),
                price=tick.price
            )
            return False

        self.last_tick_time[tick.symbol] = tick.timestamp
        self.tick_counts[tick.symbol] += 1

        self.minute_aggregator.process_tick(tick)
        self.range_aggregator.process_tick(tick, self.get_tick_size(tick.symbol))

        return True

    def process_ticks(self, ticks: Iterable[Tick]) -> int:
        """
        Process a batch of ticks.

        Returns:
            Number of ticks accepted
        """
        return sum(1 for tick in ticks if self.on_tick(tick))

    def flush(self) -> None:
        """Seal all open bars in both aggregators (end of stream)."""
        minute = self.minute_aggregator.complete_all_bars()
        ranged = self.range_aggregator.complete_all_bars()

        logger.info("Open bars flushed", minute_bars=len(minute), range_bars=len(ranged))

    def get_minute_bars(self, symbol: Optional[str] = None) -> List[OHLCBar]:
        return self.minute_aggregator.get_completed_bars(symbol)

    def get_range_bars(self, symbol: Optional[str] = None) -> List[RangeATRBar]:
        return self.range_aggregator.get_completed_bars(symbol)

    def get_status(self, symbol: Optional[str] = None) -> Dict[str, Dict]:
        """
        Get processing status per symbol.

        Returns:
            {
                'NIFTY': {'ticks': 1000, 'skipped': 2, 'minute_bars': 60,
                          'range_bars': 85, 'last_tick': datetime}
            }

        Raises:
            MissingDataError: symbol was requested but never seen
        """
        symbols = list(self.last_tick_time) + [
            s for s in self.skipped_counts if s not in self.last_tick_time
        ]

        if symbol is not None:
            if symbol not in symbols:
                raise MissingDataError(f"No data for symbol: {symbol}")
            symbols = [symbol]

        status = {}
        for ticker in symbols:
            status[ticker] = {
                'ticks': self.tick_counts.get(ticker, 0),
                'skipped': self.skipped_counts.get(ticker, 0),
                'minute_bars': len(self.minute_aggregator.get_completed_bars(ticker)),
                'range_bars': len(self.range_aggregator.get_completed_bars(ticker)),
                'last_tick': self.last_tick_time.get(ticker)
            }

        return status

    def _on_minute_bar(self, bar: OHLCBar) -> None:
        if not self.data_validator.validate_bar(bar):
            logger.warning("Invalid minute bar sealed", symbol=bar.symbol, bar=str(bar))
