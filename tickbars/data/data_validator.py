"""
Data Validator - Screens ticks and bars before aggregation.

Detects:
- Ticks older than the previous tick for the same symbol
- Price spikes far outside recent prices (optional)
- Invalid OHLC
"""

from typing import Dict, List, Optional
from datetime import datetime
import statistics

from ..core.types import Tick, OHLCBar


class DataValidator:
    """Validates market data quality."""

    def __init__(self, spike_threshold_std: Optional[float] = None, history_size: int = 100):
        """
        Args:
            spike_threshold_std: Reject ticks this many standard deviations
                away from recent prices; None disables spike detection
            history_size: Prices kept per symbol for spike detection
        """
        self.spike_threshold_std = spike_threshold_std
        self.history_size = history_size
        self.price_history: Dict[str, List[float]] = {}
        self.last_reason: Optional[str] = None

    def validate_tick(
        self,
        tick: Tick,
        last_tick_time: Optional[datetime] = None
    ) -> bool:
        """
        Validate tick data.

        Returns:
            True if valid, False if should be discarded (see last_reason)
        """
        self.last_reason = None

        # Tick from the past
        if last_tick_time is not None and tick.timestamp < last_tick_time:
            self.last_reason = "out_of_order"
            return False

        if self._is_spike(tick):
            self.last_reason = "spike"
            return False

        self._update_price_history(tick)

        return True

    def validate_bar(self, bar: OHLCBar) -> bool:
        """
        Validate bar OHLC integrity.

        OHLCBar.__post_init__ covers construction; this re-checks a bar
        after in-place updates.
        """
        if bar.high < max(bar.open, bar.close):
            return False

        if bar.low > min(bar.open, bar.close):
            return False

        if any(p <= 0 for p in [bar.open, bar.high, bar.low, bar.close]):
            return False

        return bar.volume >= 0

    def reset(self) -> None:
        self.price_history.clear()
        self.last_reason = None

    def _is_spike(self, tick: Tick) -> bool:
        """
        Detect price spikes using standard deviation.

        If price moves > N standard deviations, it's likely bad data.
        """
        if self.spike_threshold_std is None:
            return False

        prices = self.price_history.get(tick.symbol)
        if not prices or len(prices) < 20:
            return False  # Not enough history

        mean = statistics.mean(prices)
        std = statistics.stdev(prices)

        if std == 0:
            return False

        z_score = abs((tick.price - mean) / std)

        return z_score > self.spike_threshold_std

    def _update_price_history(self, tick: Tick) -> None:
        """Update price history for spike detection."""
        if self.spike_threshold_std is None:
            return

        history = self.price_history.setdefault(tick.symbol, [])
        history.append(tick.price)

        # Keep only recent history
        if len(history) > self.history_size:
            self.price_history[tick.symbol] = history[-self.history_size:]
