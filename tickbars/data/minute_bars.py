"""
Minute Bar Aggregator - Builds calendar-minute OHLC bars from ticks.

One open bar per symbol. A tick for a later minute seals the open bar
and starts a new one; ticks for an earlier minute are rejected.
"""

from typing import Callable, Dict, List, Optional
from datetime import datetime

from ..core.types import Tick, OHLCBar
from ..core.exceptions import OutOfOrderTickError
from ..monitoring.logger import get_logger

logger = get_logger(__name__)

MinuteBarListener = Callable[[OHLCBar], None]


def truncate_to_minute(timestamp: datetime) -> datetime:
    """Floor a timestamp to the start of its minute, keeping its tzinfo."""
    return timestamp.replace(second=0, microsecond=0)


class MinuteBarAggregator:
    """
    Aggregates ticks into one-minute bars, independently per symbol.

    Completed bars are kept in sealing order and pushed to listeners
    synchronously as they seal.
    """

    def __init__(self):
        self.current_bars: Dict[str, OHLCBar] = {}
        self.completed_bars: List[OHLCBar] = []
        self.listeners: List[MinuteBarListener] = []

    def add_listener(self, listener: MinuteBarListener) -> None:
        """Register a callback invoked with every sealed bar."""
        self.listeners.append(listener)

    def process_tick(self, tick: Tick) -> Optional[OHLCBar]:
        """
        Apply a tick to its symbol's minute bar.

        Args:
            tick: New tick data

        Returns:
            The bar sealed by this tick, None otherwise

        Raises:
            OutOfOrderTickError: tick belongs to a minute earlier than the open bar
        """
        bucket = truncate_to_minute(tick.timestamp)
        current = self.current_bars.get(tick.symbol)

        if current is not None:
            if bucket == current.timestamp:
                current.update(tick.price, tick.volume)
                return None

            if bucket < current.timestamp:
                raise OutOfOrderTickError(
                    "Tick is older than the open minute bar",
                    symbol=tick.symbol,
                    tick_time=tick.timestamp.isoformat(),
                    bar_time=current.timestamp.isoformat()
                )

        completed_bar = self._complete_bar(tick.symbol) if current is not None else None

        # Start new bar
        self.current_bars[tick.symbol] = OHLCBar.from_tick(tick, timestamp=bucket)

        return completed_bar

    def complete_all_bars(self) -> List[OHLCBar]:
        """
        Seal every open bar (end of stream).

        Returns:
            Bars sealed by this call, in symbol first-seen order
        """
        sealed = [self._complete_bar(symbol) for symbol in list(self.current_bars)]

        if sealed:
            logger.debug("Flushed open minute bars", count=len(sealed))

        return sealed

    def get_completed_bars(self, symbol: Optional[str] = None) -> List[OHLCBar]:
        """Get sealed bars in sealing order, optionally for one symbol."""
        if symbol is None:
            return list(self.completed_bars)
        return [bar for bar in self.completed_bars if bar.symbol == symbol]

    def get_current_bar(self, symbol: str) -> Optional[OHLCBar]:
        """Get the open (incomplete) bar for a symbol."""
        return self.current_bars.get(symbol)

    def reset(self) -> None:
        """Drop all open and completed bars."""
        self.current_bars.clear()
        self.completed_bars.clear()

    def _complete_bar(self, symbol: str) -> OHLCBar:
        bar = self.current_bars.pop(symbol)
        self.completed_bars.append(bar)

        logger.debug(
            "Minute bar completed",
            symbol=symbol,
            time=bar.timestamp.isoformat(),
            o=bar.open, h=bar.high, l=bar.low, c=bar.close,
            volume=bar.volume
        )

        for listener in self.listeners:
            listener(bar)

        return bar
