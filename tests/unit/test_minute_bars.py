"""
Unit tests for the minute bar aggregator.
"""

from datetime import datetime, timedelta

import pytest
import pytz

from tickbars.core.exceptions import OutOfOrderTickError
from tickbars.core.types import Tick
from tickbars.data.minute_bars import MinuteBarAggregator, truncate_to_minute


@pytest.fixture
def aggregator():
    return MinuteBarAggregator()


def test_truncate_to_minute_keeps_tzinfo():
    ist = pytz.timezone("Asia/Kolkata")
    ts = ist.localize(datetime(2024, 1, 2, 9, 15, 42, 123000))

    bucket = truncate_to_minute(ts)

    assert bucket == ist.localize(datetime(2024, 1, 2, 9, 15))
    assert bucket.tzinfo is ts.tzinfo


def test_two_minute_example(aggregator, make_tick):
    """09:15:00.5 -> 100, 09:15:30 -> 105, 09:16:05 -> 110."""
    assert aggregator.process_tick(make_tick(100.0, 0.5)) is None
    assert aggregator.process_tick(make_tick(105.0, 30)) is None

    sealed = aggregator.process_tick(make_tick(110.0, 65))
    assert sealed is not None
    assert (sealed.open, sealed.high, sealed.low, sealed.close) == (100.0, 105.0, 100.0, 105.0)

    aggregator.complete_all_bars()
    bars = aggregator.get_completed_bars()

    assert len(bars) == 2
    first, second = bars
    assert first.timestamp == datetime(2024, 1, 2, 9, 15)
    assert second.timestamp == datetime(2024, 1, 2, 9, 16)
    assert (second.open, second.high, second.low, second.close) == (110.0, 110.0, 110.0, 110.0)


def test_volume_accumulates_within_minute(aggregator, make_tick):
    for i, volume in enumerate([10, 20, 30]):
        aggregator.process_tick(make_tick(100.0 + i, i * 10, volume=volume))

    bar = aggregator.get_current_bar("X")
    assert bar.volume == 60
    assert bar.close == 102.0


def test_gap_minutes_produce_no_empty_bars(aggregator, make_tick):
    aggregator.process_tick(make_tick(100.0, 0))
    aggregator.process_tick(make_tick(101.0, 600))  # ten minutes later
    aggregator.complete_all_bars()

    stamps = [bar.timestamp for bar in aggregator.get_completed_bars()]
    assert stamps == [datetime(2024, 1, 2, 9, 15), datetime(2024, 1, 2, 9, 25)]


def test_symbols_are_independent(aggregator, make_tick):
    aggregator.process_tick(make_tick(100.0, 0, symbol="A"))
    aggregator.process_tick(make_tick(50.0, 5, symbol="B"))

    # A rolls into the next minute; B's bucket stays open
    sealed = aggregator.process_tick(make_tick(101.0, 61, symbol="A"))

    assert sealed.symbol == "A"
    assert aggregator.get_current_bar("B").open == 50.0
    assert aggregator.get_completed_bars("B") == []


def test_out_of_order_tick_rejected(aggregator, make_tick):
    aggregator.process_tick(make_tick(100.0, 65))

    with pytest.raises(OutOfOrderTickError):
        aggregator.process_tick(make_tick(99.0, 30))

    # State untouched
    bar = aggregator.get_current_bar("X")
    assert (bar.open, bar.low, bar.volume) == (100.0, 100.0, 1)
    assert aggregator.get_completed_bars() == []


def test_earlier_tick_in_same_minute_is_accepted(aggregator, make_tick):
    aggregator.process_tick(make_tick(100.0, 40))
    aggregator.process_tick(make_tick(98.0, 10))

    assert aggregator.get_current_bar("X").low == 98.0


def test_complete_all_bars_is_idempotent(aggregator, make_tick):
    aggregator.process_tick(make_tick(100.0, 0, symbol="A"))
    aggregator.process_tick(make_tick(200.0, 0, symbol="B"))

    first = aggregator.complete_all_bars()
    second = aggregator.complete_all_bars()

    assert [bar.symbol for bar in first] == ["A", "B"]
    assert second == []
    assert len(aggregator.get_completed_bars()) == 2


def test_listener_receives_sealed_bars(aggregator, make_tick):
    received = []
    aggregator.add_listener(received.append)

    aggregator.process_tick(make_tick(100.0, 0))
    aggregator.process_tick(make_tick(101.0, 61))
    aggregator.complete_all_bars()

    assert received == aggregator.get_completed_bars()
    assert len(received) == 2


def test_completed_bars_copy_is_independent(aggregator, make_tick):
    aggregator.process_tick(make_tick(100.0, 0))
    aggregator.complete_all_bars()

    bars = aggregator.get_completed_bars()
    bars.clear()

    assert len(aggregator.get_completed_bars()) == 1


def test_ohlc_invariants_hold(aggregator, base_time):
    prices = [100.0, 103.5, 99.25, 101.0, 104.0, 98.0, 100.5, 102.25]
    for i, price in enumerate(prices):
        tick = Tick(symbol="X", timestamp=base_time + timedelta(seconds=i * 20), price=price, volume=1)
        aggregator.process_tick(tick)
    aggregator.complete_all_bars()

    for bar in aggregator.get_completed_bars():
        assert bar.high >= max(bar.open, bar.close)
        assert bar.low <= min(bar.open, bar.close)
        assert bar.high >= bar.low


def test_reset_clears_state(aggregator, make_tick):
    aggregator.process_tick(make_tick(100.0, 0))
    aggregator.process_tick(make_tick(101.0, 61))

    aggregator.reset()

    assert aggregator.get_completed_bars() == []
    assert aggregator.get_current_bar("X") is None
