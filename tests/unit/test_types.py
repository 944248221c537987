"""
Unit tests for core data types and exceptions.
"""

import dataclasses
import math
from datetime import datetime, timedelta

import pytest

from tickbars.core.constants import BarDirection
from tickbars.core.exceptions import (
    DataValidationError,
    InvalidBarError,
    OutOfOrderTickError,
    TickBarsError,
)
from tickbars.core.types import Tick, OHLCBar, RangeATRBar


T0 = datetime(2024, 1, 2, 9, 15, 0)


# ── Tick ─────────────────────────────────────────────────────────────

def test_tick_is_immutable():
    tick = Tick(symbol="X", timestamp=T0, price=100.0, volume=5)

    with pytest.raises(dataclasses.FrozenInstanceError):
        tick.price = 101.0


@pytest.mark.parametrize("price", [0.0, -1.0, math.nan, math.inf])
def test_tick_rejects_bad_price(price):
    with pytest.raises(DataValidationError):
        Tick(symbol="X", timestamp=T0, price=price, volume=1)


def test_tick_rejects_negative_volume():
    with pytest.raises(DataValidationError):
        Tick(symbol="X", timestamp=T0, price=100.0, volume=-1)


def test_tick_rejects_empty_symbol():
    with pytest.raises(DataValidationError):
        Tick(symbol="", timestamp=T0, price=100.0)


# ── OHLCBar ──────────────────────────────────────────────────────────

def test_bar_rejects_high_below_close():
    with pytest.raises(InvalidBarError):
        OHLCBar(symbol="X", timestamp=T0, open=100, high=101, low=99, close=102)


def test_bar_rejects_low_above_open():
    with pytest.raises(InvalidBarError):
        OHLCBar(symbol="X", timestamp=T0, open=98, high=101, low=99, close=100)


def test_bar_update_extends_range():
    tick = Tick(symbol="X", timestamp=T0, price=100.0, volume=10)
    bar = OHLCBar.from_tick(tick)

    bar.update(104.0, 5)
    bar.update(97.0, 3)
    bar.update(102.0, 2)

    assert (bar.open, bar.high, bar.low, bar.close) == (100.0, 104.0, 97.0, 102.0)
    assert bar.volume == 20
    assert bar.range == 7.0
    assert bar.body == 2.0
    assert bar.is_bullish
    assert not bar.is_bearish
    assert bar.direction == BarDirection.BULLISH


def test_bar_direction_doji_and_bearish():
    doji = OHLCBar(symbol="X", timestamp=T0, open=100, high=101, low=99, close=100)
    bearish = OHLCBar(symbol="X", timestamp=T0, open=100, high=101, low=98, close=99)

    assert doji.direction == BarDirection.DOJI
    assert not doji.is_bullish
    assert bearish.direction == BarDirection.BEARISH
    assert bearish.body == 1


# ── RangeATRBar ──────────────────────────────────────────────────────

def test_range_bar_exposes_embedded_bar():
    tick = Tick(symbol="NIFTY", timestamp=T0, price=200.0, volume=7)
    bar = RangeATRBar.from_tick(tick, min_ticks=2, min_time_span=timedelta(seconds=1))

    assert bar.symbol == "NIFTY"
    assert bar.open == bar.high == bar.low == bar.close == 200.0
    assert bar.volume == 7
    assert bar.tick_count == 0
    assert bar.bar_start_time == bar.last_update_time == T0
    assert bar.duration == timedelta(0)


def test_range_bar_update_with_tick_advances_time():
    first = Tick(symbol="X", timestamp=T0, price=100.0, volume=1)
    second = Tick(symbol="X", timestamp=T0 + timedelta(seconds=3), price=98.0, volume=2)
    bar = RangeATRBar.from_tick(first, min_ticks=1, min_time_span=timedelta(seconds=1))

    bar.update_with_tick(second)

    assert bar.tick_count == 1
    assert bar.low == 98.0
    assert bar.volume == 3
    assert bar.last_update_time == second.timestamp
    assert bar.timestamp == second.timestamp
    assert bar.duration == timedelta(seconds=3)


def test_range_bar_never_completes_without_threshold():
    tick = Tick(symbol="X", timestamp=T0, price=100.0)
    bar = RangeATRBar.from_tick(tick, min_ticks=0, min_time_span=timedelta(0))
    bar.range_threshold = 0.0

    assert not bar.should_complete(500.0, 1.0, T0 + timedelta(hours=1))


def test_range_bar_projected_range_in_ticks():
    tick = Tick(symbol="X", timestamp=T0, price=100.0)
    bar = RangeATRBar.from_tick(tick, min_ticks=1, min_time_span=timedelta(0))

    assert bar.range_in_ticks(100.5, 0.05) == pytest.approx(10.0)
    assert bar.range_in_ticks(100.0, 0.05) == 0.0


# ── Exceptions ───────────────────────────────────────────────────────

def test_exception_context_in_message():
    err = OutOfOrderTickError("Tick is older than the open bar", symbol="X", tick_time="09:15")

    assert isinstance(err, DataValidationError)
    assert isinstance(err, TickBarsError)
    assert str(err) == "Tick is older than the open bar [symbol=X, tick_time=09:15]"
    assert err.context["symbol"] == "X"
