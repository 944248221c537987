"""
Unit tests for the NinjaTrader tick file reader.
"""

from datetime import datetime, timedelta

import pytest
import pytz

from tickbars.core.exceptions import MissingDataError, TickParseError
from tickbars.data.tick_reader import parse_line, read_ticks


IST = pytz.timezone("Asia/Kolkata")


def test_parse_line_converts_utc_to_ist():
    tick = parse_line("20240102 034500 1230000;21700.5;21700.25;21700.75;25", "NIFTY")

    assert tick.symbol == "NIFTY"
    assert tick.price == 21700.5
    assert tick.volume == 25
    assert tick.timestamp == IST.localize(datetime(2024, 1, 2, 9, 15, 0, 123000))
    assert tick.timestamp.utcoffset() == timedelta(hours=5, minutes=30)


def test_parse_line_in_utc():
    tick = parse_line("20240102 034500 0000000;100;100;100;1", "X", tz="UTC")

    assert tick.timestamp == datetime(2024, 1, 2, 3, 45, tzinfo=pytz.utc)


def test_parse_line_short_fraction_is_zero_ms():
    tick = parse_line("20240102 034500 7;100;100;100;1", "X")

    assert tick.timestamp.microsecond == 0


@pytest.mark.parametrize("line", [
    "",
    "   ",
    "20240102 034500 0000000;100;100;100",
    "20240102 034500;100;100;100;1",
    "2024012 034500 0000000;100;100;100;1",
    "20240102 3450 0000000;100;100;100;1",
    "20241302 034500 0000000;100;100;100;1",
    "20240102 034500 0000000;abc;100;100;1",
    "20240102 034500 0000000;100;100;100;-5",
    "20240102 034500 0000000;0;100;100;1",
])
def test_parse_line_rejects_malformed(line):
    with pytest.raises(TickParseError):
        parse_line(line, "X")


def test_read_ticks_skips_bad_lines_and_sorts(tmp_path, caplog):
    path = tmp_path / "NIFTY_I.Last.txt"
    path.write_text(
        "20240102 034502 0000000;101;101;101;2\n"
        "\n"
        "garbage line\n"
        "20240102 034500 0000000;100;100;100;1\n"
        "20240102 034501 5000000;100.5;100.5;100.5;3\n"
    )

    ticks = read_ticks(path, "NIFTY")

    assert [t.price for t in ticks] == [100.0, 100.5, 101.0]
    assert all(t.symbol == "NIFTY" for t in ticks)
    assert "Error parsing tick line" in caplog.text


def test_read_ticks_strict_raises_with_line_number(tmp_path):
    path = tmp_path / "ticks.txt"
    path.write_text(
        "20240102 034500 0000000;100;100;100;1\n"
        "bad\n"
    )

    with pytest.raises(TickParseError) as exc_info:
        read_ticks(path, "X", strict=True)

    assert exc_info.value.context["line_number"] == 2


def test_read_ticks_limit(tmp_path):
    path = tmp_path / "ticks.txt"
    path.write_text("".join(
        f"20240102 0345{i:02d} 0000000;100;100;100;1\n" for i in range(10)
    ))

    assert len(read_ticks(path, "X", limit=4)) == 4


def test_read_ticks_missing_file(tmp_path):
    with pytest.raises(MissingDataError):
        read_ticks(tmp_path / "missing.txt", "X")
