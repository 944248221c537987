"""
Exporter - Writes ticks and bars to CSV and builds summary reports.

Frames are built with pandas; every export is sorted by timestamp.
Prices are written with two decimals, range bar durations with one.
"""

from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

import pandas as pd

from ..core.types import Tick, OHLCBar, RangeATRBar
from ..core.constants import BAR_COLUMNS, RANGE_BAR_COLUMNS, TICK_COLUMNS
from ..monitoring.logger import get_logger

logger = get_logger(__name__)

BAR_TIME_FORMAT = '%Y-%m-%d %H:%M:%S'
PRICE_COLUMNS = ['Open', 'High', 'Low', 'Close', 'Range', 'Body', 'ATRValue', 'RangeThreshold', 'Price']


def _bar_row(bar) -> Dict[str, Any]:
    return {
        'DateTime': bar.timestamp.strftime(BAR_TIME_FORMAT),
        'Symbol': bar.symbol,
        'Open': bar.open,
        'High': bar.high,
        'Low': bar.low,
        'Close': bar.close,
        'Volume': bar.volume,
        'Range': bar.range,
        'Body': bar.body,
        'IsBullish': bar.is_bullish,
    }


def minute_bars_to_frame(bars: Sequence[OHLCBar]) -> pd.DataFrame:
    """Minute bars as a DataFrame, sorted by bar time."""
    rows = [_bar_row(bar) for bar in sorted(bars, key=lambda b: b.timestamp)]
    return pd.DataFrame(rows, columns=BAR_COLUMNS)


def range_bars_to_frame(bars: Sequence[RangeATRBar]) -> pd.DataFrame:
    """Range ATR bars as a DataFrame, sorted by bar time."""
    rows = []
    for bar in sorted(bars, key=lambda b: b.timestamp):
        row = _bar_row(bar)
        row.update({
            'ATRValue': bar.atr_value,
            'RangeThreshold': bar.range_threshold,
            'TickCount': bar.tick_count,
            'BarDuration': bar.duration.total_seconds(),
        })
        rows.append(row)
    return pd.DataFrame(rows, columns=RANGE_BAR_COLUMNS)


def ticks_to_frame(ticks: Sequence[Tick]) -> pd.DataFrame:
    """Ticks as a DataFrame with millisecond timestamps."""
    rows = [
        {
            'DateTime': tick.timestamp.strftime('%Y-%m-%d %H:%M:%S.%f')[:-3],
            'Symbol': tick.symbol,
            'Price': tick.price,
            'Volume': tick.volume,
        }
        for tick in sorted(ticks, key=lambda t: t.timestamp)
    ]
    return pd.DataFrame(rows, columns=TICK_COLUMNS)


def _write_csv(df: pd.DataFrame, filepath: Union[str, Path]) -> int:
    out = df.copy()
    for column in PRICE_COLUMNS:
        if column in out.columns:
            out[column] = out[column].map(lambda v: f"{v:.2f}")
    if 'BarDuration' in out.columns:
        out['BarDuration'] = out['BarDuration'].map(lambda v: f"{v:.1f}")

    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    out.to_csv(path, index=False)
    return len(out)


def export_minute_bars(bars: Sequence[OHLCBar], filepath: Union[str, Path]) -> int:
    """Export minute bars to CSV. Returns rows written."""
    count = _write_csv(minute_bars_to_frame(bars), filepath)
    logger.info("Exported minute bars", count=count, path=str(filepath))
    return count


def export_range_bars(bars: Sequence[RangeATRBar], filepath: Union[str, Path]) -> int:
    """Export Range ATR bars to CSV. Returns rows written."""
    count = _write_csv(range_bars_to_frame(bars), filepath)
    logger.info("Exported Range ATR bars", count=count, path=str(filepath))
    return count


def export_ticks(ticks: Sequence[Tick], filepath: Union[str, Path]) -> int:
    """Export ticks to CSV for verification. Returns rows written."""
    count = _write_csv(ticks_to_frame(ticks), filepath)
    logger.info("Exported ticks", count=count, path=str(filepath))
    return count


def summarize(
    ticks: Sequence[Tick],
    minute_bars: Sequence[OHLCBar],
    range_bars: Sequence[RangeATRBar]
) -> Dict[str, Dict[str, Any]]:
    """
    Summary statistics of a processing run.

    Returns:
        {'ticks': {...}, 'minute_bars': {...}, 'range_bars': {...}};
        averages are omitted for empty sections
    """
    summary: Dict[str, Dict[str, Any]] = {
        'ticks': {'count': len(ticks)},
        'minute_bars': {'count': len(minute_bars)},
        'range_bars': {'count': len(range_bars)},
    }

    if ticks:
        tick_df = pd.DataFrame({
            'price': [t.price for t in ticks],
            'volume': [t.volume for t in ticks],
        })
        first = min(t.timestamp for t in ticks)
        last = max(t.timestamp for t in ticks)
        summary['ticks'].update({
            'start': first,
            'end': last,
            'duration_hours': (last - first).total_seconds() / 3600,
            'min_price': float(tick_df['price'].min()),
            'max_price': float(tick_df['price'].max()),
            'total_volume': int(tick_df['volume'].sum()),
        })

    if minute_bars:
        bar_df = minute_bars_to_frame(minute_bars)
        summary['minute_bars'].update({
            'avg_volume': float(bar_df['Volume'].mean()),
            'avg_range': float(bar_df['Range'].mean()),
            'bullish': int(bar_df['IsBullish'].sum()),
            'bullish_pct': float(bar_df['IsBullish'].mean() * 100),
        })

    if range_bars:
        range_df = range_bars_to_frame(range_bars)
        summary['range_bars'].update({
            'avg_atr': float(range_df['ATRValue'].mean()),
            'avg_ticks': float(range_df['TickCount'].mean()),
            'avg_duration_seconds': float(range_df['BarDuration'].mean()),
            'bullish': int(range_df['IsBullish'].sum()),
            'bullish_pct': float(range_df['IsBullish'].mean() * 100),
        })

    return summary


def format_summary(summary: Dict[str, Dict[str, Any]]) -> List[str]:
    """Render a summary as report lines."""
    lines = ["TICK DATA SUMMARY:"]
    ticks = summary['ticks']
    lines.append(f"Total ticks processed: {ticks['count']:,}")
    if ticks['count']:
        lines.append(f"Time range: {ticks['start']:%Y-%m-%d %H:%M:%S} to {ticks['end']:%Y-%m-%d %H:%M:%S}")
        lines.append(f"Duration: {ticks['duration_hours']:.1f} hours")
        lines.append(f"Price range: {ticks['min_price']:.2f} to {ticks['max_price']:.2f}")
        lines.append(f"Total volume: {ticks['total_volume']:,}")
    lines.append("")

    minute = summary['minute_bars']
    lines.append("MINUTE BARS SUMMARY:")
    lines.append(f"Total minute bars: {minute['count']:,}")
    if minute['count']:
        lines.append(f"Average volume per bar: {minute['avg_volume']:.0f}")
        lines.append(f"Average range per bar: {minute['avg_range']:.2f}")
        lines.append(f"Bullish bars: {minute['bullish']:,} ({minute['bullish_pct']:.1f}%)")
    lines.append("")

    ranged = summary['range_bars']
    lines.append("RANGE ATR BARS SUMMARY:")
    lines.append(f"Total Range ATR bars: {ranged['count']:,}")
    if ranged['count']:
        lines.append(f"Average ATR value: {ranged['avg_atr']:.2f}")
        lines.append(f"Average ticks per bar: {ranged['avg_ticks']:.0f}")
        lines.append(f"Average bar duration: {ranged['avg_duration_seconds']:.1f} seconds")
        lines.append(f"Bullish bars: {ranged['bullish']:,} ({ranged['bullish_pct']:.1f}%)")

    return lines


def write_summary_report(summary: Dict[str, Dict[str, Any]], filepath: Union[str, Path]) -> None:
    """Write the text summary report."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w') as f:
        f.write("=== TICK DATA PROCESSING SUMMARY ===\n\n")
        f.write("\n".join(format_summary(summary)))
        f.write("\n\n=== END OF SUMMARY ===\n")

    logger.info("Summary report saved", path=str(path))
