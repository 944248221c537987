#!/usr/bin/env python3
"""
Generate a Sample NinjaTrader Tick File.

Creates a synthetic session of trade ticks in the NinjaTrader "Last"
export format, with calm stretches and bursts, for trying the converter:

    python scripts/generate_sample_ticks.py
    python -m tickbars.main --ticks data/ticks/NIFTY_I.Last.txt --symbol NIFTY
"""

import argparse
from datetime import datetime, timedelta
from pathlib import Path
from typing import List

import numpy as np


def generate_tick_lines(
    start_utc: datetime,
    count: int,
    base_price: float = 21700.0,
    tick_size: float = 0.05,
    volatility_ticks: float = 3.0,
    burst_probability: float = 0.02,
    seed: int = 42
) -> List[str]:
    """
    Generate tick file lines.

    Args:
        start_utc: Timestamp of the first tick (UTC, as NinjaTrader writes it)
        count: Number of ticks
        base_price: Starting price
        tick_size: Price increment; prices stay on the tick grid
        volatility_ticks: Std dev of a price step, in ticks
        burst_probability: Chance of entering a burst (fast, volatile ticks)
        seed: Random seed

    Returns:
        Lines formatted as ``yyyyMMdd HHmmss fffffff;last;bid;ask;volume``
    """
    rng = np.random.default_rng(seed)
    lines = []
    price_ticks = round(base_price / tick_size)
    ts = start_utc
    burst_left = 0

    for _ in range(count):
        if burst_left == 0 and rng.random() < burst_probability:
            burst_left = int(rng.integers(20, 80))

        if burst_left:
            burst_left -= 1
            step = rng.normal(0, volatility_ticks * 3)
            gap_ms = int(rng.integers(0, 150))
        else:
            step = rng.normal(0, volatility_ticks)
            gap_ms = int(rng.exponential(700))

        price_ticks = max(1, price_ticks + int(round(step)))
        ts = ts + timedelta(milliseconds=gap_ms)

        last = price_ticks * tick_size
        bid = last - tick_size
        ask = last + tick_size
        volume = int(rng.integers(1, 10)) * 25

        fraction = f"{ts.microsecond * 10:07d}"
        lines.append(
            f"{ts:%Y%m%d %H%M%S} {fraction};{last:.2f};{bid:.2f};{ask:.2f};{volume}"
        )

    return lines


def main():
    parser = argparse.ArgumentParser(description="Generate a synthetic NinjaTrader tick file")
    parser.add_argument('--output', default='data/ticks/NIFTY_I.Last.txt', help='Output file')
    parser.add_argument('--count', type=int, default=20000, help='Number of ticks')
    parser.add_argument('--seed', type=int, default=42, help='Random seed')
    args = parser.parse_args()

    print("Generating sample tick data...")

    lines = generate_tick_lines(
        start_utc=datetime(2024, 1, 2, 3, 45),  # 09:15 IST
        count=args.count,
        seed=args.seed
    )

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text("\n".join(lines) + "\n")

    print(f"✓ Saved to: {output}")
    print(f"  Ticks: {len(lines)}")
    print(f"  First: {lines[0]}")
    print(f"  Last:  {lines[-1]}")


if __name__ == "__main__":
    main()
