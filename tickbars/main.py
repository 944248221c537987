"""
Main Entry Point - Converts a tick file into minute and Range ATR bars.

Pipeline:
1. Load configuration (YAML)
2. Read ticks from a NinjaTrader tick export
3. Feed every tick through the bar engine
4. Flush open bars at end of stream
5. Export ticks, minute bars, Range ATR bars and a summary report

Usage:
    python -m tickbars.main --ticks data/NIFTY_I.Last.txt --symbol NIFTY
"""

import argparse
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from tickbars.core.config import AppConfig, DEFAULT_CONFIG_PATH, load_config
from tickbars.core.exceptions import TickBarsError, MissingConfigError
from tickbars.data.bar_engine import BarEngine
from tickbars.data.data_validator import DataValidator
from tickbars.data.tick_reader import read_ticks
from tickbars.data import exporter
from tickbars.monitoring.logger import get_logger, setup_logger

MINUTE_PROGRESS_EVERY = 100
RANGE_PROGRESS_EVERY = 50


class TickDataProcessor:
    """
    Processing run orchestrator.

    Wires the tick reader, bar engine and exporters together for one
    input file.
    """

    def __init__(self, config: AppConfig, log_level: Optional[str] = None):
        """
        Args:
            config: Loaded application configuration
            log_level: Overrides the configured log level
        """
        self.config = config

        setup_logger(log_file=config.log_file, level=log_level or config.log_level)
        self.logger = get_logger(__name__)

        self.engine = BarEngine(
            range_config=config.range_atr,
            tick_sizes=config.tick_sizes,
            default_tick_size=config.default_tick_size,
            validator=DataValidator(spike_threshold_std=config.spike_threshold_std)
        )
        self.engine.add_minute_listener(self._on_minute_bar)
        self.engine.add_range_listener(self._on_range_bar)

        self._minute_count = 0
        self._range_count = 0

    def run(self, tick_file: str, symbol: str, output_dir: Optional[str] = None) -> Dict[str, Path]:
        """
        Process a tick file end to end.

        Returns:
            Paths of the files written, keyed by kind
        """
        self.logger.info("=" * 60)
        self.logger.info("Tick data processing started", file=tick_file, symbol=symbol)
        self.logger.info("=" * 60)

        ticks = read_ticks(tick_file, symbol, tz=self.config.timezone)
        if not ticks:
            self.logger.warning("No ticks loaded", file=tick_file)
            return {}

        accepted = self.engine.process_ticks(ticks)
        self.engine.flush()

        minute_bars = self.engine.get_minute_bars()
        range_bars = self.engine.get_range_bars()
        self.logger.info(
            "Aggregation complete",
            ticks=len(ticks),
            accepted=accepted,
            minute_bars=len(minute_bars),
            range_bars=len(range_bars),
            tick_size=self.engine.get_tick_size(symbol)
        )

        summary = exporter.summarize(ticks, minute_bars, range_bars)
        outputs = self._export(
            ticks, minute_bars, range_bars, summary, symbol,
            output_dir or self.config.output_dir
        )

        for line in exporter.format_summary(summary):
            print(line)

        return outputs

    def _export(self, ticks, minute_bars, range_bars, summary, symbol: str, output_dir: str) -> Dict[str, Path]:
        out = Path(output_dir)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")

        outputs = {
            'ticks': out / f"{symbol}_Ticks_{stamp}.csv",
            'minute_bars': out / f"{symbol}_MinuteBars_{stamp}.csv",
            'range_bars': out / f"{symbol}_RangeATRBars_{stamp}.csv",
            'summary': out / f"{symbol}_Summary_{stamp}.txt",
        }

        exporter.export_ticks(ticks, outputs['ticks'])
        exporter.export_minute_bars(minute_bars, outputs['minute_bars'])
        exporter.export_range_bars(range_bars, outputs['range_bars'])
        exporter.write_summary_report(summary, outputs['summary'])

        return outputs

    def _on_minute_bar(self, bar) -> None:
        self._minute_count += 1
        if self._minute_count % MINUTE_PROGRESS_EVERY == 0:
            self.logger.info("Minute bars processed", count=self._minute_count)

    def _on_range_bar(self, bar) -> None:
        self._range_count += 1
        if self._range_count % RANGE_PROGRESS_EVERY == 0:
            self.logger.info("Range ATR bars processed", count=self._range_count)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tick to minute / Range ATR bar converter")
    parser.add_argument('--ticks', required=True, help='NinjaTrader tick file')
    parser.add_argument('--symbol', default='NIFTY', help='Symbol assigned to the ticks')
    parser.add_argument('--config', default=DEFAULT_CONFIG_PATH, help='Configuration file path')
    parser.add_argument('--output', default=None, help='Output directory (overrides config)')
    parser.add_argument('--tick-size', type=float, default=None, help='Tick size for the symbol')
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default=None,
        help='Log level (overrides config)'
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        try:
            config = load_config(args.config)
        except MissingConfigError:
            if args.config != DEFAULT_CONFIG_PATH:
                raise
            config = AppConfig()

        if args.tick_size is not None:
            tick_sizes = dict(config.tick_sizes)
            tick_sizes[args.symbol] = args.tick_size
            config = replace(config, tick_sizes=tick_sizes)

        processor = TickDataProcessor(config, log_level=args.log_level)
        processor.run(args.ticks, args.symbol, args.output)

    except TickBarsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
