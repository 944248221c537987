"""tickbars - tick-to-bar aggregation (minute bars and Range ATR bars)."""

__version__ = "0.1.0"
