"""Monitoring module for logging."""

from .logger import get_logger, setup_logger, StructuredLogger

__all__ = [
    "get_logger",
    "setup_logger",
    "StructuredLogger",
]
