"""Structured logging for the bar aggregation system."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional, Union


LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class StructuredLogger:
    """
    Logger wrapper with keyword argument support.

    Keyword arguments are rendered as ``key=value`` pairs after the
    message, e.g. ``Bar completed | symbol=NIFTY | ticks=42``.
    """

    def __init__(self, name: str):
        """
        Initialize structured logger.

        Args:
            name: Logger name (typically __name__)
        """
        self.logger = logging.getLogger(name)

    def _format_message(self, msg: str, **kwargs) -> str:
        """Format message with keyword arguments."""
        if kwargs:
            extra = ' | '.join(f'{k}={v}' for k, v in kwargs.items())
            return f"{msg} | {extra}"
        return msg

    def debug(self, msg: str, **kwargs) -> None:
        """Log debug message."""
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(self._format_message(msg, **kwargs))

    def info(self, msg: str, **kwargs) -> None:
        """Log info message."""
        self.logger.info(self._format_message(msg, **kwargs))

    def warning(self, msg: str, **kwargs) -> None:
        """Log warning message."""
        self.logger.warning(self._format_message(msg, **kwargs))

    def error(self, msg: str, exc_info: bool = False, **kwargs) -> None:
        """Log error message."""
        self.logger.error(self._format_message(msg, **kwargs), exc_info=exc_info)

    def critical(self, msg: str, **kwargs) -> None:
        """Log critical message."""
        self.logger.critical(self._format_message(msg, **kwargs))


_loggers = {}


def get_logger(name: str) -> StructuredLogger:
    """
    Get or create a structured logger.

    Args:
        name: Logger name (typically __name__)

    Returns:
        StructuredLogger instance
    """
    if name not in _loggers:
        _loggers[name] = StructuredLogger(name)
    return _loggers[name]


def setup_logger(
    log_file: Optional[str] = None,
    level: Union[int, str] = logging.INFO,
    name: str = "tickbars"
) -> logging.Logger:
    """
    Configure console and rotating file handlers for the package logger.

    Safe to call more than once; existing handlers are replaced.

    Args:
        log_file: Path of the rotating log file (None for console only)
        level: Logging level name or number
        name: Root logger name for the package

    Returns:
        The configured stdlib logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger(name)
    root.setLevel(level)

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    # Console Handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    # File Handler
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10*1024*1024, # 10MB
            backupCount=5
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    return root
