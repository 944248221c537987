"""
Shared pytest fixtures for tickbars tests.
"""

import logging
from datetime import datetime, timedelta

import pytest

from tickbars.core.types import Tick


@pytest.fixture(autouse=True)
def reset_package_logger():
    """
    Undo setup_logger() after each test.

    Handlers installed by the CLI hold on to the captured stdout of the
    test that created them.
    """
    yield
    logger = logging.getLogger("tickbars")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def base_time():
    """Session open used as the time origin for synthetic ticks."""
    return datetime(2024, 1, 2, 9, 15, 0)


@pytest.fixture
def make_tick(base_time):
    """Factory for ticks offset from base_time by a number of seconds."""
    def _make(price: float, seconds: float = 0.0, symbol: str = "X", volume: int = 1) -> Tick:
        return Tick(
            symbol=symbol,
            timestamp=base_time + timedelta(seconds=seconds),
            price=price,
            volume=volume
        )
    return _make
