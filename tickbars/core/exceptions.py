"""Exception hierarchy for the bar aggregation system.

All custom exceptions inherit from TickBarsError so callers can catch any
aggregation related failure with a single except clause.
"""

from typing import Any, Dict


class TickBarsError(Exception):
    """Base exception for all tickbars errors.

    Carries optional keyword context that is appended to the message,
    which keeps log lines and tracebacks self-describing.
    """

    def __init__(self, message: str, **context: Any):
        """Initialize the exception with a message and optional context.

        Args:
            message: Error message describing what went wrong
            **context: Additional context information for logging and debugging
        """
        super().__init__(message)
        self.context: Dict[str, Any] = context

    def __str__(self) -> str:
        """Return string representation including context."""
        if self.context:
            ctx = ', '.join(f'{k}={v}' for k, v in self.context.items())
            return f"{super().__str__()} [{ctx}]"
        return super().__str__()


# ============================================================================
# Configuration Exceptions
# ============================================================================

class InvalidConfigError(TickBarsError):
    """Raised when configuration contains invalid values.

    Covers aggregator parameters out of range (lookback < 1, negative
    minimum time) and a non-positive tick size passed per call.
    """


class MissingConfigError(TickBarsError):
    """Raised when the configuration file or a required section is missing."""


class ConfigValidationError(TickBarsError):
    """Raised when configuration has the wrong structure or value types."""


# ============================================================================
# Data Exceptions
# ============================================================================

class DataValidationError(TickBarsError):
    """Raised when tick data fails validation.

    Examples are a NaN or non-positive price, a negative volume, or an
    empty symbol.
    """


class OutOfOrderTickError(DataValidationError):
    """Raised when a tick is older than the open bar for its symbol.

    Aggregators reject such ticks without touching their state.
    """


class TickParseError(DataValidationError):
    """Raised when a line of a tick file cannot be parsed."""


class InvalidBarError(TickBarsError):
    """Raised when a price bar violates the OHLC invariants.

    High must be at least max(open, close), low at most min(open, close).
    """


class MissingDataError(TickBarsError):
    """Raised when data for a requested symbol is not available."""
