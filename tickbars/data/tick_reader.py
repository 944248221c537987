"""
Tick Reader - Parses NinjaTrader "Last" tick exports.

Line format:
    yyyyMMdd HHmmss fffffff;last;bid;ask;volume

Timestamps in the file are UTC; parsed ticks carry timestamps converted
into the exchange time zone (IST by default) so minute buckets follow
exchange clock minutes.
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

import pytz

from ..core.types import Tick
from ..core.constants import DEFAULT_TIMEZONE
from ..core.exceptions import DataValidationError, MissingDataError, TickParseError
from ..monitoring.logger import get_logger

logger = get_logger(__name__)

MAX_REPORTED_ERRORS = 5


def parse_line(line: str, symbol: str = "", tz: Union[str, pytz.BaseTzInfo] = DEFAULT_TIMEZONE) -> Tick:
    """
    Parse one line of a NinjaTrader tick file.

    Args:
        line: Raw line
        symbol: Symbol assigned to the tick
        tz: Target time zone (name or pytz zone)

    Returns:
        Tick with a timezone-aware timestamp in `tz`

    Raises:
        TickParseError: malformed line
    """
    if line is None or not line.strip():
        raise TickParseError("Line cannot be empty")

    parts = line.strip().split(';')
    if len(parts) < 5:
        raise TickParseError("Invalid tick data format", line=line.strip())

    timestamp_parts = parts[0].split(' ')
    if len(timestamp_parts) != 3:
        raise TickParseError("Invalid timestamp format", value=parts[0])

    date_part, time_part, fraction_part = timestamp_parts

    if len(date_part) != 8 or not date_part.isdigit():
        raise TickParseError("Invalid date format", value=date_part)

    if len(time_part) != 6 or not time_part.isdigit():
        raise TickParseError("Invalid time format", value=time_part)

    # 7 fraction digits (100ns); only milliseconds are kept
    millisecond = 0
    if len(fraction_part) >= 3:
        if not fraction_part[:3].isdigit():
            raise TickParseError("Invalid fraction format", value=fraction_part)
        millisecond = int(fraction_part[:3])

    try:
        utc_timestamp = datetime(
            int(date_part[0:4]), int(date_part[4:6]), int(date_part[6:8]),
            int(time_part[0:2]), int(time_part[2:4]), int(time_part[4:6]),
            millisecond * 1000,
            tzinfo=pytz.utc
        )
    except ValueError as e:
        raise TickParseError(f"Invalid timestamp: {e}", value=parts[0]) from e

    zone = pytz.timezone(tz) if isinstance(tz, str) else tz

    try:
        price = float(parts[1])
        volume = int(parts[4])
    except ValueError as e:
        raise TickParseError(f"Invalid price or volume: {e}", line=line.strip()) from e

    try:
        return Tick(
            symbol=symbol,
            timestamp=utc_timestamp.astimezone(zone),
            price=price,
            volume=volume
        )
    except DataValidationError as e:
        raise TickParseError(str(e), line=line.strip()) from e


def read_ticks(
    filepath: Union[str, Path],
    symbol: str,
    tz: Union[str, pytz.BaseTzInfo] = DEFAULT_TIMEZONE,
    strict: bool = False,
    limit: Optional[int] = None
) -> List[Tick]:
    """
    Load ticks from a NinjaTrader tick file.

    Blank lines are ignored. Malformed lines are skipped and counted
    (the first few are logged in detail) unless strict is set.

    Args:
        filepath: Path to the tick file
        symbol: Symbol assigned to every tick
        tz: Target time zone
        strict: Raise on the first malformed line
        limit: Stop after this many ticks

    Returns:
        Ticks sorted by timestamp

    Raises:
        MissingDataError: file does not exist
        TickParseError: malformed line in strict mode
    """
    path = Path(filepath)
    if not path.exists():
        raise MissingDataError(f"Tick data file not found: {path}")

    zone = pytz.timezone(tz) if isinstance(tz, str) else tz
    ticks: List[Tick] = []
    error_count = 0

    with open(path, 'r') as f:
        for line_number, line in enumerate(f, start=1):
            if not line.strip():
                continue

            try:
                ticks.append(parse_line(line, symbol, zone))
            except TickParseError as e:
                if strict:
                    e.context['line_number'] = line_number
                    raise
                error_count += 1
                if error_count <= MAX_REPORTED_ERRORS:
                    logger.warning("Error parsing tick line", line_number=line_number, error=str(e))

            if limit is not None and len(ticks) >= limit:
                break

    if error_count:
        logger.warning("Tick parse errors", total=error_count, path=str(path))

    logger.info("Loaded ticks", count=len(ticks), symbol=symbol, path=str(path))

    return sorted(ticks, key=lambda t: t.timestamp)
