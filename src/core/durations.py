# src/core/durations.py

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?")


def _duration_parts(token: Optional[str]):
    if not token or not isinstance(token, str):
        return 0, 0
    match = DURATION_RE.match(token)
    if not match:
        logger.warning("Malformed duration token %r, treating as 0 minutes", token)
        return 0, 0
    return int(match.group(1) or 0), int(match.group(2) or 0)


def parse_duration_minutes(token: Optional[str]) -> int:
    """
    Parse interval tokens like 'PT6H30M', 'PT2H' or 'PT45M' into total minutes.

    Missing components count as zero and a token that does not match at all
    yields 0. This never raises: one bad record must not abort a whole batch.
    """
    hours, minutes = _duration_parts(token)
    return hours * 60 + minutes


def format_minutes(total_minutes: int) -> str:
    hours, minutes = divmod(max(0, int(total_minutes)), 60)
    return f"{hours}h {minutes}m" if hours else f"{minutes}m"


def format_duration(token: Optional[str]) -> str:
    """'PT2H5M' -> '2h 5m', 'PT45M' -> '45m'. Zero hours are never shown."""
    hours, minutes = _duration_parts(token)
    return f"{hours}h {minutes}m" if hours else f"{minutes}m"


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse Amadeus datetime strings like:
      - '2026-02-15T10:30:00'
      - '2026-02-15T10:30:00Z'
      - '2026-02-15T10:30:00+00:00'
    """
    if not value:
        return None
    try:
        v = str(value).replace("Z", "+00:00")
        return datetime.fromisoformat(v)
    except ValueError:
        logger.warning("Unparseable timestamp %r", value)
        return None


def time_of_day_minutes(timestamp: Union[datetime, str, None]) -> int:
    """
    Minutes since local midnight of the timestamp as given.

    No timezone conversion happens: the upstream API already reports local
    airport time.
    """
    if isinstance(timestamp, str):
        timestamp = parse_timestamp(timestamp)
    if timestamp is None:
        return 0
    return timestamp.hour * 60 + timestamp.minute


def format_time_of_day(minutes: int) -> str:
    hours, mins = divmod(max(0, int(minutes)) % (24 * 60), 60)
    return f"{hours:02d}:{mins:02d}"


def shift_date(day: date, days: int) -> date:
    return day + timedelta(days=days)


def date_window(day: date, radius: int) -> List[date]:
    """Dates from `radius` days before to `radius` days after `day`, inclusive."""
    radius = max(0, int(radius))
    return [shift_date(day, delta) for delta in range(-radius, radius + 1)]
