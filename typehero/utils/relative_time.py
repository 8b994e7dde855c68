"""Human readable relative timestamps ("3 minutes ago")."""

from datetime import UTC, datetime


MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR
WEEK = 7 * DAY
MONTH = 30 * DAY
YEAR = 365 * DAY

# (upper bound in seconds, unit length in seconds, unit name)
_UNITS: list[tuple[int, int, str]] = [
    (HOUR, MINUTE, "minute"),
    (DAY, HOUR, "hour"),
    (WEEK, DAY, "day"),
    (MONTH, WEEK, "week"),
    (YEAR, MONTH, "month"),
]


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def relative_time(dt: datetime, now: datetime | None = None) -> str:
    """Describe how long ago ``dt`` was.

    Naive datetimes are treated as UTC. Future timestamps (clock skew)
    read as "just now".

    >>> base = datetime(2024, 5, 10, 12, 0, tzinfo=UTC)
    >>> relative_time(datetime(2024, 5, 10, 11, 55, tzinfo=UTC), now=base)
    '5 minutes ago'
    >>> relative_time(datetime(2024, 5, 9, 9, 0, tzinfo=UTC), now=base)
    'yesterday'
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    now = now or datetime.now(UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    seconds = int((now - dt).total_seconds())
    if seconds < MINUTE:
        return "just now"

    for bound, unit_seconds, unit in _UNITS:
        if seconds < bound:
            count = seconds // unit_seconds
            if unit == "day" and count == 1:
                return "yesterday"
            return f"{_plural(count, unit)} ago"

    return f"{_plural(seconds // YEAR, 'year')} ago"
