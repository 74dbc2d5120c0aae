"""Time helpers.

Services take a ``clock`` callable so tests can pin "now"; production code
uses ``utc_now``.
"""

from collections.abc import Callable
from datetime import UTC, datetime


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by Cassandra) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
