"""UTC time source.

Services take a `Clock` so tests can pin "now"; production uses `utc_now`.
"""

from collections.abc import Callable
from datetime import datetime, timezone

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def epoch_millis(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)
