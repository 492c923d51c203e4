"""
Date/time helpers, framework-agnostic.

The session store takes a ``Clock`` instead of calling ``datetime.now``
directly so that tests can freeze and advance time.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def seconds_until(
    moment: Optional[datetime], now: datetime, *, round_up: bool = False
) -> int:
    """Whole seconds from *now* until *moment*, floored at zero.

    ``round_up`` is for waits shown to a user: 0.2s left reads as 1s, not 0.
    Returns ``0`` when *moment* is ``None`` or already in the past.
    """
    if moment is None:
        return 0
    remaining = (moment - now).total_seconds()
    if remaining <= 0:
        return 0
    return math.ceil(remaining) if round_up else int(remaining)


def to_iso(moment: Optional[datetime]) -> Optional[str]:
    """ISO 8601 string in UTC, or ``None``."""
    if moment is None:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat()
