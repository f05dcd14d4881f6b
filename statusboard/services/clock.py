"""Time sources used for scheduling and result timestamps."""
from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """Source of "now" for due-ness checks and timestamps."""

    def now(self) -> datetime:
        """Return the current aware UTC time; never goes backwards."""
        ...


class SystemClock:
    """Wall clock anchored once, then advanced by ``time.monotonic``.

    Wall-clock adjustments after startup cannot move it backwards.
    """

    def __init__(self) -> None:
        self._origin = datetime.now(timezone.utc)
        self._mono = time.monotonic()

    def now(self) -> datetime:
        return self._origin + timedelta(seconds=time.monotonic() - self._mono)
