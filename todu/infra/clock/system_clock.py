from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from todu.domain.common.ports import Clock


class SystemClock(Clock):
    def __init__(self, tz_name: str) -> None:
        self._tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def local_now(self) -> datetime:
        """Server-local time; day boundaries and daily jobs use this."""
        return datetime.now(self._tz)
