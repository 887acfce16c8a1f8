from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo


@dataclass(frozen=True, slots=True)
class TimeProvider:
    timezone: str = "UTC"

    def today(self) -> date:
        tz = ZoneInfo(self.timezone)
        return datetime.now(tz=tz).date()

    def current_year(self) -> int:
        # events are keyed by the local calendar year
        return self.today().year

    def utcnow(self) -> datetime:
        # naive UTC, matches DateTime(timezone=False) columns
        return datetime.now(timezone.utc).replace(tzinfo=None)
