from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timezone

PERIOD_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so mixed inputs stay comparable."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True, slots=True)
class BillingWindow:
    """Half-open ``[start, end)`` interval used for period aggregation."""

    start: datetime
    end: datetime
    period_month: str

    @classmethod
    def for_month(cls, period: str) -> "BillingWindow":
        match = PERIOD_PATTERN.match(period or "")
        if not match:
            raise ValueError(f"period must look like YYYY-MM, got {period!r}")
        year, month = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12:
            raise ValueError(f"month out of range in period {period!r}")
        start = datetime(year, month, 1, tzinfo=timezone.utc)
        if month == 12:
            end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
        else:
            end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
        return cls(start=start, end=end, period_month=period)

    def contains(self, moment: datetime | None) -> bool:
        if moment is None:
            return False
        return self.start <= as_utc(moment) < self.end

    def contains_date(self, day: date | None) -> bool:
        if day is None:
            return False
        return self.contains(datetime.combine(day, time.min))
