"""
Local calendar helpers.

The store keeps absolute UTC instants; reports bucket by the
organisation's local calendar day.  Local time is UTC plus a fixed
number of hours.  There is no DST handling: the organisation operates
in a single fixed-offset zone.
"""

from __future__ import annotations

import calendar
from collections.abc import Callable
from datetime import date, datetime, time, timedelta, timezone

from cleantrack.core.exceptions import InvalidRequestError

ONE_DAY = timedelta(days=1)


def ensure_utc(dt: datetime) -> datetime:
    """Normalise a potentially-naive timestamp to UTC-aware."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_hhmm(value: str) -> time:
    hours, minutes = value.strip().split(":")
    return time(int(hours), int(minutes))


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LocalClock:
    """Conversions between UTC instants and the local calendar."""

    def __init__(
        self,
        offset_hours: int = 9,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.offset = timedelta(hours=offset_hours)
        self._now = now or _utc_now

    @classmethod
    def from_settings(cls, config, now: Callable[[], datetime] | None = None) -> LocalClock:
        return cls(config.UTC_OFFSET_HOURS, now=now)

    # ── Current time ────────────────────────────────────────────────
    def now(self) -> datetime:
        return ensure_utc(self._now())

    def today(self) -> date:
        return self.local_date(self.now())

    # ── Instant -> local calendar ───────────────────────────────────
    def local_datetime(self, instant: datetime) -> datetime:
        """Wall-clock local time as a naive datetime."""
        return (ensure_utc(instant) + self.offset).replace(tzinfo=None)

    def local_date(self, instant: datetime) -> date:
        return self.local_datetime(instant).date()

    def to_local_date_string(self, instant: datetime) -> str:
        return self.local_date(instant).isoformat()

    def local_time_string(self, instant: datetime) -> str:
        return self.local_datetime(instant).strftime("%H:%M")

    def local_day_start(self, instant: datetime) -> datetime:
        """UTC instant of local midnight of the day containing *instant*."""
        return self.day_start(self.local_date(instant))

    # ── Local calendar -> instant ───────────────────────────────────
    # Days at the edges of the datetime range have no UTC bounds and
    # are rejected as invalid input.
    def day_start(self, day: date) -> datetime:
        try:
            midnight = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
            return midnight - self.offset
        except OverflowError:
            raise InvalidRequestError(f"Date {day.isoformat()} is out of range") from None

    def day_bounds(self, day: date) -> tuple[datetime, datetime]:
        """Half-open ``[start, end)`` UTC range covering the local day."""
        start = self.day_start(day)
        try:
            return start, start + ONE_DAY
        except OverflowError:
            raise InvalidRequestError(f"Date {day.isoformat()} is out of range") from None

    def month_bounds(self, year: int, month: int) -> tuple[datetime, datetime]:
        try:
            first = date(year, month, 1)
            last = date(year, month, days_in_month(year, month))
        except ValueError:
            raise InvalidRequestError(f"Month {year}-{month:02d} is out of range") from None
        return self.day_start(first), self.day_bounds(last)[1]

    def year_bounds(self, year: int) -> tuple[datetime, datetime]:
        try:
            first, next_first = date(year, 1, 1), date(year + 1, 1, 1)
        except ValueError:
            raise InvalidRequestError(f"Year {year} is out of range") from None
        return self.day_start(first), self.day_start(next_first)

    def at_local_time(self, day: date, hhmm: str | time) -> datetime:
        t = parse_hhmm(hhmm) if isinstance(hhmm, str) else hhmm
        return self.day_start(day) + timedelta(hours=t.hour, minutes=t.minute)

    def local_noon(self, day: date) -> datetime:
        # Noon keeps generated events well inside the local day.
        return self.day_start(day) + timedelta(hours=12)

    # ── Period keys ─────────────────────────────────────────────────
    def day_key(self, instant: datetime) -> str:
        return self.to_local_date_string(instant)

    def week_key(self, instant: datetime) -> str:
        """ISO-8601 week key, e.g. ``2025-W01``.

        Uses the ISO year so that 2024-12-30 falls in ``2025-W01``.
        """
        iso_year, iso_week, _ = self.local_date(instant).isocalendar()
        return f"{iso_year}-W{iso_week:02d}"

    def month_key(self, instant: datetime) -> str:
        return self.local_date(instant).strftime("%Y-%m")

    def year_key(self, instant: datetime) -> str:
        return f"{self.local_date(instant).year:04d}"
