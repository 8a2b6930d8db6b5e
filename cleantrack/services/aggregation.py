"""
Usage aggregation: pure reducers over ledger events.

Every function takes already-loaded rows (events, overrides, owners)
and returns plain dataclasses.  Nothing here touches the database and
nothing here raises on empty or inconsistent input: events whose owner
cannot be resolved land in a fallback bucket so that every view sums
to the same grand total.

All bucket keys derive from the event's *local* calendar date; the same
rule is used for day, week, month and year keys.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from cleantrack.core.clock import LocalClock, days_in_month
from cleantrack.models.disposal import CATEGORY_CHAIN, Category, reporting_category
from cleantrack.models.override import parse_override_value

Number = int | float


class Granularity(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


@dataclass
class Counts:
    count_a: Number = 0
    count_b: Number = 0

    @property
    def total(self) -> Number:
        return self.count_a + self.count_b

    def add(self, category: Category, amount: Number = 1) -> None:
        if category is Category.A:
            self.count_a += amount
        else:
            self.count_b += amount


@dataclass
class PeriodBucket:
    key: str
    count_a: int
    count_b: int
    total: int


@dataclass
class AreaBucket:
    area: str
    count_a: int
    count_b: int
    total: int


@dataclass
class DayCell:
    count_a: Number = 0
    count_b: Number = 0
    display_a: Number | str = 0
    display_b: Number | str = 0


@dataclass
class DailyUserRow:
    owner_id: int | None
    owner_name: str
    area: str
    daily: list[DayCell]
    total_a: Number = 0
    total_b: Number = 0


@dataclass
class MonthCell:
    count_a: int = 0
    count_b: int = 0


@dataclass
class MonthlyUserRow:
    owner_id: int | None
    owner_name: str
    area: str
    monthly: list[MonthCell] = field(default_factory=list)
    total_a: int = 0
    total_b: int = 0


@dataclass(frozen=True)
class AreaRules:
    """Fallback labels for events without a resolvable owner."""

    admin_label: str
    admin_area: str
    unknown_area: str

    @classmethod
    def from_settings(cls, config) -> AreaRules:
        return cls(config.ADMIN_LABEL, config.ADMIN_AREA, config.UNKNOWN_AREA)


# ── Helpers ─────────────────────────────────────────────────────────
def _owner_index(owners: Iterable[Any]) -> dict[int, Any]:
    return {o.id: o for o in owners}


def _owner_area(owner: Any, rules: AreaRules) -> str:
    return owner.area or rules.unknown_area


def _fallback_area(event: Any, rules: AreaRules) -> str:
    if event.owner_label and event.owner_label == rules.admin_label:
        return rules.admin_area
    return rules.unknown_area


def _resolve_area(event: Any, index: dict[int, Any], rules: AreaRules) -> str:
    owner = index.get(event.owner_id) if event.owner_id is not None else None
    if owner is not None:
        return _owner_area(owner, rules)
    return _fallback_area(event, rules)


def _countable(events: Iterable[Any]) -> Iterable[tuple[Any, Category]]:
    """Yield ``(event, A|B)``; legacy rows fold into A, unknown ones are skipped."""
    for event in events:
        category = reporting_category(event.category)
        if category is not None:
            yield event, category


def _period_key(clock: LocalClock, granularity: Granularity, instant) -> str:
    if granularity is Granularity.DAY:
        return clock.day_key(instant)
    if granularity is Granularity.WEEK:
        return clock.week_key(instant)
    if granularity is Granularity.MONTH:
        return clock.month_key(instant)
    return clock.year_key(instant)


# ── Totals ──────────────────────────────────────────────────────────
def usage_totals(events: Iterable[Any]) -> Counts:
    counts = Counts()
    for _event, category in _countable(events):
        counts.add(category)
    return counts


# ── Period aggregation ──────────────────────────────────────────────
def aggregate_by_period(
    events: Iterable[Any],
    granularity: Granularity | str,
    clock: LocalClock,
) -> list[PeriodBucket]:
    """Bucket events by local day / ISO week / month / year, oldest first."""
    granularity = Granularity(granularity)
    buckets: dict[str, Counts] = defaultdict(Counts)
    for event, category in _countable(events):
        buckets[_period_key(clock, granularity, event.instant)].add(category)

    return [
        PeriodBucket(key=key, count_a=c.count_a, count_b=c.count_b, total=c.total)
        for key, c in sorted(buckets.items())
    ]


# ── Area aggregation ────────────────────────────────────────────────
def aggregate_by_area(
    events: Iterable[Any],
    owners: Iterable[Any],
    rules: AreaRules,
) -> list[AreaBucket]:
    """Bucket events by their owner's area, busiest area first."""
    index = _owner_index(owners)
    buckets: dict[str, Counts] = defaultdict(Counts)
    for event, category in _countable(events):
        buckets[_resolve_area(event, index, rules)].add(category)

    rows = [
        AreaBucket(area=area, count_a=c.count_a, count_b=c.count_b, total=c.total)
        for area, c in buckets.items()
    ]
    rows.sort(key=lambda r: (-r.total, r.area))
    return rows


# ── Per-owner daily matrix ──────────────────────────────────────────
def _override_lookup(overrides: Iterable[Any]) -> dict[tuple[str, int, str], Any]:
    return {(o.day, o.owner_id, o.category): o for o in overrides}


def resolve_cell(
    raw: Number,
    day: str,
    owner_id: int,
    category: Category,
    lookup: dict[tuple[str, int, str], Any],
) -> tuple[Number, Number | str]:
    """Apply the override chain to one cell; return ``(count, display)``.

    A numeric override replaces the raw count.  A label override is
    shown as-is and counts as zero.  Without an override both equal
    the raw count.
    """
    for key in CATEGORY_CHAIN[category]:
        override = lookup.get((day, owner_id, key.value))
        if override is None:
            continue
        value = parse_override_value(override.value)
        if isinstance(value, str):
            return 0, value
        return value, value
    return raw, raw


def _sort_rows(rows: list, fallback: list) -> list:
    rows.sort(key=lambda r: (r.area, r.owner_name))
    fallback.sort(key=lambda r: r.area)
    return rows + fallback


def daily_user_stats(
    events: Iterable[Any],
    overrides: Iterable[Any],
    owners: Sequence[Any],
    year: int,
    month: int,
    clock: LocalClock,
    rules: AreaRules,
) -> list[DailyUserRow]:
    """One row per owner with a cell per day of *month*.

    Events outside the month are ignored.  Events of unresolved owners
    are collected into trailing rows (``owner_id=None``) keyed by their
    fallback area; overrides do not apply to those rows.
    """
    n_days = days_in_month(year, month)
    index = _owner_index(owners)

    raw: dict[int, dict[int, Counts]] = defaultdict(lambda: defaultdict(Counts))
    orphans: dict[str, dict[int, Counts]] = defaultdict(lambda: defaultdict(Counts))
    for event, category in _countable(events):
        local = clock.local_date(event.instant)
        if local.year != year or local.month != month:
            continue
        if event.owner_id is not None and event.owner_id in index:
            raw[event.owner_id][local.day].add(category)
        else:
            orphans[_fallback_area(event, rules)][local.day].add(category)

    lookup = _override_lookup(overrides)
    rows: list[DailyUserRow] = []
    for owner in owners:
        row = DailyUserRow(
            owner_id=owner.id,
            owner_name=owner.name,
            area=_owner_area(owner, rules),
            daily=[],
        )
        owner_days = raw.get(owner.id, {})
        for day_no in range(1, n_days + 1):
            day = f"{year:04d}-{month:02d}-{day_no:02d}"
            counts = owner_days.get(day_no, Counts())
            count_a, display_a = resolve_cell(counts.count_a, day, owner.id, Category.A, lookup)
            count_b, display_b = resolve_cell(counts.count_b, day, owner.id, Category.B, lookup)
            row.daily.append(DayCell(count_a, count_b, display_a, display_b))
            row.total_a += count_a
            row.total_b += count_b
        rows.append(row)

    fallback: list[DailyUserRow] = []
    for area, days in orphans.items():
        row = DailyUserRow(owner_id=None, owner_name=area, area=area, daily=[])
        for day_no in range(1, n_days + 1):
            counts = days.get(day_no, Counts())
            row.daily.append(DayCell(counts.count_a, counts.count_b, counts.count_a, counts.count_b))
            row.total_a += counts.count_a
            row.total_b += counts.count_b
        fallback.append(row)

    return _sort_rows(rows, fallback)


# ── Per-owner monthly matrix ────────────────────────────────────────
def monthly_user_stats(
    events: Iterable[Any],
    owners: Sequence[Any],
    year: int,
    clock: LocalClock,
    rules: AreaRules,
) -> list[MonthlyUserRow]:
    """One row per owner with a cell per month of *year*; no overrides."""
    index = _owner_index(owners)
    per_owner: dict[int, list[MonthCell]] = {o.id: [MonthCell() for _ in range(12)] for o in owners}
    orphans: dict[str, list[MonthCell]] = {}

    for event, category in _countable(events):
        local = clock.local_date(event.instant)
        if local.year != year:
            continue
        if event.owner_id is not None and event.owner_id in index:
            cells = per_owner[event.owner_id]
        else:
            cells = orphans.setdefault(
                _fallback_area(event, rules), [MonthCell() for _ in range(12)]
            )
        cell = cells[local.month - 1]
        if category is Category.A:
            cell.count_a += 1
        else:
            cell.count_b += 1

    def _row(owner_id, name, area, cells) -> MonthlyUserRow:
        return MonthlyUserRow(
            owner_id=owner_id,
            owner_name=name,
            area=area,
            monthly=cells,
            total_a=sum(c.count_a for c in cells),
            total_b=sum(c.count_b for c in cells),
        )

    rows = [_row(o.id, o.name, _owner_area(o, rules), per_owner[o.id]) for o in owners]
    fallback = [_row(None, area, area, cells) for area, cells in orphans.items()]
    return _sort_rows(rows, fallback)
