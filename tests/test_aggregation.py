"""Tests for the pure usage reducers."""

from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest

from cleantrack.core.clock import LocalClock
from cleantrack.services.aggregation import (AreaRules, Granularity,
                                             aggregate_by_area,
                                             aggregate_by_period,
                                             daily_user_stats,
                                             monthly_user_stats, usage_totals)

UTC = timezone.utc
CLOCK = LocalClock(9)
RULES = AreaRules(admin_label="관리자", admin_area="관리실", unknown_area="Unknown")

KIM = SimpleNamespace(id=1, name="Kim", area="Building 1")
LEE = SimpleNamespace(id=2, name="Lee", area="Building 2")
PARK = SimpleNamespace(id=3, name="Park", area=None)
OWNERS = [KIM, LEE, PARK]

_ids = iter(range(1, 10_000))


def ev(category: str, owner_id, day: date, hhmm: str = "12:00", label=None):
    return SimpleNamespace(
        id=next(_ids),
        category=category,
        owner_id=owner_id,
        owner_label=label,
        instant=CLOCK.at_local_time(day, hhmm),
    )


def ov(day: str, owner_id: int, category: str, value: str):
    return SimpleNamespace(day=day, owner_id=owner_id, category=category, value=value)


# ── Totals / categories ─────────────────────────────────────────────
def test_legacy_rows_count_as_a():
    events = [ev("A", 1, date(2025, 3, 1)), ev("LEGACY_A", 1, date(2025, 3, 1)), ev("B", 1, date(2025, 3, 1))]
    counts = usage_totals(events)
    assert (counts.count_a, counts.count_b, counts.total) == (2, 1, 3)


def test_unknown_categories_are_ignored_everywhere():
    events = [ev("A", 1, date(2025, 3, 1)), ev("C", 1, date(2025, 3, 1))]
    assert usage_totals(events).total == 1
    assert sum(b.total for b in aggregate_by_period(events, "day", CLOCK)) == 1
    assert sum(b.total for b in aggregate_by_area(events, OWNERS, RULES)) == 1


def test_empty_input_never_raises():
    assert aggregate_by_period([], Granularity.WEEK, CLOCK) == []
    assert aggregate_by_area([], [], RULES) == []
    assert daily_user_stats([], [], [], 2025, 2, CLOCK, RULES) == []
    assert monthly_user_stats([], [], 2025, CLOCK, RULES) == []


# ── Period buckets ──────────────────────────────────────────────────
@pytest.mark.parametrize(
    "granularity, expected",
    [
        ("day", ["2024-12-31", "2025-01-01", "2025-01-31"]),
        ("week", ["2025-W01", "2025-W05"]),
        ("month", ["2024-12", "2025-01"]),
        ("year", ["2024", "2025"]),
    ],
)
def test_period_keys_follow_local_date(granularity, expected):
    events = [
        ev("A", 1, date(2024, 12, 31), "23:30"),
        ev("B", 1, date(2025, 1, 1), "00:10"),
        ev("A", 1, date(2025, 1, 31), "23:30"),
    ]
    buckets = aggregate_by_period(events, granularity, CLOCK)
    assert [b.key for b in buckets] == expected
    assert sum(b.total for b in buckets) == 3


def test_period_buckets_split_categories():
    events = [ev("A", 1, date(2025, 3, 1)), ev("A", 2, date(2025, 3, 1)), ev("B", 1, date(2025, 3, 1))]
    (bucket,) = aggregate_by_period(events, Granularity.MONTH, CLOCK)
    assert (bucket.key, bucket.count_a, bucket.count_b, bucket.total) == ("2025-03", 2, 1, 3)


# ── Area buckets ────────────────────────────────────────────────────
def test_area_fallbacks():
    day = date(2025, 3, 1)
    events = [
        ev("A", 1, day),
        ev("A", 1, day),
        ev("B", 2, day),
        ev("A", 99, day),  # deleted owner
        ev("B", None, day, label="관리자"),  # recorded by the administrator
        ev("B", 3, day),  # owner without an area
    ]
    buckets = {b.area: b for b in aggregate_by_area(events, OWNERS, RULES)}
    assert buckets["Building 1"].count_a == 2
    assert buckets["Building 2"].count_b == 1
    assert buckets["관리실"].total == 1
    assert buckets["Unknown"].total == 2


def test_area_buckets_sorted_by_total_desc():
    day = date(2025, 3, 1)
    events = [ev("A", 2, day), ev("A", 1, day), ev("B", 1, day)]
    assert [b.area for b in aggregate_by_area(events, OWNERS, RULES)] == ["Building 1", "Building 2"]


def test_area_total_equals_period_total():
    events = [
        ev("A", 1, date(2025, 3, 1)),
        ev("LEGACY_A", 2, date(2025, 3, 2)),
        ev("B", 42, date(2025, 3, 3)),
        ev("B", None, date(2025, 4, 1), label="관리자"),
        ev("A", None, date(2025, 4, 2)),
    ]
    area_total = sum(b.total for b in aggregate_by_area(events, OWNERS, RULES))
    for granularity in Granularity:
        assert sum(b.total for b in aggregate_by_period(events, granularity, CLOCK)) == area_total


# ── Daily matrix ────────────────────────────────────────────────────
def test_daily_matrix_has_row_per_owner_and_cell_per_day():
    rows = daily_user_stats([], [], OWNERS, 2024, 2, CLOCK, RULES)
    assert len(rows) == 3
    assert all(len(r.daily) == 29 for r in rows)
    # Sorted by (area, name); missing area maps to Unknown
    assert [r.owner_name for r in rows] == ["Kim", "Lee", "Park"]
    assert rows[2].area == "Unknown"


def test_daily_matrix_ignores_other_months():
    events = [ev("A", 1, date(2025, 2, 28)), ev("A", 1, date(2025, 3, 1)), ev("A", 1, date(2025, 4, 1))]
    (row,) = daily_user_stats(events, [], [KIM], 2025, 3, CLOCK, RULES)
    assert row.total_a == 1
    assert row.daily[0].count_a == 1


def test_numeric_override_replaces_count():
    day = date(2025, 3, 5)
    events = [ev("A", 1, day), ev("A", 1, day)]
    (row,) = daily_user_stats(events, [ov("2025-03-05", 1, "A", "7")], [KIM], 2025, 3, CLOCK, RULES)
    cell = row.daily[4]
    assert (cell.count_a, cell.display_a) == (7, 7)
    assert row.total_a == 7


def test_signed_numeric_override_is_a_number():
    (row,) = daily_user_stats([], [ov("2025-03-05", 1, "A", "+3")], [KIM], 2025, 3, CLOCK, RULES)
    cell = row.daily[4]
    assert (cell.count_a, cell.display_a) == (3, 3)
    assert row.total_a == 3


def test_label_override_counts_as_zero():
    day = date(2025, 3, 5)
    events = [ev("B", 1, day)] * 3
    (row,) = daily_user_stats(events, [ov("2025-03-05", 1, "B", "휴가")], [KIM], 2025, 3, CLOCK, RULES)
    cell = row.daily[4]
    assert cell.count_b == 0
    assert cell.display_b == "휴가"
    assert row.total_b == 0


def test_no_override_uses_raw_count():
    day = date(2025, 3, 5)
    events = [ev("A", 1, day), ev("B", 1, day)]
    (row,) = daily_user_stats(events, [ov("2025-03-06", 1, "A", "9")], [KIM], 2025, 3, CLOCK, RULES)
    cell = row.daily[4]
    assert (cell.count_a, cell.display_a, cell.count_b, cell.display_b) == (1, 1, 1, 1)


def test_legacy_override_is_used_when_no_current_one():
    (row,) = daily_user_stats([], [ov("2025-03-05", 1, "LEGACY_A", "3")], [KIM], 2025, 3, CLOCK, RULES)
    assert row.daily[4].count_a == 3


def test_current_override_wins_over_legacy():
    overrides = [ov("2025-03-05", 1, "LEGACY_A", "3"), ov("2025-03-05", 1, "A", "4")]
    (row,) = daily_user_stats([], overrides, [KIM], 2025, 3, CLOCK, RULES)
    assert row.daily[4].count_a == 4


def test_fractional_override():
    (row,) = daily_user_stats([], [ov("2025-03-05", 1, "A", "1.5")], [KIM], 2025, 3, CLOCK, RULES)
    assert row.daily[4].count_a == 1.5


def test_orphans_land_in_trailing_fallback_rows():
    day = date(2025, 3, 2)
    events = [ev("A", 1, day), ev("A", 99, day), ev("B", None, day, label="관리자")]
    rows = daily_user_stats(events, [], [KIM], 2025, 3, CLOCK, RULES)
    assert [r.owner_id for r in rows] == [1, None, None]
    assert {r.area for r in rows[1:]} == {"Unknown", "관리실"}
    assert sum(r.total_a + r.total_b for r in rows) == 3


# ── Monthly matrix ──────────────────────────────────────────────────
def test_monthly_matrix():
    events = [
        ev("A", 1, date(2025, 1, 31), "23:30"),
        ev("B", 1, date(2025, 2, 1), "00:30"),
        ev("LEGACY_A", 2, date(2025, 12, 31)),
        ev("A", 2, date(2026, 1, 1)),
    ]
    rows = monthly_user_stats(events, [KIM, LEE], 2025, CLOCK, RULES)
    assert all(len(r.monthly) == 12 for r in rows)
    kim, lee = rows
    assert kim.monthly[0].count_a == 1
    assert kim.monthly[1].count_b == 1
    assert lee.monthly[11].count_a == 1
    assert (lee.total_a, lee.total_b) == (1, 0)


def test_monthly_matrix_keeps_orphans():
    events = [ev("A", 7, date(2025, 5, 1))]
    rows = monthly_user_stats(events, [KIM], 2025, CLOCK, RULES)
    assert rows[-1].owner_id is None
    assert rows[-1].monthly[4].count_a == 1


def test_utc_instant_near_midnight_uses_local_month():
    # 2025-02-28 20:00 UTC is 2025-03-01 05:00 local
    event = SimpleNamespace(
        id=1, category="A", owner_id=1, owner_label=None,
        instant=datetime(2025, 2, 28, 20, 0, tzinfo=UTC),
    )
    (row,) = daily_user_stats([event], [], [KIM], 2025, 3, CLOCK, RULES)
    assert row.daily[0].count_a == 1
