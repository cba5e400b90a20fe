"""
Unit tests for the FORST aggregation primitives (no database).

Covers:
  - group_and_sum / group_and_count bucket rules (None keys, pre-seeded keys)
  - cube_keys ordering
  - sort_by_zone_order: configured order first, unknown zones alphabetical
  - activity_month / forecast_month / order_month precedence
  - month_in_year bounds
  - is_year_offer / is_year_order membership
  - percentage, deviation_percent, hit_rate, open_funnel, balance, to_lakhs
"""

from datetime import date, datetime

import pytest

from forst.services.aggregation import (
    MONTH_NAMES,
    QUARTERS,
    activity_month,
    balance,
    cube_keys,
    deviation_percent,
    forecast_month,
    group_and_count,
    group_and_sum,
    hit_rate,
    is_year_offer,
    is_year_order,
    month_in_year,
    open_funnel,
    order_month,
    percentage,
    sort_by_zone_order,
    to_lakhs,
)
from forst.services.forst_records import OfferRecord, ReportSettings, ZoneRecord

SETTINGS = ReportSettings()


def _offer(**fields):
    fields.setdefault("id", 1)
    fields.setdefault("zone_id", 1)
    return OfferRecord(**fields)


# ── group_and_sum / group_and_count ─────────────────────────────────────────


class TestGrouping:
    def test_sum_without_keys_creates_buckets_on_demand(self):
        rows = [("a", 1.0), ("b", 2.0), ("a", 3.5)]
        result = group_and_sum(rows, key=lambda r: r[0], value=lambda r: r[1])
        assert result == {"a": 4.5, "b": 2.0}

    def test_none_key_drops_row(self):
        rows = [("a", 1.0), (None, 99.0)]
        result = group_and_sum(rows, key=lambda r: r[0], value=lambda r: r[1])
        assert result == {"a": 1.0}

    def test_seeded_keys_start_at_zero_and_ignore_strangers(self):
        rows = [("a", 1.0), ("z", 5.0)]
        result = group_and_sum(rows, key=lambda r: r[0], value=lambda r: r[1], keys=["b", "a"])
        assert list(result) == ["b", "a"]
        assert result == {"b": 0.0, "a": 1.0}

    def test_count_with_tuple_keys(self):
        rows = [(1, 3), (1, 3), (2, 3)]
        result = group_and_count(rows, key=lambda r: r, keys=cube_keys([1, 2], [3]))
        assert result == {(1, 3): 2, (2, 3): 1}

    def test_conservation_of_totals(self):
        rows = [(k % 3, float(k)) for k in range(10)]
        result = group_and_sum(rows, key=lambda r: r[0], value=lambda r: r[1])
        assert sum(result.values()) == sum(r[1] for r in rows)

    def test_cube_keys_order(self):
        assert cube_keys([1, 2], ["x", "y"]) == [(1, "x"), (1, "y"), (2, "x"), (2, "y")]


# ── Zone ordering ───────────────────────────────────────────────────────────


def test_sort_by_zone_order_puts_unknown_zones_last_alphabetically():
    zones = [ZoneRecord(id=i, name=n) for i, n in enumerate(
        ["EAST", "CENTRAL", "NORTH", "ALPHA", "WEST", "SOUTH"], start=1)]
    ordered = sort_by_zone_order(zones, SETTINGS.zone_order)
    assert [z.name for z in ordered] == ["WEST", "SOUTH", "NORTH", "EAST", "ALPHA", "CENTRAL"]


def test_sort_by_zone_order_accepts_name_accessor():
    items = [{"zoneName": "EAST"}, {"zoneName": "WEST"}]
    ordered = sort_by_zone_order(items, SETTINGS.zone_order, name=lambda i: i["zoneName"])
    assert [i["zoneName"] for i in ordered] == ["WEST", "EAST"]


# ── Month resolution ────────────────────────────────────────────────────────


class TestMonthResolvers:
    def test_activity_month_precedence(self):
        created = datetime(2024, 7, 15)
        assert activity_month(_offer(po_expected_month="2024-03", offer_month="2024-02",
                                     created_at=created)) == "2024-03"
        assert activity_month(_offer(offer_month="2024-02", created_at=created)) == "2024-02"
        assert activity_month(_offer(created_at=created)) == "2024-07"
        assert activity_month(_offer()) is None

    def test_forecast_month_uses_expected_month_only(self):
        assert forecast_month(_offer(po_expected_month="2024-05")) == "2024-05"
        assert forecast_month(_offer(offer_month="2024-05")) is None

    def test_order_month_falls_back_to_po_date(self):
        assert order_month(_offer(po_received_month="2024-09", po_date=date(2024, 1, 2))) == "2024-09"
        assert order_month(_offer(po_date=date(2024, 1, 2))) == "2024-01"
        assert order_month(_offer()) is None

    @pytest.mark.parametrize("value,expected", [
        ("2024-01", 1),
        ("2024-12", 12),
        ("2023-12", None),
        ("2024-13", None),
        ("2024-xx", None),
        ("2024-3", None),
        ("2024-03-15", None),
        ("", None),
        (None, None),
    ])
    def test_month_in_year(self, value, expected):
        assert month_in_year(value, 2024) == expected

    def test_month_constants(self):
        assert MONTH_NAMES[0] == "JAN" and MONTH_NAMES[-1] == "DEC"
        assert [q for q, _ in QUARTERS] == ["Q1", "Q2", "Q3", "Q4"]


# ── Year membership ─────────────────────────────────────────────────────────


class TestYearMembership:
    def test_excluded_status_is_never_a_year_offer(self):
        offer = _offer(po_expected_month="2024-03", status="CANCELLED")
        assert not is_year_offer(offer, 2024, SETTINGS)

    def test_any_month_field_places_offer_in_year(self):
        assert is_year_offer(_offer(offer_month="2024-11", status="OPEN"), 2024, SETTINGS)
        assert is_year_offer(_offer(created_at=datetime(2024, 2, 1)), 2024, SETTINGS)
        assert not is_year_offer(_offer(po_expected_month="2023-11"), 2024, SETTINGS)

    def test_order_requires_order_stage(self):
        offer = _offer(stage="NEGOTIATION", po_received_month="2024-04")
        assert not is_year_order(offer, 2024, SETTINGS)
        assert is_year_order(_offer(stage="WON", po_received_month="2024-04"), 2024, SETTINGS)
        assert is_year_order(_offer(stage="PO_RECEIVED", po_date=date(2024, 6, 1)), 2024, SETTINGS)
        assert not is_year_order(_offer(stage="WON", po_date=date(2023, 6, 1)), 2024, SETTINGS)


# ── Derived metrics ─────────────────────────────────────────────────────────


class TestMetrics:
    def test_deviation_percent(self):
        assert deviation_percent(1500000, 1200000) == pytest.approx(25.0)
        assert deviation_percent(500, 0) == 0.0
        assert deviation_percent(500, -10) == 0.0

    def test_percentage_zero_total(self):
        assert percentage(3, 0) == 0.0
        assert percentage(1, 4) == 25.0

    @pytest.mark.parametrize("orders,offers,expected", [
        (1, 2, 50),
        (1, 3, 33),
        (2, 3, 67),
        (1, 8, 13),  # 12.5 rounds half up
        (0, 0, 0),
    ])
    def test_hit_rate(self, orders, offers, expected):
        assert hit_rate(orders, offers) == expected

    def test_open_funnel_never_negative(self):
        assert open_funnel(100.0, 40.0) == 60.0
        assert open_funnel(100.0, 400.0) == 0.0

    def test_balance_is_target_minus_actual(self):
        assert balance(1200000, 1500000) == -300000

    def test_to_lakhs(self):
        assert to_lakhs(500000) == 5.0
        assert to_lakhs(123456) == 1.23
        assert to_lakhs(None) == 0
        assert to_lakhs(1000000, divisor=1000000) == 1.0
