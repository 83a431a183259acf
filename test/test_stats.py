from datetime import datetime
from pathlib import Path

import pytest
from conftest import FixedClock, make_container, make_owner

from stockledger.domain.errors import ValidationError
from stockledger.services.stats_service import bucket_label


def _setup(tmp_path: Path, start=datetime(2026, 1, 1, 8, 0, 0)):
    clock = FixedClock(start)
    c = make_container(tmp_path, clock=clock)
    return c, clock, make_owner(c)


def test_realized_and_pending_profit_with_partial_payment(tmp_path: Path):
    c, _clock, owner = _setup(tmp_path)
    p = c.catalog.create_product(owner, "Producto", "SKU-1")
    c.ledger.record_entry(p.id, 10, 10.0)

    c.ledger.record_exit(p.id, 5, 30.0, "PAID")
    pending = c.ledger.record_exit(p.id, 5, 30.0, "PENDING", "Client A")
    c.receivables.record_payment(pending.id, 75.0)

    stats = c.stats.get_stats(owner)
    assert stats.realized_profit == 150.0
    assert stats.pending_profit == 50.0


def test_profit_is_reported_at_sale_time_cost(tmp_path: Path):
    c, _clock, owner = _setup(tmp_path)
    p = c.catalog.create_product(owner, "Producto", "SKU-1")
    c.ledger.record_entry(p.id, 10, 10.0)
    c.ledger.record_exit(p.id, 5, 30.0)

    # a later, pricier restock must not rewrite the earlier sale's profit
    c.ledger.record_entry(p.id, 5, 40.0)

    assert c.stats.get_stats(owner).realized_profit == 100.0


def test_zero_price_sale_counts_units_but_no_profit(tmp_path: Path):
    c, _clock, owner = _setup(tmp_path)
    p = c.catalog.create_product(owner, "Giveaway", "SKU-0")
    c.ledger.record_entry(p.id, 5, 4.0)
    c.ledger.record_exit(p.id, 3, 0.0)

    stats = c.stats.get_stats(owner)
    assert stats.realized_profit == 0.0
    assert stats.pending_profit == 0.0

    [row] = c.stats.get_product_stats(owner)
    assert row.total_sold == 3
    assert row.profit == 0.0


def test_product_stats_sorted_by_profit_then_name(tmp_path: Path):
    c, _clock, owner = _setup(tmp_path)
    rows = [("Zeta", "Z", 30.0), ("Beta", "B", 12.0), ("Alpha", "A", 12.0)]
    for name, sku, price in rows:
        p = c.catalog.create_product(owner, name, sku)
        c.ledger.record_entry(p.id, 10, 2.0)
        c.ledger.record_exit(p.id, 2, price)
        c.ledger.record_exit(p.id, 3, price)
    c.catalog.create_product(owner, "Unsold", "U")

    stats = c.stats.get_product_stats(owner)
    assert [s.name for s in stats] == ["Zeta", "Alpha", "Beta"]
    assert stats[0].total_sold == 5
    assert stats[0].profit == 140.0
    assert stats[1].profit == 50.0


def test_monthly_window_counts_current_month(tmp_path: Path):
    c, clock, owner = _setup(tmp_path)
    p = c.catalog.create_product(owner, "Producto", "SKU-1")
    c.ledger.record_entry(p.id, 10, 10.0)

    for moment in (datetime(2026, 1, 15, 12), datetime(2026, 3, 10, 12), datetime(2026, 3, 20, 12)):
        clock.set(moment)
        c.ledger.record_exit(p.id, 1, 15.0)

    as_of = datetime(2026, 3, 31, 18)
    two = c.stats.get_monthly_stats(owner, months=2, as_of=as_of)
    assert [(s.period, s.profit) for s in two] == [("2026-03", 10.0)]

    three = c.stats.get_monthly_stats(owner, months=3, as_of=as_of)
    assert [s.period for s in three] == ["2026-01", "2026-03"]


def test_monthly_window_uses_clock_when_no_reference_date(tmp_path: Path):
    c, clock, owner = _setup(tmp_path)
    p = c.catalog.create_product(owner, "Producto", "SKU-1")
    c.ledger.record_entry(p.id, 10, 10.0)
    clock.set(datetime(2025, 12, 31, 23, 0))
    c.ledger.record_exit(p.id, 1, 20.0)
    clock.set(datetime(2026, 1, 2, 9, 0))
    c.ledger.record_exit(p.id, 1, 20.0)

    clock.set(datetime(2026, 1, 20, 9, 0))
    assert [s.period for s in c.stats.get_monthly_stats(owner, months=1)] == ["2026-01"]


def test_weekly_and_daily_buckets(tmp_path: Path):
    c, clock, owner = _setup(tmp_path)
    p = c.catalog.create_product(owner, "Producto", "SKU-1")
    c.ledger.record_entry(p.id, 10, 10.0)

    sunday = datetime(2026, 3, 15, 10)
    monday = datetime(2026, 3, 16, 10)
    wednesday = datetime(2026, 3, 18, 10)
    for moment in (sunday, monday, wednesday):
        clock.set(moment)
        c.ledger.record_exit(p.id, 1, 12.0)

    this_week = c.stats.get_profit_evolution(owner, period="week", range_=1, as_of=wednesday)
    assert [(s.period, s.profit) for s in this_week] == [(monday.strftime("%Y-%W"), 4.0)]

    two_weeks = c.stats.get_profit_evolution(owner, period="week", range_=2, as_of=wednesday)
    assert [s.period for s in two_weeks] == [sunday.strftime("%Y-%W"), monday.strftime("%Y-%W")]

    today = c.stats.get_profit_evolution(owner, period="day", range_=1, as_of=wednesday)
    assert [(s.period, s.profit) for s in today] == [("2026-03-18", 2.0)]


def test_quarter_buckets(tmp_path: Path):
    c, clock, owner = _setup(tmp_path, start=datetime(2025, 12, 1, 8))
    p = c.catalog.create_product(owner, "Producto", "SKU-1")
    c.ledger.record_entry(p.id, 10, 10.0)

    for moment in (datetime(2025, 12, 20), datetime(2026, 2, 1), datetime(2026, 5, 1)):
        clock.set(moment)
        c.ledger.record_exit(p.id, 1, 11.0)

    out = c.stats.get_profit_evolution(owner, period="quarter", range_=2, as_of=datetime(2026, 5, 10))
    assert [(s.period, s.profit) for s in out] == [("2026-Q1", 1.0), ("2026-Q2", 1.0)]


def test_custom_range_is_inclusive_and_daily(tmp_path: Path):
    c, clock, owner = _setup(tmp_path)
    p = c.catalog.create_product(owner, "Producto", "SKU-1")
    c.ledger.record_entry(p.id, 10, 10.0)

    for moment in (datetime(2026, 3, 14, 23, 59), datetime(2026, 3, 15, 0, 0), datetime(2026, 3, 16, 23, 59)):
        clock.set(moment)
        c.ledger.record_exit(p.id, 1, 13.0)

    out = c.stats.get_profit_evolution(owner, period="custom", start_date="2026-03-15", end_date="2026-03-16")
    assert [(s.period, s.profit) for s in out] == [("2026-03-15", 3.0), ("2026-03-16", 3.0)]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"period": "year"},
        {"period": "month", "range_": 0},
        {"period": "custom"},
        {"period": "custom", "start_date": "2026-03-10", "end_date": "2026-03-01"},
        {"period": "custom", "start_date": "yesterday", "end_date": "2026-03-01"},
    ],
)
def test_profit_evolution_rejects_bad_arguments(tmp_path: Path, kwargs):
    c, _clock, owner = _setup(tmp_path)
    with pytest.raises(ValidationError):
        c.stats.get_profit_evolution(owner, **kwargs)


def test_stats_are_isolated_per_owner(tmp_path: Path):
    c, _clock, owner = _setup(tmp_path)
    other = make_owner(c, "Other Store")

    mine = c.catalog.create_product(owner, "Producto", "SKU-1")
    theirs = c.catalog.create_product(other, "Producto", "SKU-1")
    for pid in (mine.id, theirs.id):
        c.ledger.record_entry(pid, 10, 1.0)
    c.ledger.record_exit(mine.id, 1, 3.0)
    c.ledger.record_exit(theirs.id, 4, 3.0)

    assert c.stats.get_stats(owner).realized_profit == 2.0
    assert c.stats.get_stats(other).realized_profit == 8.0
    assert [s.total_sold for s in c.stats.get_product_stats(owner)] == [1]


def test_sales_summary(tmp_path: Path):
    c, _clock, owner = _setup(tmp_path)
    p = c.catalog.create_product(owner, "Producto", "SKU-1")
    c.ledger.record_entry(p.id, 10, 10.0)
    c.ledger.record_exit(p.id, 5, 30.0, "PAID")
    pending = c.ledger.record_exit(p.id, 5, 30.0, "PENDING", "Client A")
    c.receivables.record_payment(pending.id, 75.0)

    summary = c.stats.get_sales_summary(owner)
    assert summary.revenue == 300.0
    assert summary.units_sold == 10
    assert summary.collected == 225.0
    assert summary.purchases_spent == 100.0


def test_bucket_labels():
    ts = "2026-08-03 14:00:00"
    assert bucket_label("day", ts) == "2026-08-03"
    assert bucket_label("month", ts) == "2026-08"
    assert bucket_label("quarter", ts) == "2026-Q3"
    assert bucket_label("week", ts) == datetime(2026, 8, 3).strftime("%Y-%W")
