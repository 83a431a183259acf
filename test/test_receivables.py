from datetime import datetime
from pathlib import Path

import pytest
from conftest import FixedClock, make_container, make_owner

from stockledger.domain.errors import NotFoundError, ValidationError
from stockledger.domain.models import PaymentStatus


def _pending_sale(c, owner, qty=2, price=50.0, client="Client A", sku="SKU-1"):
    p = c.catalog.create_product(owner, "Producto", sku)
    c.ledger.record_entry(p.id, 10, 25.0)
    return c.ledger.record_exit(p.id, qty, price, PaymentStatus.PENDING, client)


def test_partial_payments_accumulate_and_clamp_at_total(tmp_path: Path):
    c = make_container(tmp_path)
    sale = _pending_sale(c, make_owner(c))

    first = c.receivables.record_payment(sale.id, 30.0)
    assert first.amount_paid == 30.0
    assert first.status is PaymentStatus.PENDING

    second = c.receivables.record_payment(sale.id, 150.0)
    assert second.amount_paid == 100.0
    assert second.status is PaymentStatus.PAID

    tx = c.ledger.get_transaction(sale.id)
    assert tx.amount_paid == 100.0
    assert tx.status is PaymentStatus.PAID


def test_full_settlement_without_amount(tmp_path: Path):
    c = make_container(tmp_path)
    sale = _pending_sale(c, make_owner(c), qty=3, price=12.5)

    c.receivables.record_payment(sale.id, 10.0)
    result = c.receivables.record_payment(sale.id)

    assert result.amount_paid == 37.5
    assert result.status is PaymentStatus.PAID


def test_paid_is_terminal(tmp_path: Path):
    c = make_container(tmp_path)
    sale = _pending_sale(c, make_owner(c))
    c.receivables.record_payment(sale.id)

    again = c.receivables.record_payment(sale.id, 20.0)
    assert again.amount_paid == 100.0
    assert again.status is PaymentStatus.PAID
    assert c.ledger.get_transaction(sale.id).amount_paid == 100.0


def test_payment_never_changes_stock(tmp_path: Path):
    c = make_container(tmp_path)
    sale = _pending_sale(c, make_owner(c))
    before = c.catalog.get_product(sale.product_id)

    c.receivables.record_payment(sale.id, 40.0)

    after = c.catalog.get_product(sale.product_id)
    assert after.current_stock == before.current_stock == 8
    assert after.average_cost == before.average_cost


def test_payment_against_purchase_is_rejected(tmp_path: Path):
    c = make_container(tmp_path)
    p = c.catalog.create_product(make_owner(c), "Producto", "SKU-1")
    entry = c.ledger.record_entry(p.id, 1, 3.0)

    with pytest.raises(ValidationError, match="EXIT"):
        c.receivables.record_payment(entry.id, 1.0)


@pytest.mark.parametrize("amount", [0, -5.0, "abc"])
def test_payment_amount_must_be_positive_number(tmp_path: Path, amount):
    c = make_container(tmp_path)
    sale = _pending_sale(c, make_owner(c))

    with pytest.raises(ValidationError):
        c.receivables.record_payment(sale.id, amount)


def test_payment_on_missing_transaction(tmp_path: Path):
    c = make_container(tmp_path)
    with pytest.raises(NotFoundError):
        c.receivables.record_payment(12345, 1.0)


def test_receivables_listing_is_newest_first_and_per_owner(tmp_path: Path):
    clock = FixedClock(datetime(2026, 4, 1, 10, 0, 0))
    c = make_container(tmp_path, clock=clock)
    owner = make_owner(c)
    other = make_owner(c, "Other Store")

    p = c.catalog.create_product(owner, "Producto", "SKU-1")
    c.ledger.record_entry(p.id, 10, 25.0)
    older = c.ledger.record_exit(p.id, 2, 50.0, "PENDING", "Client A")
    c.ledger.record_exit(p.id, 1, 50.0, "PAID")
    newer = c.ledger.record_exit(p.id, 1, 40.0, "PENDING", "Client B")
    _pending_sale(c, other, sku="SKU-1")

    c.receivables.record_payment(older.id, 25.0)

    rows = c.receivables.list_receivables(owner)
    assert [r.transaction.id for r in rows] == [newer.id, older.id]

    first_sale = rows[1]
    assert first_sale.product_name == "Producto"
    assert first_sale.product_sku == "SKU-1"
    assert first_sale.transaction.client_name == "Client A"
    assert first_sale.expected_profit == 50.0
    assert first_sale.outstanding == 75.0

    assert c.receivables.total_outstanding(owner) == 115.0


def test_settled_sales_leave_the_receivables_list(tmp_path: Path):
    c = make_container(tmp_path)
    owner = make_owner(c)
    sale = _pending_sale(c, owner)

    c.receivables.record_payment(sale.id)

    assert c.receivables.list_receivables(owner) == []
    assert c.receivables.total_outstanding(owner) == 0.0


@pytest.mark.parametrize("amount", [float("nan"), float("inf"), "nan"])
def test_non_finite_payment_is_rejected_and_nothing_written(tmp_path: Path, amount):
    c = make_container(tmp_path)
    sale = _pending_sale(c, make_owner(c))

    with pytest.raises(ValidationError):
        c.receivables.record_payment(sale.id, amount)

    tx = c.ledger.get_transaction(sale.id)
    assert tx.amount_paid == 0.0
    assert tx.status is PaymentStatus.PENDING
