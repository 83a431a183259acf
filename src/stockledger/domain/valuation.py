"""Moving weighted-average valuation and per-row profit math.

Everything here is pure: callers pass the product state they read inside
their unit of work and persist whatever comes back.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from stockledger.domain.errors import InsufficientStockError, ValidationError


@dataclass(frozen=True)
class EntryValuation:
    new_stock: int
    new_average_cost: float


@dataclass(frozen=True)
class ExitValuation:
    new_stock: int
    cost_at_transaction: float


def apply_entry(current_stock: int, average_cost: float, quantity: int, unit_cost: float) -> EntryValuation:
    """
    new_cost = (old_stock*old_cost + qty*unit_cost) / (old_stock+qty)

    The result is also the cost snapshot stored on the ENTRY row.
    """
    if quantity <= 0:
        raise ValidationError("Qty must be >= 1.")
    if not math.isfinite(unit_cost) or unit_cost < 0:
        raise ValidationError("Unit cost must be >= 0.")

    old_stock = int(current_stock)
    old_cost = float(average_cost)
    new_stock = old_stock + int(quantity)
    new_cost = ((old_stock * old_cost) + (int(quantity) * float(unit_cost))) / new_stock
    return EntryValuation(new_stock=new_stock, new_average_cost=new_cost)


def apply_exit(current_stock: int, average_cost: float, quantity: int) -> ExitValuation:
    if quantity <= 0:
        raise ValidationError("Qty must be >= 1.")
    if int(quantity) > int(current_stock):
        raise InsufficientStockError(f"Not enough stock. Available: {current_stock}")
    return ExitValuation(
        new_stock=int(current_stock) - int(quantity),
        cost_at_transaction=float(average_cost),
    )


def realized_share(unit_cost: float, cost_at_transaction: float, amount_paid: float) -> float:
    """Profit on the collected part of a sale; cost is apportioned by the paid fraction.

    Sales with a zero unit price carry no profit share (no paid fraction exists).
    """
    if unit_cost <= 0:
        return 0.0
    return amount_paid - cost_at_transaction * (amount_paid / unit_cost)


def pending_share(unit_cost: float, cost_at_transaction: float, quantity: int, amount_paid: float) -> float:
    if unit_cost <= 0:
        return 0.0
    unpaid = unit_cost * quantity - amount_paid
    return unpaid - cost_at_transaction * (unpaid / unit_cost)


def expected_profit(unit_cost: float, cost_at_transaction: float, quantity: int) -> float:
    return (unit_cost - cost_at_transaction) * quantity
