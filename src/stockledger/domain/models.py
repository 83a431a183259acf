from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional


MONEY_PLACES = 2


def money(value: float) -> float:
    """Round a currency amount to cents; the single rounding rule of the ledger."""
    return round(float(value), MONEY_PLACES)


class MovementType(str, Enum):
    ENTRY = "ENTRY"
    EXIT = "EXIT"


class PaymentStatus(str, Enum):
    PAID = "PAID"
    PENDING = "PENDING"


class AccountRole(str, Enum):
    MANAGER = "manager"
    COLLABORATOR = "collaborator"


@dataclass(frozen=True)
class Product:
    id: int
    owner_id: int
    sku: str
    name: str
    min_stock: int
    current_stock: int
    average_cost: float
    sale_price: float = 0.0
    expiry_date: Optional[str] = None


@dataclass(frozen=True)
class Transaction:
    id: int
    product_id: int
    type: MovementType
    quantity: int
    unit_cost: float
    cost_at_transaction: float
    status: PaymentStatus
    amount_paid: float
    client_name: Optional[str]
    expiry_date: Optional[str]
    timestamp: str

    @property
    def total_value(self) -> float:
        return money(self.unit_cost * self.quantity)


@dataclass(frozen=True)
class Receivable:
    transaction: Transaction
    product_name: str
    product_sku: str
    expected_profit: float
    outstanding: float


@dataclass(frozen=True)
class PaymentResult:
    amount_paid: float
    status: PaymentStatus


@dataclass(frozen=True)
class ProfitSummary:
    realized_profit: float
    pending_profit: float


@dataclass(frozen=True)
class ProductStat:
    name: str
    sku: str
    total_sold: int
    profit: float


@dataclass(frozen=True)
class PeriodStat:
    period: str
    profit: float


@dataclass(frozen=True)
class SalesSummary:
    revenue: float
    units_sold: int
    collected: float
    purchases_spent: float


@dataclass(frozen=True)
class Account:
    id: int
    name: str
    role: AccountRole
    parent_id: Optional[int] = None
