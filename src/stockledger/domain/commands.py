"""Validated input objects for ledger writes.

Edges (CLI, imports, an HTTP layer) build these from loosely typed payloads so
that the services only ever see checked values.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Optional

from stockledger.domain.errors import ValidationError
from stockledger.domain.models import PaymentStatus


def _as_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer.")
    try:
        as_float = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{field} must be an integer.") from e
    if not as_float.is_integer():
        raise ValidationError(f"{field} must be an integer.")
    return int(as_float)


def _as_float(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number.")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{field} must be a number.") from e
    if not math.isfinite(number):
        raise ValidationError(f"{field} must be a finite number.")
    return number


def _as_date(value: Any) -> Optional[str]:
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(str(value).strip()).isoformat()
    except ValueError as e:
        raise ValidationError(f"Invalid expiry date: {value!r}. Expected YYYY-MM-DD.") from e


def _as_status(value: Any) -> PaymentStatus:
    if value in (None, ""):
        return PaymentStatus.PAID
    try:
        return PaymentStatus(str(value).strip().upper())
    except ValueError as e:
        raise ValidationError(f"Unknown payment status: {value!r}.") from e


@dataclass(frozen=True)
class EntryCommand:
    """Purchase / restock of ``quantity`` units at ``unit_cost`` each."""

    product_id: int
    quantity: int
    unit_cost: float
    expiry_date: Optional[str] = None

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValidationError("Qty must be >= 1.")
        if not math.isfinite(self.unit_cost) or self.unit_cost < 0:
            raise ValidationError("Unit cost must be >= 0.")

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "EntryCommand":
        return cls(
            product_id=_as_int(payload.get("product_id"), "product_id"),
            quantity=_as_int(payload.get("quantity"), "quantity"),
            unit_cost=_as_float(payload.get("unit_cost", 0), "unit_cost"),
            expiry_date=_as_date(payload.get("expiry_date")),
        )


@dataclass(frozen=True)
class ExitCommand:
    """Sale of ``quantity`` units at ``unit_price``; PENDING sales need a client."""

    product_id: int
    quantity: int
    unit_price: float
    status: PaymentStatus = PaymentStatus.PAID
    client_name: Optional[str] = None

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValidationError("Qty must be >= 1.")
        if not math.isfinite(self.unit_price) or self.unit_price < 0:
            raise ValidationError("Unit price must be >= 0.")
        if not isinstance(self.status, PaymentStatus):
            raise ValidationError(f"Unknown payment status: {self.status!r}.")
        if self.status is PaymentStatus.PENDING and not (self.client_name or "").strip():
            raise ValidationError("Client name is required for pending sales.")

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ExitCommand":
        client = payload.get("client_name")
        return cls(
            product_id=_as_int(payload.get("product_id"), "product_id"),
            quantity=_as_int(payload.get("quantity"), "quantity"),
            unit_price=_as_float(payload.get("unit_price", payload.get("unit_cost")), "unit_price"),
            status=_as_status(payload.get("status")),
            client_name=str(client).strip() if client is not None else None,
        )


@dataclass(frozen=True)
class PaymentCommand:
    """Payment against a sale; ``amount=None`` settles the remaining balance."""

    transaction_id: int
    amount: Optional[float] = None

    def __post_init__(self) -> None:
        if self.amount is not None and not (math.isfinite(self.amount) and self.amount > 0):
            raise ValidationError("Payment amount must be > 0.")

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "PaymentCommand":
        raw = payload.get("amount")
        return cls(
            transaction_id=_as_int(payload.get("transaction_id"), "transaction_id"),
            amount=None if raw in (None, "") else _as_float(raw, "amount"),
        )
