from __future__ import annotations

import logging
from typing import Callable, Optional

from stockledger.domain.commands import PaymentCommand
from stockledger.domain.errors import NotFoundError, ValidationError
from stockledger.domain.models import MovementType, PaymentResult, PaymentStatus, Receivable, money
from stockledger.domain.valuation import expected_profit
from stockledger.repositories.unit_of_work import UnitOfWork

log = logging.getLogger("stockledger.receivables")


class ReceivablesService:
    """PAID/PENDING lifecycle of sales. Stock is never touched here."""

    def __init__(self, repo, uow_factory: Callable[[], UnitOfWork] | None = None):
        self.repo = repo
        self.uow_factory = uow_factory or repo.unit_of_work

    def record_payment(self, transaction_id: int, amount: Optional[float] = None) -> PaymentResult:
        """
        amount=None settles the sale in full. Partial amounts accumulate and
        are capped at the sale total; reaching the total marks the sale PAID.
        """
        cmd = PaymentCommand.from_payload({"transaction_id": transaction_id, "amount": amount})

        with self.uow_factory() as uow:
            tx = uow.get_transaction(cmd.transaction_id)
            if not tx:
                raise NotFoundError("Transaction not found.")
            if tx.type is not MovementType.EXIT:
                raise ValidationError("Payments can only be recorded against sales (EXIT).")

            if tx.status is PaymentStatus.PAID:
                log.info("payment_ignored tx_id=%s reason=already_paid", tx.id)
                return PaymentResult(amount_paid=tx.amount_paid, status=tx.status)

            total = tx.total_value
            if cmd.amount is None:
                new_paid = total
            else:
                new_paid = money(min(tx.amount_paid + cmd.amount, total))
            new_status = PaymentStatus.PAID if new_paid >= total else PaymentStatus.PENDING

            uow.update_payment(tx.id, new_paid, new_status.value)

        log.info(
            "payment_recorded tx_id=%s amount=%s amount_paid=%.2f total=%.2f status=%s",
            tx.id,
            cmd.amount if cmd.amount is not None else "full",
            new_paid,
            total,
            new_status.value,
        )
        return PaymentResult(amount_paid=new_paid, status=new_status)

    def list_receivables(self, owner_id: int) -> list[Receivable]:
        out: list[Receivable] = []
        for tx, name, sku in self.repo.list_pending_exits(int(owner_id)):
            out.append(
                Receivable(
                    transaction=tx,
                    product_name=name,
                    product_sku=sku,
                    expected_profit=money(expected_profit(tx.unit_cost, tx.cost_at_transaction, tx.quantity)),
                    outstanding=money(tx.total_value - tx.amount_paid),
                )
            )
        return out

    def total_outstanding(self, owner_id: int) -> float:
        return money(sum(r.outstanding for r in self.list_receivables(owner_id)))
