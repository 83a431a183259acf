from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from stockledger.domain.commands import EntryCommand, ExitCommand
from stockledger.domain.errors import InsufficientStockError, NotFoundError
from stockledger.domain.models import MovementType, PaymentStatus, Transaction, money
from stockledger.domain.valuation import apply_entry, apply_exit
from stockledger.repositories.unit_of_work import UnitOfWork

log = logging.getLogger("stockledger.ledger")


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_timestamp(moment: datetime) -> str:
    return moment.replace(microsecond=0).isoformat(sep=" ")


class LedgerService:
    """Sole writer of product stock/cost and of ledger rows.

    Each movement runs in one unit of work: the product row is read, checked,
    revalued and written together with the new transaction, or not at all.
    """

    def __init__(
        self,
        repo,
        uow_factory: Callable[[], UnitOfWork] | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.repo = repo
        self.uow_factory = uow_factory or repo.unit_of_work
        self.clock = clock or utc_now

    def record_entry(
        self,
        product_id: int,
        quantity: int,
        unit_cost: float,
        expiry_date: Optional[str] = None,
    ) -> Transaction:
        cmd = EntryCommand.from_payload(
            {
                "product_id": product_id,
                "quantity": quantity,
                "unit_cost": unit_cost,
                "expiry_date": expiry_date,
            }
        )
        return self.post_entry(cmd)

    def post_entry(self, cmd: EntryCommand) -> Transaction:
        timestamp = format_timestamp(self.clock())
        with self.uow_factory() as uow:
            product = uow.get_product(cmd.product_id)
            if not product:
                raise NotFoundError("Product not found.")

            valuation = apply_entry(product.current_stock, product.average_cost, cmd.quantity, cmd.unit_cost)
            expiry = cmd.expiry_date or product.expiry_date

            uow.update_product_valuation(product.id, valuation.new_stock, valuation.new_average_cost, expiry)
            tx_id = uow.insert_transaction(
                product_id=product.id,
                movement_type=MovementType.ENTRY.value,
                quantity=cmd.quantity,
                unit_cost=cmd.unit_cost,
                cost_at_transaction=valuation.new_average_cost,
                status=PaymentStatus.PAID.value,
                amount_paid=money(cmd.unit_cost * cmd.quantity),
                client_name=None,
                expiry_date=expiry,
                timestamp=timestamp,
            )
            tx = uow.get_transaction(tx_id)

        log.info(
            "entry_recorded tx_id=%s product_id=%s qty=%s unit_cost=%.4f stock_after=%s avg_cost=%.4f",
            tx_id,
            cmd.product_id,
            cmd.quantity,
            cmd.unit_cost,
            valuation.new_stock,
            valuation.new_average_cost,
        )
        return tx

    def record_exit(
        self,
        product_id: int,
        quantity: int,
        unit_price: float,
        status: PaymentStatus | str = PaymentStatus.PAID,
        client_name: Optional[str] = None,
    ) -> Transaction:
        cmd = ExitCommand.from_payload(
            {
                "product_id": product_id,
                "quantity": quantity,
                "unit_price": unit_price,
                "status": status.value if isinstance(status, PaymentStatus) else status,
                "client_name": client_name,
            }
        )
        return self.post_exit(cmd)

    def post_exit(self, cmd: ExitCommand) -> Transaction:
        timestamp = format_timestamp(self.clock())
        try:
            with self.uow_factory() as uow:
                product = uow.get_product(cmd.product_id)
                if not product:
                    raise NotFoundError("Product not found.")

                valuation = apply_exit(product.current_stock, product.average_cost, cmd.quantity)
                total = money(cmd.unit_price * cmd.quantity)
                paid = total if cmd.status is PaymentStatus.PAID else 0.0

                uow.update_product_stock(product.id, valuation.new_stock)
                tx_id = uow.insert_transaction(
                    product_id=product.id,
                    movement_type=MovementType.EXIT.value,
                    quantity=cmd.quantity,
                    unit_cost=cmd.unit_price,
                    cost_at_transaction=valuation.cost_at_transaction,
                    status=cmd.status.value,
                    amount_paid=paid,
                    client_name=cmd.client_name or None,
                    expiry_date=None,
                    timestamp=timestamp,
                )
                tx = uow.get_transaction(tx_id)
        except InsufficientStockError:
            log.warning("exit_rejected product_id=%s qty=%s reason=insufficient_stock", cmd.product_id, cmd.quantity)
            raise

        log.info(
            "exit_recorded tx_id=%s product_id=%s qty=%s unit_price=%.4f status=%s stock_after=%s",
            tx_id,
            cmd.product_id,
            cmd.quantity,
            cmd.unit_price,
            cmd.status.value,
            valuation.new_stock,
        )
        return tx

    def get_transaction(self, transaction_id: int) -> Transaction:
        tx = self.repo.get_transaction(int(transaction_id))
        if not tx:
            raise NotFoundError("Transaction not found.")
        return tx

    def list_transactions(self, product_id: int) -> list[Transaction]:
        if not self.repo.get_product_by_id(int(product_id)):
            raise NotFoundError("Product not found.")
        return self.repo.list_transactions_for_product(int(product_id))
