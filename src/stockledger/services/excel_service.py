from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime

from openpyxl import load_workbook

from stockledger.domain.errors import AppError, NotFoundError, ValidationError

log = logging.getLogger(__name__)

REQUIRED_HEADERS = ("sku", "name", "quantity", "unit_cost")


@dataclass
class ImportReport:
    imported: int = 0
    skipped: int = 0
    created_products: int = 0
    errors: list[str] = field(default_factory=list)


def _cell_date(value) -> str | None:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


class ExcelService:
    def __init__(self, catalog_service, ledger_service):
        self.catalog = catalog_service
        self.ledger = ledger_service

    def import_restock_excel(self, path: str, owner_id: int) -> ImportReport:
        """
        Each row is a RESTOCK (quantity to add), booked as an ENTRY movement.
        Headers:
          sku | name | quantity | unit_cost | [min_stock] | [sale_price] | [expiry_date]
        Unknown skus are registered in the owner's catalog first.
        """
        wb = load_workbook(path, read_only=True, data_only=True)
        try:
            ws = wb.active
            rows = ws.iter_rows(values_only=True)
            header_row = next(rows, None)
            if header_row is None:
                raise ValidationError("Workbook is empty.")

            headers: dict[str, int] = {}
            for idx, v in enumerate(header_row):
                if isinstance(v, str):
                    headers[v.strip().lower()] = idx

            for r in REQUIRED_HEADERS:
                if r not in headers:
                    raise ValidationError(f"Missing column header: {r}")

            report = ImportReport()
            for row_no, values in enumerate(rows, start=2):
                def cell(name):
                    i = headers.get(name)
                    return values[i] if i is not None and i < len(values) else None

                sku = cell("sku")
                name = cell("name")
                if not sku or not name:
                    report.skipped += 1
                    continue
                try:
                    self._import_row(report, owner_id, cell)
                except (AppError, TypeError, ValueError) as e:
                    log.warning("Excel import skipped row %s: %s", row_no, e)
                    report.errors.append(f"row {row_no}: {e}")
                    report.skipped += 1
        finally:
            wb.close()

        log.info(
            "excel_import_done path=%s imported=%s skipped=%s created=%s",
            path,
            report.imported,
            report.skipped,
            report.created_products,
        )
        return report

    def _import_row(self, report: ImportReport, owner_id: int, cell) -> None:
        sku = str(cell("sku")).strip()
        name = str(cell("name")).strip()
        quantity = int(float(cell("quantity")))
        unit_cost = float(cell("unit_cost") or 0)
        min_stock = cell("min_stock")
        sale_price = cell("sale_price")
        expiry = _cell_date(cell("expiry_date"))

        if quantity < 0:
            raise ValidationError("Quantity must be >= 0.")
        if unit_cost < 0:
            raise ValidationError("Unit cost must be >= 0.")

        try:
            product = self.catalog.get_product_by_sku(owner_id, sku)
        except NotFoundError:
            product = self.catalog.create_product(
                owner_id,
                name,
                sku,
                min_stock=int(float(min_stock)) if min_stock is not None else 5,
                sale_price=float(sale_price) if sale_price is not None else 0.0,
            )
            report.created_products += 1
        else:
            if sale_price is not None:
                self.catalog.update_sale_price(product.id, float(sale_price))
            if min_stock is not None:
                self.catalog.update_min_stock(product.id, int(float(min_stock)))

        if quantity > 0:
            self.ledger.record_entry(product.id, quantity, unit_cost, expiry_date=expiry)
        report.imported += 1
