from __future__ import annotations

import logging
import math
import sqlite3

from stockledger.domain.errors import DuplicateSkuError, NotFoundError, ValidationError
from stockledger.domain.models import Product

log = logging.getLogger(__name__)


class CatalogService:
    def __init__(self, repo):
        self.repo = repo

    def create_product(
        self,
        owner_id: int,
        name: str,
        sku: str,
        min_stock: int = 5,
        sale_price: float = 0.0,
    ) -> Product:
        sku = (sku or "").strip()
        name = (name or "").strip()
        if not sku or not name:
            raise ValidationError("SKU and Name are required.")
        if min_stock < 0:
            raise ValidationError("Min stock must be >= 0.")
        if not math.isfinite(sale_price) or sale_price < 0:
            raise ValidationError("Sale price must be >= 0.")

        if self.repo.get_product_by_sku(int(owner_id), sku):
            raise DuplicateSkuError(f"SKU '{sku}' already exists in this catalog.")
        try:
            pid = self.repo.add_product(int(owner_id), sku, name, int(min_stock), float(sale_price))
        except sqlite3.IntegrityError as e:
            # lost a race against a concurrent insert of the same sku
            if "UNIQUE" in str(e):
                raise DuplicateSkuError(f"SKU '{sku}' already exists in this catalog.") from e
            raise

        log.info("product_created product_id=%s owner_id=%s sku=%s", pid, owner_id, sku)
        return self.get_product(pid)

    def get_product(self, product_id: int) -> Product:
        p = self.repo.get_product_by_id(int(product_id))
        if not p:
            raise NotFoundError("Product not found.")
        return p

    def get_product_by_sku(self, owner_id: int, sku: str) -> Product:
        p = self.repo.get_product_by_sku(int(owner_id), (sku or "").strip())
        if not p:
            raise NotFoundError("Product not found.")
        return p

    def list_products(self, owner_id: int) -> list[Product]:
        return self.repo.list_products(int(owner_id))

    def low_stock_products(self, owner_id: int) -> list[Product]:
        return self.repo.list_low_stock(int(owner_id))

    def update_sale_price(self, product_id: int, sale_price: float) -> Product:
        if not math.isfinite(sale_price) or sale_price < 0:
            raise ValidationError("Sale price must be >= 0.")
        if not self.repo.update_sale_price(int(product_id), float(sale_price)):
            raise NotFoundError("Product not found.")
        return self.get_product(product_id)

    def update_min_stock(self, product_id: int, min_stock: int) -> Product:
        if min_stock < 0:
            raise ValidationError("Min stock must be >= 0.")
        if not self.repo.update_min_stock(int(product_id), int(min_stock)):
            raise NotFoundError("Product not found.")
        return self.get_product(product_id)

    def delete_product(self, product_id: int) -> None:
        """Delete the product and, by cascade, its whole ledger history."""
        if not self.repo.delete_product(int(product_id)):
            raise NotFoundError("Product not found.")
        log.info("product_deleted product_id=%s", product_id)
