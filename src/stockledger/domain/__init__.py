from .models import Product, Transaction, Receivable, MovementType, PaymentStatus
from .errors import ValidationError, NotFoundError, DuplicateSkuError, InsufficientStockError

__all__ = [
    "Product",
    "Transaction",
    "Receivable",
    "MovementType",
    "PaymentStatus",
    "ValidationError",
    "NotFoundError",
    "DuplicateSkuError",
    "InsufficientStockError",
]
