class AppError(Exception):
    """Base app error."""


class ValidationError(AppError):
    pass


class NotFoundError(AppError):
    pass


class DuplicateSkuError(AppError):
    pass


class InsufficientStockError(AppError):
    pass
