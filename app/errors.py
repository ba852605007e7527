"""
Error hierarchy for the catalog service.

Every error raised on purpose by the repository, the checkout coordinator or
the image store derives from `StoreError`. Each class carries a machine
readable `code` and the HTTP status the API answers with, so the request
boundary can render them without knowing the individual types.
"""
from typing import Optional


class StoreError(Exception):
    """Base class for all catalog service errors."""

    code: str = "internal_error"
    status_code: int = 500

    def __init__(self, message: Optional[str] = None) -> None:
        if message is None:
            message = "An unspecified store error occurred."
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {"error": self.message, "code": self.code}


class ValidationError(StoreError):
    """Malformed or missing request fields, or a rejected upload."""

    code = "validation_error"
    status_code = 400


class NotFoundError(StoreError):
    code = "not_found"
    status_code = 404

    def __init__(self, product_id: int, message: Optional[str] = None) -> None:
        self.product_id = product_id
        super().__init__(message or f"Product not found: {product_id}")

    def to_dict(self):
        out = super().to_dict()
        out["prod_id"] = self.product_id
        return out


class InsufficientStockError(StoreError):
    """
    Raised when a guarded decrement matched no row because the product does
    not hold enough units.
    """

    code = "insufficient_stock"
    status_code = 409

    def __init__(self, product_id: int, requested: int = 1) -> None:
        self.product_id = product_id
        self.requested = requested
        super().__init__(f"Insufficient quantity for product ID: {product_id}")

    def to_dict(self):
        out = super().to_dict()
        out["prod_id"] = self.product_id
        return out


class StorageError(StoreError):
    """Connectivity loss, constraint violation or any other driver failure."""

    code = "storage_error"


class LockTimeoutError(StorageError):
    """A statement gave up waiting for a lock held by another transaction."""

    code = "lock_timeout"


class TransactionError(StoreError):
    """Commit or rollback failed."""

    code = "transaction_error"


class CheckoutTimeoutError(TransactionError):
    """The checkout transaction ran past its deadline and was rolled back."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Checkout did not complete within {timeout}s")
