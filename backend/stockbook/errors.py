# Overview: Domain error taxonomy shared by services and routes.

from __future__ import annotations


class InvoicingError(Exception):
    """
    Base class for errors a caller can act on.

    Routes translate these into JSON responses using `status_code` and `code`.
    Messages name the offending line or constraint but never storage internals.
    """
    status_code = 400
    code = "error"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "details": self.details}


class InvalidInputError(InvoicingError):
    """Malformed or empty request. Raised before any transaction opens."""
    status_code = 400
    code = "invalid_input"


class ItemNotFoundError(InvoicingError):
    """A line's description matches no item owned by the caller."""
    status_code = 422
    code = "item_not_found"


class InsufficientStockError(InvoicingError):
    """Requested quantity exceeds the quantity on hand."""
    status_code = 409
    code = "insufficient_stock"


class ConflictError(InvoicingError):
    """Uniqueness or lock-timeout failure. Retrying the whole call is safe."""
    status_code = 409
    code = "conflict"


class TransientStorageError(InvoicingError):
    """Connectivity or timeout failure in the storage layer."""
    status_code = 503
    code = "transient_storage_error"


class NotFoundError(InvoicingError):
    status_code = 404
    code = "not_found"
