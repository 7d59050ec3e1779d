"""
Exceptions for Stockwatch.

Every error is a StockwatchError with a structured code for programmatic
handling. Subclasses name the failure class so callers can tell rejected
requests apart from partial failures.
"""

from decimal import Decimal
from typing import Any


class BaseError(Exception):
    """
    Exception with a machine-readable code and a context payload.

    Usage:
        raise StockwatchError('PRODUCT_NOT_FOUND', product_id=42)
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(f"[{code}] {self.message}")


class StockwatchError(BaseError):
    """
    Structured exception for inventory operations.

    Usage:
        try:
            inventory.sell(product.pk, 10)
        except InsufficientStockError as e:
            print(f"Only {e.available} left")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    _default_messages = {
        'INVALID_QUANTITY': 'Quantity must be a positive integer',
        'INVALID_TYPE': 'Unknown transaction type',
        'INVALID_FIELD': 'Invalid field value',
        'QUANTITY_NOT_EDITABLE': 'Quantity changes must go through the stock ledger',
        'PRODUCT_HAS_HISTORY': 'Product has recorded transactions and cannot be deleted',
        'UNKNOWN_SCENARIO': 'Unknown scenario',
        'UNKNOWN_PASS': 'Unknown detection pass',
        'INSUFFICIENT_QUANTITY': 'Not enough stock for this operation',
        'PRODUCT_NOT_FOUND': 'Product not found',
        'ANOMALY_NOT_FOUND': 'Anomaly not found',
        'RECORD_FAILED': 'Stock was changed but the transaction could not be recorded',
        'LEDGER_BUSY': 'Product is locked by another stock operation',
        'DETECTION_UNAVAILABLE': 'Detection service unavailable',
        'DETECTION_TIMEOUT': 'Detection service timed out',
        'DETECTION_BAD_RESPONSE': 'Detection service returned an unreadable response',
    }

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }


class ValidationError(StockwatchError):
    """Bad input shape. Raised before any side effect."""


class InsufficientStockError(StockwatchError):
    """The mutation would drive quantity below zero. Nothing was written."""

    def __init__(self, code: str = 'INSUFFICIENT_QUANTITY', message: str | None = None, **data):
        super().__init__(code, message, **data)

    @property
    def available(self) -> int:
        """Shortcut for data['available']."""
        return self.data.get('available', 0)

    @property
    def requested(self) -> int:
        """Shortcut for data['requested']."""
        return self.data.get('requested', 0)


class NotFoundError(StockwatchError):
    """Unknown product or anomaly id."""


class LedgerBusyError(StockwatchError):
    """Per-product lock could not be acquired in time. Nothing was written."""

    def __init__(self, code: str = 'LEDGER_BUSY', message: str | None = None, **data):
        super().__init__(code, message, **data)


class PersistenceInconsistencyError(StockwatchError):
    """
    The ledger change was applied but its transaction was not recorded.

    Never retry the request: the quantity change already stands and a retry
    would apply it twice.
    """

    def __init__(self, code: str = 'RECORD_FAILED', message: str | None = None, **data):
        super().__init__(code, message, **data)


class DetectionUnavailableError(StockwatchError):
    """A detection pass failed or timed out. Not the same as zero anomalies."""

    def __init__(self, code: str = 'DETECTION_UNAVAILABLE', message: str | None = None, **data):
        super().__init__(code, message, **data)
