"""
Stock ledger — the only writer of Product.quantity.

All writes run under transaction.atomic() with select_for_update() on the
product row, inside a per-product lock so two mutations of the same product
never read the same previous quantity.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass

from django.db import transaction
from django.utils import timezone

from stockwatch.conf import stockwatch_settings
from stockwatch.exceptions import (
    InsufficientStockError,
    LedgerBusyError,
    NotFoundError,
    ValidationError,
)
from stockwatch.models.enums import TransactionType
from stockwatch.models.product import Product

logger = logging.getLogger('stockwatch')

_registry_lock = threading.Lock()
_product_locks: dict[int, threading.RLock] = {}


def _lock_for(product_id: int) -> threading.RLock:
    with _registry_lock:
        lock = _product_locks.get(product_id)
        if lock is None:
            lock = _product_locks[product_id] = threading.RLock()
        return lock


def coerce_type(value) -> TransactionType:
    """Map caller input to a TransactionType or reject it."""
    try:
        return TransactionType(value)
    except ValueError:
        raise ValidationError('INVALID_TYPE', type=value, allowed=list(TransactionType.values))


def _require_int(value, field: str) -> int:
    # bool is an int subclass; True is not a quantity
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError('INVALID_QUANTITY', field=field, value=value)
    return value


@dataclass(frozen=True)
class LedgerResult:
    """Quantities before and after one applied change."""

    product_id: int
    previous_quantity: int
    new_quantity: int

    @property
    def applied_delta(self) -> int:
        return self.new_quantity - self.previous_quantity


class StockLedger:
    """Quantity state per product."""

    @classmethod
    @contextmanager
    def lock(cls, product_id: int, timeout: float | None = None):
        """
        Per-product mutual exclusion.

        Re-entrant, so ledger calls made while holding it do not deadlock.

        Raises:
            LedgerBusyError: If the lock is not acquired within timeout
        """
        if timeout is None:
            timeout = stockwatch_settings.LOCK_TIMEOUT_SECONDS
        lock = _lock_for(product_id)
        if not lock.acquire(timeout=timeout):
            raise LedgerBusyError(product_id=product_id, timeout=timeout)
        try:
            yield
        finally:
            lock.release()

    @classmethod
    def quantity(cls, product_id: int) -> int:
        """Current quantity of a product."""
        try:
            return Product.objects.values_list('quantity', flat=True).get(pk=product_id)
        except Product.DoesNotExist:
            raise NotFoundError('PRODUCT_NOT_FOUND', product_id=product_id)

    @classmethod
    def effect(cls, type, delta: int) -> int:
        """
        Signed change a delta has for a transaction type.

        sale/expiry/damage always reduce, restock/purchase always increase,
        whatever the sign the caller used.
        """
        tx_type = coerce_type(type)
        if tx_type in TransactionType.decreasing():
            return -abs(delta)
        if tx_type in TransactionType.increasing():
            return abs(delta)
        raise ValidationError(
            'INVALID_TYPE',
            message='Adjustments set an absolute quantity; use set_quantity()',
            type=tx_type.value,
        )

    @classmethod
    def apply_delta(cls, product_id: int, delta: int, type) -> LedgerResult:
        """
        Apply a relative change.

        Raises:
            ValidationError('INVALID_QUANTITY'): If delta is not a non-zero int
            ValidationError('INVALID_TYPE'): If type is unknown or adjustment
            InsufficientStockError: If the result would be negative
            NotFoundError('PRODUCT_NOT_FOUND'): If the product doesn't exist
        """
        _require_int(delta, 'delta')
        if delta == 0:
            raise ValidationError('INVALID_QUANTITY', field='delta', value=delta)
        change = cls.effect(type, delta)

        with cls.lock(product_id), transaction.atomic():
            product = cls._locked_product(product_id)
            previous = product.quantity
            new = previous + change

            if new < 0:
                raise InsufficientStockError(
                    available=previous,
                    requested=abs(change),
                    product_id=product_id,
                )

            cls._write(product, new)

        logger.info(
            "stock.apply",
            extra={
                "product_id": product_id,
                "type": str(type),
                "delta": change,
                "previous": previous,
                "new": new,
            },
        )
        return LedgerResult(product_id, previous, new)

    @classmethod
    def set_quantity(cls, product_id: int, quantity: int) -> LedgerResult:
        """
        Set an absolute quantity (inventory count / adjustment).

        Raises:
            ValidationError('INVALID_QUANTITY'): If quantity is not an int >= 0
            NotFoundError('PRODUCT_NOT_FOUND'): If the product doesn't exist
        """
        _require_int(quantity, 'quantity')
        if quantity < 0:
            raise ValidationError('INVALID_QUANTITY', field='quantity', value=quantity)

        with cls.lock(product_id), transaction.atomic():
            product = cls._locked_product(product_id)
            previous = product.quantity
            cls._write(product, quantity)

        logger.info(
            "stock.set",
            extra={
                "product_id": product_id,
                "previous": previous,
                "new": quantity,
            },
        )
        return LedgerResult(product_id, previous, quantity)

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _locked_product(cls, product_id: int) -> Product:
        try:
            return Product.objects.select_for_update().get(pk=product_id)
        except Product.DoesNotExist:
            raise NotFoundError('PRODUCT_NOT_FOUND', product_id=product_id)

    @classmethod
    def _write(cls, product: Product, quantity: int) -> None:
        product.quantity = quantity
        product.updated_at = timezone.now()
        product.save(update_fields=['quantity', 'updated_at'])
