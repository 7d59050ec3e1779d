"""
Tests for StockLedger.
"""

import threading

import pytest

from stockwatch.exceptions import InsufficientStockError, LedgerBusyError, NotFoundError, ValidationError
from stockwatch.models import StockTransaction, TransactionType
from stockwatch.services.ledger import StockLedger


pytestmark = pytest.mark.django_db


class TestEffect:
    """Tests for StockLedger.effect()."""

    @pytest.mark.parametrize('tx_type', ['sale', 'expiry', 'damage'])
    def test_decreasing_types_always_reduce(self, tx_type):
        assert StockLedger.effect(tx_type, 4) == -4
        assert StockLedger.effect(tx_type, -4) == -4

    @pytest.mark.parametrize('tx_type', ['restock', 'purchase'])
    def test_increasing_types_always_add(self, tx_type):
        assert StockLedger.effect(tx_type, 4) == 4
        assert StockLedger.effect(tx_type, -4) == 4

    def test_adjustment_has_no_delta_effect(self):
        with pytest.raises(ValidationError) as exc:
            StockLedger.effect(TransactionType.ADJUSTMENT, 4)

        assert exc.value.code == 'INVALID_TYPE'

    def test_unknown_type(self):
        with pytest.raises(ValidationError) as exc:
            StockLedger.effect('gift', 1)

        assert exc.value.code == 'INVALID_TYPE'


class TestApplyDelta:
    """Tests for StockLedger.apply_delta()."""

    def test_sale_reduces_quantity(self, product):
        result = StockLedger.apply_delta(product.pk, 10, 'sale')

        product.refresh_from_db()
        assert (result.previous_quantity, result.new_quantity) == (100, 90)
        assert result.applied_delta == -10
        assert product.quantity == 90

    def test_restock_increases_quantity(self, product):
        result = StockLedger.apply_delta(product.pk, 25, TransactionType.RESTOCK)

        assert result.new_quantity == 125
        assert StockLedger.quantity(product.pk) == 125

    def test_updates_timestamp(self, product):
        before = product.updated_at

        StockLedger.apply_delta(product.pk, 1, 'sale')

        product.refresh_from_db()
        assert product.updated_at > before

    def test_insufficient_stock_changes_nothing(self, scarce_product):
        with pytest.raises(InsufficientStockError) as exc:
            StockLedger.apply_delta(scarce_product.pk, 10, 'sale')

        assert exc.value.code == 'INSUFFICIENT_QUANTITY'
        assert exc.value.available == 5
        assert exc.value.requested == 10
        assert StockLedger.quantity(scarce_product.pk) == 5

    def test_selling_everything_is_allowed(self, scarce_product):
        result = StockLedger.apply_delta(scarce_product.pk, 5, 'sale')

        assert result.new_quantity == 0

    def test_ledger_does_not_record_transactions(self, product):
        StockLedger.apply_delta(product.pk, 3, 'sale')

        assert StockTransaction.objects.count() == 0

    @pytest.mark.parametrize('delta', [0, 1.5, '3', True])
    def test_invalid_delta(self, product, delta):
        with pytest.raises(ValidationError) as exc:
            StockLedger.apply_delta(product.pk, delta, 'sale')

        assert exc.value.code == 'INVALID_QUANTITY'
        assert StockLedger.quantity(product.pk) == 100

    def test_unknown_product(self, db):
        with pytest.raises(NotFoundError) as exc:
            StockLedger.apply_delta(999999, 1, 'sale')

        assert exc.value.code == 'PRODUCT_NOT_FOUND'


class TestSetQuantity:
    """Tests for StockLedger.set_quantity()."""

    def test_sets_absolute_quantity(self, product):
        result = StockLedger.set_quantity(product.pk, 42)

        assert (result.previous_quantity, result.new_quantity) == (100, 42)
        assert StockLedger.quantity(product.pk) == 42

    def test_zero_is_a_valid_count(self, product):
        assert StockLedger.set_quantity(product.pk, 0).new_quantity == 0

    def test_negative_count_rejected(self, product):
        with pytest.raises(ValidationError):
            StockLedger.set_quantity(product.pk, -1)

        assert StockLedger.quantity(product.pk) == 100


class TestLock:
    """Tests for StockLedger.lock()."""

    def test_lock_is_reentrant(self, product):
        with StockLedger.lock(product.pk):
            StockLedger.apply_delta(product.pk, 1, 'sale')

        assert StockLedger.quantity(product.pk) == 99

    def test_busy_lock_times_out(self, product):
        held = threading.Event()
        release = threading.Event()

        def holder():
            with StockLedger.lock(product.pk):
                held.set()
                release.wait(5)

        thread = threading.Thread(target=holder)
        thread.start()
        held.wait(5)
        try:
            with pytest.raises(LedgerBusyError) as exc:
                with StockLedger.lock(product.pk, timeout=0.05):
                    pass
        finally:
            release.set()
            thread.join()

        assert exc.value.code == 'LEDGER_BUSY'

    def test_other_products_not_blocked(self, product, scarce_product):
        with StockLedger.lock(product.pk):
            with StockLedger.lock(scarce_product.pk, timeout=0.05):
                pass
