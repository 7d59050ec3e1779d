"""
Tests for TransactionRecorder and the StockTransaction ledger.
"""

from datetime import timedelta

import pytest
from django.utils import timezone

from stockwatch.exceptions import ValidationError
from stockwatch.models import StockTransaction, TransactionType
from stockwatch.services.recorder import TransactionRecorder, actor_label


pytestmark = pytest.mark.django_db


class TestRecord:
    """Tests for TransactionRecorder.record()."""

    def test_record_stores_signed_quantity(self, product):
        tx = TransactionRecorder.record(product.pk, 'sale', 100, 90, reason='Counter')

        assert tx.pk is not None
        assert tx.type == TransactionType.SALE
        assert tx.quantity == -10
        assert (tx.previous_quantity, tx.new_quantity) == (100, 90)
        assert tx.reason == 'Counter'
        assert tx.actor == ''

    def test_record_with_user_actor(self, product, user):
        tx = TransactionRecorder.record(product.pk, 'restock', 100, 120, actor=user)

        assert tx.actor == 'clerk'

    def test_record_rejects_negative_quantities(self, product):
        with pytest.raises(ValidationError) as exc:
            TransactionRecorder.record(product.pk, 'sale', 3, -2)

        assert exc.value.code == 'INVALID_FIELD'
        assert StockTransaction.objects.count() == 0

    def test_record_rejects_unknown_type(self, product):
        with pytest.raises(ValidationError):
            TransactionRecorder.record(product.pk, 'gift', 10, 9)


class TestImmutability:
    """Transactions are append-only."""

    def test_save_existing_raises(self, product):
        tx = TransactionRecorder.record(product.pk, 'sale', 100, 90)
        tx.reason = 'Edited'

        with pytest.raises(ValueError):
            tx.save()

    def test_delete_raises(self, product):
        tx = TransactionRecorder.record(product.pk, 'sale', 100, 90)

        with pytest.raises(ValueError):
            tx.delete()

    def test_queryset_update_and_delete_raise(self, product):
        TransactionRecorder.record(product.pk, 'sale', 100, 90)

        with pytest.raises(ValueError):
            StockTransaction.objects.update(reason='x')
        with pytest.raises(ValueError):
            StockTransaction.objects.all().delete()

    def test_inconsistent_quantities_rejected(self, product):
        with pytest.raises(ValueError):
            StockTransaction.objects.create(
                product=product, type='sale', quantity=-5,
                previous_quantity=100, new_quantity=90,
            )


class TestQueries:
    """Tests for list(), history() and replay()."""

    def test_list_newest_first(self, product):
        first = TransactionRecorder.record(product.pk, 'sale', 100, 90)
        second = TransactionRecorder.record(product.pk, 'sale', 90, 80)

        assert list(TransactionRecorder.list(product_id=product.pk)) == [second, first]

    def test_list_filters(self, product, scarce_product):
        TransactionRecorder.record(product.pk, 'sale', 100, 90, reason='Morning rush')
        TransactionRecorder.record(product.pk, 'restock', 90, 140, reason='Supplier')
        TransactionRecorder.record(scarce_product.pk, 'sale', 5, 4)

        assert TransactionRecorder.list(product_id=product.pk).count() == 2
        assert TransactionRecorder.list(type='restock').count() == 1
        assert TransactionRecorder.list(search='rush').count() == 1
        assert len(TransactionRecorder.list(limit=1)) == 1

    def test_list_date_range(self, product):
        TransactionRecorder.record(product.pk, 'sale', 100, 90)
        now = timezone.now()

        assert TransactionRecorder.list(since=now - timedelta(minutes=1)).count() == 1
        assert TransactionRecorder.list(until=now - timedelta(minutes=1)).count() == 0

    def test_history_in_commit_order(self, product):
        first = TransactionRecorder.record(product.pk, 'sale', 100, 90)
        second = TransactionRecorder.record(product.pk, 'sale', 90, 80)

        assert list(TransactionRecorder.history(product.pk)) == [first, second]

    def test_replay_reconstructs_quantity(self, product):
        TransactionRecorder.record(product.pk, 'sale', 100, 90)
        TransactionRecorder.record(product.pk, 'restock', 90, 110)
        TransactionRecorder.record(product.pk, 'adjustment', 110, 105)

        assert TransactionRecorder.replay(product.pk, start_quantity=100) == 105


class TestActorLabel:

    def test_labels(self, user):
        assert actor_label(None) == ''
        assert actor_label('pos-terminal-3') == 'pos-terminal-3'
        assert actor_label(user) == 'clerk'
        assert actor_label(7) == '7'
