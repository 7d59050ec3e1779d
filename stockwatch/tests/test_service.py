"""
Tests for the inventory facade and the process-wide context.
"""

from decimal import Decimal

import pytest
from django.test import override_settings

from stockwatch import context, inventory, StockwatchError
from stockwatch.exceptions import InsufficientStockError
from stockwatch.models import Anomaly, StockTransaction
from stockwatch.models.enums import MutationState


pytestmark = pytest.mark.django_db


class TestStockChanges:
    """Tests for inventory.apply_stock_change() and its shortcuts."""

    def test_sale_scenario(self, db):
        product = inventory.create_product('Espresso Beans', quantity=100, minimum_stock=10)

        outcome = inventory.sell(product.pk, 10)

        assert outcome.transaction.previous_quantity == 100
        assert outcome.transaction.new_quantity == 90
        assert inventory.get_product(product.pk).quantity == 90

    def test_insufficient_stock_scenario(self, db):
        product = inventory.create_product('Oat Milk', quantity=5)

        with pytest.raises(InsufficientStockError):
            inventory.sell(product.pk, 10)

        assert inventory.get_product(product.pk).quantity == 5
        assert StockTransaction.objects.count() == 0

    def test_shortcuts(self, product):
        inventory.restock(product.pk, 10)
        inventory.purchase(product.pk, 5)
        inventory.expire(product.pk, 2)
        inventory.damage(product.pk, 3)
        outcome = inventory.adjust(product.pk, 100, reason='Stock count')

        assert outcome.transaction.type == 'adjustment'
        assert outcome.transaction.quantity == -10
        assert [tx.type for tx in inventory.list_transactions(product_id=product.pk)] == [
            'adjustment', 'damage', 'expiry', 'purchase', 'restock',
        ]

    def test_generic_entry_point(self, product):
        outcome = inventory.apply_stock_change(product.pk, 4, 'sale', reason='Online order')

        assert outcome.state == MutationState.COMPLETED
        assert outcome.transaction.reason == 'Online order'

    def test_errors_share_a_base(self, scarce_product):
        with pytest.raises(StockwatchError) as exc:
            inventory.sell(scarce_product.pk, 99)

        assert exc.value.as_dict()['code'] == 'INSUFFICIENT_QUANTITY'


class TestContext:
    """Actor and sink come from stockwatch.context."""

    def test_actor_from_context(self, product, user):
        context.initialize(actor=user)

        outcome = inventory.sell(product.pk, 1)

        assert context.is_initialized()
        assert context.current_actor() == user
        assert outcome.transaction.actor == 'clerk'

    def test_explicit_actor_wins(self, product, user):
        context.initialize(actor=user)

        outcome = inventory.sell(product.pk, 1, actor='pos-terminal-2')

        assert outcome.transaction.actor == 'pos-terminal-2'

    def test_sink_from_context(self, product, sink):
        context.initialize(notify=sink)

        inventory.sell(product.pk, 1)

        assert sink.levels == ['success']

    @override_settings(STOCKWATCH={
        'DETECTION_BACKEND': 'stockwatch.adapters.noop.NoopDetectionBackend',
        'NOTIFICATION_SINK': 'stockwatch.context.log_sink',
    })
    def test_sink_from_settings(self):
        context.initialize()

        assert context.notification_sink() is context.log_sink

    def test_teardown_forgets_everything(self, user, sink):
        context.initialize(actor=user, notify=sink)
        context.teardown()

        assert not context.is_initialized()
        assert context.current_actor() is None
        assert context.notification_sink() is context.log_sink


class TestAnomalies:

    def test_run_detection_merges(self, scarce_product):
        result = inventory.run_detection('general')

        assert result.anomalies_detected >= 1
        anomaly = inventory.list_anomalies(product_id=scarce_product.pk).get()
        assert anomaly.type == 'low_stock'

        inventory.acknowledge_anomaly(anomaly.pk)
        inventory.resolve_anomaly(anomaly.pk)
        assert inventory.list_anomalies(resolved=False, product_id=scarce_product.pk).count() == 0

    def test_run_detection_without_merge(self, scarce_product):
        inventory.run_detection('general', merge=False)

        assert Anomaly.objects.count() == 0

    def test_theft_analytics(self, product):
        Anomaly.objects.create(product=product, type='theft', severity='high',
                               metadata={'estimated_loss': '62.50'})

        analytics = inventory.theft_analytics(days=30)

        assert analytics.total_incidents == 1
        assert analytics.active_incidents == 1
        assert analytics.estimated_loss == Decimal('62.50')
        assert analytics.high_risk_products[0].product_id == product.pk

    def test_theft_analytics_ignores_unreadable_loss(self, product):
        Anomaly.objects.create(product=product, type='theft', severity='high',
                               metadata={'estimated_loss': 'unknown'})
        Anomaly.objects.create(product=product, type='shrinkage', severity='low',
                               metadata={'estimated_loss': '10.00'})

        analytics = inventory.theft_analytics(days=30)

        assert analytics.total_incidents == 2
        assert analytics.estimated_loss == Decimal('10.00')
        assert analytics.high_risk_products[0].incidents == 2
