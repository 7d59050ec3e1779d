"""
Tests for Stockwatch admin.
"""

from unittest import mock

import pytest
from django.contrib import admin

from stockwatch.admin import AnomalyAdmin, StockTransactionAdmin
from stockwatch.models import Anomaly, StockTransaction


pytestmark = pytest.mark.django_db


@pytest.fixture
def anomalies(product):
    return [
        Anomaly.objects.create(product=product, type='theft', severity='high'),
        Anomaly.objects.create(product=product, type='low_stock', severity='medium', resolved=True),
    ]


class TestAnomalyAdmin:

    def test_resolve_action(self, anomalies, rf):
        model_admin = AnomalyAdmin(Anomaly, admin.site)

        with mock.patch.object(model_admin, 'message_user') as message_user:
            model_admin.resolve_anomalies(rf.get('/'), Anomaly.objects.all())

        assert Anomaly.objects.filter(resolved=False).count() == 0
        assert '1 anomaly(ies) resolved.' in str(message_user.call_args.args[1])

    def test_acknowledge_action(self, anomalies, rf):
        model_admin = AnomalyAdmin(Anomaly, admin.site)

        with mock.patch.object(model_admin, 'message_user'):
            model_admin.acknowledge_anomalies(rf.get('/'), Anomaly.objects.all())

        assert Anomaly.objects.filter(acknowledged_at__isnull=True).count() == 0

    def test_read_only(self, rf):
        for model_admin in (AnomalyAdmin(Anomaly, admin.site),
                            StockTransactionAdmin(StockTransaction, admin.site)):
            assert not model_admin.has_add_permission(rf.get('/'))
            assert not model_admin.has_change_permission(rf.get('/'))
            assert not model_admin.has_delete_permission(rf.get('/'))
