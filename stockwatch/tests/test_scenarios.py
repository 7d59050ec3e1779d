"""
Tests for the scenario harness and the local detection heuristics it drives.
"""

import pytest

from stockwatch.exceptions import ValidationError
from stockwatch.models import Anomaly, Product, StockTransaction
from stockwatch.scenarios import ScenarioHarness
from stockwatch.services.catalog import ProductCatalog
from stockwatch.services.ledger import StockLedger
from stockwatch.services.recorder import TransactionRecorder


pytestmark = pytest.mark.django_db


class TestScenarios:

    def test_low_stock(self):
        result = ScenarioHarness.run_scenario('low_stock')

        product = Product.objects.get(pk=result.product_id)
        assert result.scenario == 'low_stock'
        assert result.detection_pass == 'general'
        assert product.is_fixture
        assert product.name.startswith('Test Product - ')
        assert Anomaly.objects.filter(product=product, type='low_stock').exists()

    def test_theft(self):
        result = ScenarioHarness.run_scenario('theft')

        assert result.detection_pass == 'theft'
        assert StockLedger.quantity(result.product_id) == 85
        anomaly = Anomaly.objects.get(product_id=result.product_id, type='theft')
        assert anomaly.metadata['unexplained_units'] == 5

    def test_shrinkage(self):
        """8 sales of 2 with 4 unrecorded 1-unit losses from 200."""
        result = ScenarioHarness.run_scenario('shrinkage')

        assert StockLedger.quantity(result.product_id) == 200 - 16 - 4
        sales = StockTransaction.objects.filter(product_id=result.product_id, type='sale')
        assert sales.count() == 8
        assert Anomaly.objects.filter(
            product_id=result.product_id, type__in=['shrinkage', 'theft'],
        ).exists()
        assert result.anomalies_detected >= 1

    def test_shrinkage_is_classified_as_shrinkage(self):
        result = ScenarioHarness.run_scenario('shrinkage')

        anomaly = Anomaly.objects.get(product_id=result.product_id, type='shrinkage')
        assert anomaly.metadata['events'] == 4
        assert anomaly.metadata['unexplained_units'] == 4

    def test_unauthorized_access(self):
        result = ScenarioHarness.run_scenario('unauthorized_access')

        assert StockLedger.quantity(result.product_id) == 47
        assert Anomaly.objects.filter(product_id=result.product_id, type='unauthorized_access').exists()

    @pytest.mark.parametrize('alias, scenario', [
        ('unauthorized', 'unauthorized_access'),
        ('theft_focused', 'theft'),
    ])
    def test_aliases(self, alias, scenario):
        assert ScenarioHarness.run_scenario(alias).scenario == scenario

    def test_general_has_no_fixture(self):
        result = ScenarioHarness.run_scenario('general')

        assert result.product_id is None
        assert not Product.objects.filter(is_fixture=True).exists()

    def test_unknown_scenario(self):
        with pytest.raises(ValidationError) as exc:
            ScenarioHarness.run_scenario('meteor')

        assert exc.value.code == 'UNKNOWN_SCENARIO'

    def test_unauthorized_history_replays_to_ledger(self):
        result = ScenarioHarness.run_scenario('unauthorized_access')

        assert TransactionRecorder.replay(result.product_id, 50) == StockLedger.quantity(result.product_id)


class TestCleanup:

    def test_removes_fixtures_and_their_history(self):
        ScenarioHarness.run_scenario('shrinkage')
        ScenarioHarness.run_scenario('low_stock')

        assert ScenarioHarness.cleanup() == 2
        assert not Product.objects.filter(is_fixture=True).exists()
        assert StockTransaction.objects.count() == 0
        assert Anomaly.objects.count() == 0

    def test_production_products_survive(self, product):
        lookalike = ProductCatalog.create_product('Test Product - Real shelf item', quantity=3)
        ScenarioHarness.run_scenario('theft')

        ScenarioHarness.cleanup()

        assert Product.objects.filter(pk__in=[product.pk, lookalike.pk]).count() == 2

    def test_nothing_to_clean(self, db):
        assert ScenarioHarness.cleanup() == 0


class TestLocalHeuristics:
    """Heuristics on production data, outside the harness."""

    def test_clean_history_has_no_discrepancy(self, product):
        from stockwatch.adapters.local import unexplained_losses

        StockLedger.apply_delta(product.pk, 10, 'sale')
        TransactionRecorder.record(product.pk, 'sale', 100, 90)
        product.refresh_from_db()

        assert unexplained_losses(product) == ([], 90)

    def test_no_history(self, product):
        from stockwatch.adapters.local import unexplained_losses

        assert unexplained_losses(product) == ([], None)
