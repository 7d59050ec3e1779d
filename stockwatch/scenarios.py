"""
Scenario harness — seeded stock histories for exercising detection.

Each scenario creates a disposable fixture product, scripts stock changes
through the mutation pipeline, runs one detection pass and returns its
result tagged with the scenario name and the fixture product.

Fixture products carry is_fixture=True AND a name starting with
STOCKWATCH['SCENARIO_PRODUCT_PREFIX']. cleanup() only touches rows matching
both, so production products are never swept.

Usage:
    from stockwatch.scenarios import ScenarioHarness

    result = ScenarioHarness.run_scenario('shrinkage')
    result.anomalies_detected
    ScenarioHarness.cleanup()
"""

import logging
import uuid
from decimal import Decimal

from django.db import models, transaction
from django.db.models import F

from stockwatch.conf import stockwatch_settings
from stockwatch.exceptions import ValidationError
from stockwatch.models.anomaly import Anomaly
from stockwatch.models.enums import DetectionPass, TransactionType
from stockwatch.models.product import Product
from stockwatch.models.transaction import StockTransaction
from stockwatch.protocols.detection import DetectionRunResult
from stockwatch.services.detection import DetectionTrigger
from stockwatch.services.ledger import StockLedger
from stockwatch.services.orchestrator import MutationOrchestrator, MutationRequest
from stockwatch.services.triage import AnomalyRegistry

logger = logging.getLogger('stockwatch')

HARNESS_ACTOR = 'scenario-harness'

ALIASES = {
    'unauthorized': 'unauthorized_access',
    'theft_focused': 'theft',
}


class ScenarioHarness:
    """Synthetic workloads with a known shape."""

    SCENARIOS = ('low_stock', 'theft', 'shrinkage', 'unauthorized_access', 'general')

    @classmethod
    def run_scenario(cls, name: str, detection: DetectionTrigger | None = None) -> DetectionRunResult:
        """
        Seed a scenario and run the detection pass it targets.

        Raises:
            ValidationError('UNKNOWN_SCENARIO'): If name is not a scenario
            DetectionUnavailableError: If the detection pass failed
        """
        scenario = ALIASES.get(name, name)
        if scenario not in cls.SCENARIOS:
            raise ValidationError('UNKNOWN_SCENARIO', scenario=name, allowed=list(cls.SCENARIOS))

        detection = detection or DetectionTrigger()
        seed = getattr(cls, f'_seed_{scenario}')
        product, detection_pass = seed()

        result = detection.run_detection(detection_pass)
        AnomalyRegistry.merge(result)

        logger.info(
            "scenario.completed",
            extra={
                "scenario": scenario,
                "product_id": product.pk if product else None,
                "anomalies_detected": result.anomalies_detected,
            },
        )
        return result.tagged(scenario, product.pk if product else None)

    @classmethod
    def cleanup(cls) -> int:
        """
        Remove fixture products with their transactions and anomalies.

        Returns:
            Number of products removed
        """
        prefix = stockwatch_settings.SCENARIO_PRODUCT_PREFIX
        with transaction.atomic():
            fixtures = Product.objects.filter(is_fixture=True, name__startswith=prefix)
            ids = list(fixtures.values_list('pk', flat=True))
            if not ids:
                return 0

            # Fixture history is test data; bypass the append-only guard for it only
            models.QuerySet.delete(StockTransaction.objects.filter(product_id__in=ids))
            Anomaly.objects.filter(product_id__in=ids).delete()
            Product.objects.filter(pk__in=ids).delete()

        logger.info("scenario.cleanup", extra={"products": len(ids)})
        return len(ids)

    # ══════════════════════════════════════════════════════════════
    # SCENARIOS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _seed_low_stock(cls):
        product = cls._fixture('Low Stock', quantity=5, minimum_stock=10)
        return product, DetectionPass.GENERAL

    @classmethod
    def _seed_theft(cls):
        product = cls._fixture('Theft', quantity=100)
        cls._mutate(product, TransactionType.SALE, 10)
        cls._unrecorded_loss(product, 5)
        return product, DetectionPass.THEFT

    @classmethod
    def _seed_shrinkage(cls):
        product = cls._fixture('Shrinkage', quantity=200)
        for sale in range(1, 9):
            cls._mutate(product, TransactionType.SALE, 2)
            if sale % 2:
                cls._unrecorded_loss(product, 1)
        return product, DetectionPass.GENERAL

    @classmethod
    def _seed_unauthorized_access(cls):
        product = cls._fixture('Unauthorized Access', quantity=50, minimum_stock=5)
        for _ in range(3):
            cls._mutate(product, TransactionType.DAMAGE, 1, actor=None)
        return product, DetectionPass.THEFT

    @classmethod
    def _seed_general(cls):
        return None, DetectionPass.GENERAL

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _fixture(cls, label: str, quantity: int, minimum_stock: int | None = None) -> Product:
        prefix = stockwatch_settings.SCENARIO_PRODUCT_PREFIX
        if minimum_stock is None:
            minimum_stock = stockwatch_settings.DEFAULT_MINIMUM_STOCK
        return Product.objects.create(
            name=f"{prefix}{label} {uuid.uuid4().hex[:8]}",
            category='Scenario',
            quantity=quantity,
            price=Decimal('10.00'),
            minimum_stock=minimum_stock,
            is_fixture=True,
        )

    @classmethod
    def _mutate(cls, product: Product, type: TransactionType, quantity: int, actor=HARNESS_ACTOR):
        orchestrator = MutationOrchestrator(passes=())
        orchestrator.submit(
            MutationRequest(product_id=product.pk, type=type, quantity=quantity,
                            reason='Scenario script'),
            actor=actor,
        )

    @classmethod
    def _unrecorded_loss(cls, product: Product, units: int) -> None:
        """Stock that leaves the shelf without a transaction."""
        with StockLedger.lock(product.pk):
            Product.objects.filter(pk=product.pk, is_fixture=True).update(quantity=F('quantity') - units)
