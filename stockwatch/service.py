"""
Inventory Service — the single public interface for stock operations.

Usage:
    from stockwatch import inventory, StockwatchError

    product = inventory.create_product('Espresso beans', quantity=100, price='12.50')
    outcome = inventory.sell(product.pk, 10, reason='Walk-in customer')
    outcome.transaction.new_quantity       # 90
    inventory.list_anomalies(resolved=False)

The actor and notification sink come from stockwatch.context unless passed
explicitly.
"""

from stockwatch import context
from stockwatch.models.enums import DetectionPass, TransactionType
from stockwatch.services.catalog import ProductCatalog
from stockwatch.services.detection import DetectionTrigger
from stockwatch.services.orchestrator import MutationOrchestrator, MutationRequest
from stockwatch.services.recorder import TransactionRecorder
from stockwatch.services.triage import AnomalyRegistry


class Inventory:
    """
    Single interface for products, stock changes and anomaly triage.

    Parameter convention: (product_id, quantity, ...)
    Follows natural language: "Sell product 7, 3 units"

    IMPORTANT: Every stock change goes through MutationOrchestrator, which
    serialises changes per product. See its module docstring.
    """

    # ══════════════════════════════════════════════════════════════
    # PRODUCTS
    # ══════════════════════════════════════════════════════════════

    get_product = ProductCatalog.get_product
    list_products = ProductCatalog.list_products
    create_product = ProductCatalog.create_product
    update_product = ProductCatalog.update_product
    delete_product = ProductCatalog.delete_product

    # ══════════════════════════════════════════════════════════════
    # STOCK CHANGES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def apply_stock_change(cls, product_id: int, quantity: int, type,
                           reason: str = '', actor=None, passes=None):
        """
        Change stock and run detection.

        Args:
            product_id: Product to change
            quantity: Amount (absolute counted quantity for 'adjustment')
            type: TransactionType value
            reason: Free-text reason stored on the transaction
            actor: Who did it (None = context.current_actor())
            passes: Detection passes (None = configured default)

        Returns:
            MutationOutcome
        """
        if actor is None:
            actor = context.current_actor()
        orchestrator = MutationOrchestrator(notify=context.notification_sink(), passes=passes)
        return orchestrator.submit(
            MutationRequest(product_id=product_id, type=type, quantity=quantity, reason=reason),
            actor=actor,
        )

    @classmethod
    def sell(cls, product_id: int, quantity: int, reason: str = '', actor=None):
        return cls.apply_stock_change(product_id, quantity, TransactionType.SALE, reason, actor)

    @classmethod
    def restock(cls, product_id: int, quantity: int, reason: str = '', actor=None):
        return cls.apply_stock_change(product_id, quantity, TransactionType.RESTOCK, reason, actor)

    @classmethod
    def purchase(cls, product_id: int, quantity: int, reason: str = '', actor=None):
        return cls.apply_stock_change(product_id, quantity, TransactionType.PURCHASE, reason, actor)

    @classmethod
    def expire(cls, product_id: int, quantity: int, reason: str = '', actor=None):
        return cls.apply_stock_change(product_id, quantity, TransactionType.EXPIRY, reason, actor)

    @classmethod
    def damage(cls, product_id: int, quantity: int, reason: str = '', actor=None):
        return cls.apply_stock_change(product_id, quantity, TransactionType.DAMAGE, reason, actor)

    @classmethod
    def adjust(cls, product_id: int, counted_quantity: int, reason: str = '', actor=None):
        """Set stock to a counted quantity. Also the way to compensate a mistake."""
        return cls.apply_stock_change(product_id, counted_quantity, TransactionType.ADJUSTMENT, reason, actor)

    @classmethod
    def list_transactions(cls, **filters):
        """See TransactionRecorder.list()."""
        return TransactionRecorder.list(**filters)

    # ══════════════════════════════════════════════════════════════
    # ANOMALIES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def list_anomalies(cls, **filters):
        """See AnomalyRegistry.list()."""
        return AnomalyRegistry.list(**filters)

    resolve_anomaly = AnomalyRegistry.resolve
    acknowledge_anomaly = AnomalyRegistry.acknowledge

    @classmethod
    def run_detection(cls, detection_pass=DetectionPass.GENERAL, merge: bool = True):
        """
        Run one detection pass outside a mutation.

        Raises:
            DetectionUnavailableError: If the pass failed or timed out
        """
        result = DetectionTrigger().run_detection(detection_pass)
        if merge:
            AnomalyRegistry.merge(result)
        return result

    @classmethod
    def theft_analytics(cls, days: int = 30):
        """Aggregate theft figures for reporting."""
        return DetectionTrigger().theft_analytics(days=days)
