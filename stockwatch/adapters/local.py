"""
Local Detection Backend — rule-based detection inside the process.

Answers in the same payload shapes as the remote detection service, so it
can stand in for it in development, in tests and for the scenario harness.

Rules:
    low_stock            quantity <= minimum_stock
    expiry               past expiry_date with stock left
    unusual_sales        sold in 24h > 5 × minimum_stock
    theft / shrinkage    ledger discrepancies: stock that disappeared
                         without a transaction explaining it
    unauthorized_access  repeated unattributed stock reductions (theft pass)

Ledger discrepancies are read under the product's ledger lock; a product
whose lock is held past snapshot_timeout is skipped for that pass.

Usage in settings.py:
    STOCKWATCH = {
        "DETECTION_BACKEND": "stockwatch.adapters.local.LocalDetectionBackend",
    }
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from django.db.models import Count, Sum
from django.utils import timezone

from stockwatch.conf import stockwatch_settings
from stockwatch.exceptions import LedgerBusyError
from stockwatch.models.anomaly import Anomaly
from stockwatch.models.enums import AnomalyType, Severity, TransactionType
from stockwatch.models.product import Product
from stockwatch.models.transaction import StockTransaction
from stockwatch.services.ledger import StockLedger

logger = logging.getLogger('stockwatch')

LOSS_TYPES = (AnomalyType.THEFT, AnomalyType.SHRINKAGE, AnomalyType.UNAUTHORIZED_ACCESS)
ALERT_SEVERITIES = (Severity.HIGH, Severity.CRITICAL)


def unexplained_losses(product: Product) -> tuple[list[int], int | None]:
    """
    Units that vanished between recorded transactions.

    Each transaction should start where the previous one ended, and the
    product should hold what the last one left. Every shortfall is one
    loss event.

    Returns:
        (losses, expected_quantity); expected_quantity is None when the
        product has no history to compare against.
    """
    losses = []
    expected = None
    history = StockTransaction.objects.for_product(product.pk).in_commit_order()

    for previous, new in history.values_list('previous_quantity', 'new_quantity'):
        if expected is not None and previous < expected:
            losses.append(expected - previous)
        expected = new

    if expected is not None and product.quantity < expected:
        losses.append(expected - product.quantity)

    return losses, expected


def _estimated_loss(metadata) -> Decimal:
    try:
        return Decimal(str(metadata.get("estimated_loss") or "0"))
    except (InvalidOperation, AttributeError):
        return Decimal("0")


class LocalDetectionBackend:
    """DetectionBackend implemented with database heuristics."""

    def __init__(self, theft_gap_units: int | None = None,
                 unattributed_reductions: int | None = None,
                 snapshot_timeout: float | None = None):
        self.theft_gap_units = theft_gap_units or stockwatch_settings.THEFT_GAP_UNITS
        self.unattributed_reductions = unattributed_reductions or stockwatch_settings.UNATTRIBUTED_REDUCTIONS
        self.snapshot_timeout = snapshot_timeout

    # ══════════════════════════════════════════════════════════════
    # PASSES
    # ══════════════════════════════════════════════════════════════

    def run_general(self) -> dict[str, Any]:
        anomalies = []
        for product in Product.objects.all():
            anomalies.extend(self._stock_level(product))
            anomalies.extend(self._discrepancy(product))
        anomalies.extend(self._unusual_sales())

        return {
            "anomaliesDetected": len(anomalies),
            "alertsGenerated": self._alerts(anomalies),
            "anomalies": anomalies,
        }

    def run_theft(self) -> dict[str, Any]:
        anomalies = []
        for product in Product.objects.all():
            anomalies.extend(self._discrepancy(product))
        anomalies.extend(self._unattributed_reductions())

        return {
            "totalAnomaliesDetected": len(anomalies),
            "alertsGenerated": self._alerts(anomalies),
            "anomalies": anomalies,
        }

    def theft_analytics(self, days: int = 30) -> dict[str, Any]:
        since = timezone.now() - timedelta(days=days)
        incidents = Anomaly.objects.filter(type__in=LOSS_TYPES, created_at__gte=since)

        per_product: dict[int, dict[str, Any]] = defaultdict(
            lambda: {"incidents": 0, "estimatedLoss": Decimal("0"), "name": ""}
        )
        total_loss = Decimal("0")
        for anomaly in incidents.select_related('product'):
            loss = _estimated_loss(anomaly.metadata)
            total_loss += loss
            if anomaly.product_id is not None:
                entry = per_product[anomaly.product_id]
                entry["incidents"] += 1
                entry["estimatedLoss"] += loss
                entry["name"] = anomaly.product.name

        ranked = sorted(per_product.items(),
                        key=lambda item: (item[1]["incidents"], item[1]["estimatedLoss"]),
                        reverse=True)[:5]

        counts = incidents.aggregate(total=Count('id'))
        resolved = incidents.filter(resolved=True).count()
        return {
            "totalIncidents": counts["total"],
            "resolvedIncidents": resolved,
            "activeIncidents": counts["total"] - resolved,
            "estimatedLoss": str(total_loss),
            "highRiskProducts": [
                {"productId": pk, "name": data["name"], "incidents": data["incidents"],
                 "estimatedLoss": str(data["estimatedLoss"])}
                for pk, data in ranked
            ],
        }

    # ══════════════════════════════════════════════════════════════
    # RULES
    # ══════════════════════════════════════════════════════════════

    def _stock_level(self, product: Product) -> list[dict[str, Any]]:
        found = []
        if product.quantity <= product.minimum_stock:
            found.append({
                "type": AnomalyType.LOW_STOCK.value,
                "severity": Severity.HIGH.value if product.quantity == 0 else Severity.MEDIUM.value,
                "productId": product.pk,
                "aiConfidence": 1.0,
                "description": f"{product.name} is at {product.quantity} units "
                               f"(minimum {product.minimum_stock})",
                "metadata": {"quantity": product.quantity, "minimum_stock": product.minimum_stock},
            })
        if product.expiry_date and product.expiry_date < date.today() and product.quantity > 0:
            found.append({
                "type": AnomalyType.EXPIRY.value,
                "severity": Severity.MEDIUM.value,
                "productId": product.pk,
                "aiConfidence": 1.0,
                "description": f"{product.quantity} units of {product.name} "
                               f"expired on {product.expiry_date.isoformat()}",
                "metadata": {"expiry_date": product.expiry_date.isoformat()},
            })
        return found

    def _discrepancy(self, product: Product) -> list[dict[str, Any]]:
        # Under the ledger lock a mutation is either fully applied and
        # recorded or not started, so its own change never reads as a gap
        try:
            with StockLedger.lock(product.pk, timeout=self.snapshot_timeout):
                product = Product.objects.filter(pk=product.pk).first()
                if product is None:
                    return []
                losses, expected = unexplained_losses(product)
        except LedgerBusyError:
            logger.debug("detection.product_busy", extra={"product_id": product.pk})
            return []
        if not losses:
            return []

        total = sum(losses)
        largest = max(losses)
        metadata = {
            "unexplained_units": total,
            "events": len(losses),
            "largest_event": largest,
            "expected_quantity": expected,
            "actual_quantity": product.quantity,
            "estimated_loss": str(product.price * total),
        }

        if largest >= self.theft_gap_units:
            return [{
                "type": AnomalyType.THEFT.value,
                "severity": Severity.CRITICAL.value if total >= 4 * self.theft_gap_units else Severity.HIGH.value,
                "productId": product.pk,
                "aiConfidence": min(0.95, 0.6 + 0.05 * largest),
                "description": f"{largest} units of {product.name} disappeared without a transaction",
                "metadata": metadata,
            }]

        return [{
            "type": AnomalyType.SHRINKAGE.value,
            "severity": Severity.MEDIUM.value if len(losses) >= 3 else Severity.LOW.value,
            "productId": product.pk,
            "aiConfidence": min(0.9, 0.5 + 0.1 * len(losses)),
            "description": f"{total} units of {product.name} lost across "
                           f"{len(losses)} unrecorded decrements",
            "metadata": metadata,
        }]

    def _unusual_sales(self) -> list[dict[str, Any]]:
        since = timezone.now() - timedelta(days=1)
        sold = (
            StockTransaction.objects
            .filter(type=TransactionType.SALE, created_at__gte=since)
            .values('product_id', 'product__name', 'product__minimum_stock')
            .annotate(units=Sum('quantity'))
        )
        found = []
        for row in sold:
            units = -row["units"]
            threshold = row["product__minimum_stock"] * 5
            if threshold and units > threshold:
                found.append({
                    "type": AnomalyType.UNUSUAL_SALES.value,
                    "severity": Severity.MEDIUM.value,
                    "productId": row["product_id"],
                    "aiConfidence": 0.7,
                    "description": f"{row['product__name']} sold unusually fast "
                                   f"({units} units in 24h)",
                    "metadata": {"units_24h": units, "threshold": threshold},
                })
        return found

    def _unattributed_reductions(self) -> list[dict[str, Any]]:
        since = timezone.now() - timedelta(days=1)
        rows = (
            StockTransaction.objects
            .filter(actor='', quantity__lt=0, created_at__gte=since)
            .values('product_id', 'product__name')
            .annotate(events=Count('id'), units=Sum('quantity'))
            .filter(events__gte=self.unattributed_reductions)
        )
        return [{
            "type": AnomalyType.UNAUTHORIZED_ACCESS.value,
            "severity": Severity.HIGH.value,
            "productId": row["product_id"],
            "aiConfidence": 0.75,
            "description": f"{row['events']} stock reductions of {row['product__name']} "
                           f"with no recorded actor",
            "metadata": {"events": row["events"], "units": -row["units"]},
        } for row in rows]

    def _alerts(self, anomalies: list[dict[str, Any]]) -> int:
        return sum(1 for a in anomalies if a["severity"] in ALERT_SEVERITIES)
