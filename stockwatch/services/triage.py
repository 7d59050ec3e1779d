"""
Anomaly triage — merge detected anomalies and move them through triage.

The registry is the only place that creates Anomaly rows or changes their
triage state. Transitions are one-way and idempotent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Iterable

from django.db import transaction
from django.utils import timezone

from stockwatch.conf import stockwatch_settings
from stockwatch.exceptions import NotFoundError, ValidationError
from stockwatch.models.anomaly import Anomaly
from stockwatch.models.enums import AnomalyType, Severity
from stockwatch.models.product import Product
from stockwatch.protocols.detection import DetectedAnomaly, DetectionRunResult

logger = logging.getLogger('stockwatch')


@dataclass
class MergeResult:
    created: list[Anomaly] = field(default_factory=list)
    duplicates: int = 0


class AnomalyRegistry:
    """Detected anomalies and their triage state."""

    @classmethod
    def merge(cls, detected: DetectionRunResult | Iterable[DetectedAnomaly],
              detection_pass: str = '') -> MergeResult:
        """
        Store newly detected anomalies, skipping duplicates.

        A detected anomaly is a duplicate when an open anomaly with the same
        product and type was created within ANOMALY_DEDUP_WINDOW_HOURS.
        Anomalies referencing unknown products are kept without a product,
        with the reported reference in metadata.
        """
        if isinstance(detected, DetectionRunResult):
            detection_pass = detection_pass or detected.detection_pass
            detected = detected.anomalies

        window = timedelta(hours=stockwatch_settings.ANOMALY_DEDUP_WINDOW_HOURS)
        result = MergeResult()

        with transaction.atomic():
            for item in detected:
                product_id, metadata = cls._resolve_product(item)
                since = timezone.now() - window

                if Anomaly.objects.open().filter(
                    product_id=product_id,
                    type=item.type,
                    created_at__gte=since,
                ).exists():
                    result.duplicates += 1
                    continue

                result.created.append(Anomaly.objects.create(
                    product_id=product_id,
                    type=item.type,
                    severity=item.severity,
                    ai_confidence=item.ai_confidence,
                    description=item.description,
                    metadata=metadata,
                    detection_pass=detection_pass,
                ))

        if result.created:
            logger.warning(
                "anomaly.merged",
                extra={
                    "detection_pass": detection_pass,
                    "anomaly_ids": [a.pk for a in result.created],
                    "duplicates": result.duplicates,
                },
            )
        return result

    @classmethod
    def resolve(cls, anomaly_id: int) -> Anomaly:
        """
        Mark an anomaly resolved. Resolving twice returns the same record.

        Raises:
            NotFoundError('ANOMALY_NOT_FOUND'): If the anomaly doesn't exist
        """
        with transaction.atomic():
            anomaly = cls._locked(anomaly_id)
            if anomaly.resolved:
                return anomaly

            anomaly.resolved = True
            anomaly.resolved_at = timezone.now()
            anomaly.save(update_fields=['resolved', 'resolved_at'])

        logger.info("anomaly.resolved", extra={"anomaly_id": anomaly.pk})
        return anomaly

    @classmethod
    def acknowledge(cls, anomaly_id: int) -> Anomaly:
        """
        Mark an anomaly as seen by an operator. Idempotent.

        Raises:
            NotFoundError('ANOMALY_NOT_FOUND'): If the anomaly doesn't exist
        """
        with transaction.atomic():
            anomaly = cls._locked(anomaly_id)
            if anomaly.acknowledged_at is not None:
                return anomaly

            anomaly.acknowledged_at = timezone.now()
            anomaly.save(update_fields=['acknowledged_at'])

        logger.info("anomaly.acknowledged", extra={"anomaly_id": anomaly.pk})
        return anomaly

    @classmethod
    def get(cls, anomaly_id: int) -> Anomaly:
        try:
            return Anomaly.objects.select_related('product').get(pk=anomaly_id)
        except Anomaly.DoesNotExist:
            raise NotFoundError('ANOMALY_NOT_FOUND', anomaly_id=anomaly_id)

    @classmethod
    def list(cls, resolved: bool | None = None, severity=None,
             product_id: int | None = None, type=None):
        """Anomalies matching the filters, newest first."""
        qs = Anomaly.objects.select_related('product')

        if resolved is not None:
            qs = qs.filter(resolved=resolved)
        if severity:
            if severity not in Severity.values:
                raise ValidationError('INVALID_FIELD', field='severity', value=severity)
            qs = qs.filter(severity=severity)
        if type:
            if type not in AnomalyType.values:
                raise ValidationError('INVALID_FIELD', field='type', value=type)
            qs = qs.filter(type=type)
        if product_id is not None:
            qs = qs.filter(product_id=product_id)

        return qs.order_by('-created_at', '-id')

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _locked(cls, anomaly_id: int) -> Anomaly:
        try:
            return Anomaly.objects.select_for_update().get(pk=anomaly_id)
        except Anomaly.DoesNotExist:
            raise NotFoundError('ANOMALY_NOT_FOUND', anomaly_id=anomaly_id)

    @classmethod
    def _resolve_product(cls, item: DetectedAnomaly) -> tuple[int | None, dict]:
        metadata = dict(item.metadata)
        if item.product_id is None:
            return None, metadata
        if Product.objects.filter(pk=item.product_id).exists():
            return item.product_id, metadata
        metadata.setdefault('product_ref', str(item.product_id))
        return None, metadata
