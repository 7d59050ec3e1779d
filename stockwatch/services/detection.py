"""
Detection trigger — runs detection passes and normalises their results.

Detection services do not agree on payload shapes (`anomaliesDetected` vs
`totalAnomaliesDetected`, `productId` as id or embedded document...).
Callers of DetectionTrigger only ever see DetectionRunResult.

Usage:
    trigger = DetectionTrigger()
    result = trigger.run_detection('theft')
    result.anomalies_detected
"""

import logging
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from stockwatch.adapters import get_detection_backend
from stockwatch.exceptions import DetectionUnavailableError, ValidationError
from stockwatch.models.enums import AnomalyType, DetectionPass, Severity
from stockwatch.protocols.detection import (
    DetectedAnomaly,
    DetectionBackend,
    DetectionRunResult,
    HighRiskProduct,
    TheftAnalytics,
)

logger = logging.getLogger('stockwatch')

COUNT_FIELDS = ('anomaliesDetected', 'totalAnomaliesDetected', 'anomalies_detected')
ALERT_FIELDS = ('alertsGenerated', 'alerts_generated')
PRODUCT_FIELDS = ('productId', 'product_id', 'product')
CONFIDENCE_FIELDS = ('aiConfidence', 'ai_confidence', 'confidence')


def coerce_pass(value) -> DetectionPass:
    try:
        return DetectionPass(value)
    except ValueError:
        raise ValidationError('UNKNOWN_PASS', detection_pass=value, allowed=list(DetectionPass.values))


def _first(payload: Mapping, fields: tuple[str, ...]) -> Any:
    for name in fields:
        if payload.get(name) is not None:
            return payload[name]
    return None


def _as_int(value) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_decimal(value) -> Decimal:
    try:
        return Decimal(str(value)) if value is not None else Decimal('0')
    except InvalidOperation:
        return Decimal('0')


def _slug(value) -> str:
    return str(value or '').strip().lower().replace(' ', '_').replace('-', '_')


def normalize_anomaly(raw: Mapping) -> DetectedAnomaly:
    """Canonical DetectedAnomaly from one raw anomaly record."""
    metadata = dict(raw['metadata']) if isinstance(raw.get('metadata'), Mapping) else {}

    anomaly_type = _slug(raw.get('type'))
    if anomaly_type not in AnomalyType.values:
        metadata.setdefault('reported_type', raw.get('type'))
        anomaly_type = AnomalyType.OTHER.value

    severity = _slug(raw.get('severity'))
    if severity not in Severity.values:
        severity = Severity.MEDIUM.value

    product_ref = _first(raw, PRODUCT_FIELDS)
    if isinstance(product_ref, Mapping):
        product_ref = product_ref.get('_id', product_ref.get('id'))
    product_id = _as_int(product_ref)
    if product_ref is not None and product_id is None:
        metadata.setdefault('product_ref', str(product_ref))

    confidence = _first(raw, CONFIDENCE_FIELDS)
    try:
        confidence = min(1.0, max(0.0, float(confidence))) if confidence is not None else None
    except (TypeError, ValueError):
        confidence = None

    return DetectedAnomaly(
        type=anomaly_type,
        severity=severity,
        description=str(raw.get('description') or ''),
        product_id=product_id,
        ai_confidence=confidence,
        metadata=metadata,
    )


def normalize_result(detection_pass: str, payload: Any) -> DetectionRunResult:
    """
    Canonical DetectionRunResult from a raw pass payload.

    Raises:
        DetectionUnavailableError('DETECTION_BAD_RESPONSE'): If the payload
            is not a mapping or its anomaly list is not a list
    """
    if not isinstance(payload, Mapping):
        raise DetectionUnavailableError(
            'DETECTION_BAD_RESPONSE', detection_pass=detection_pass, payload=repr(payload)[:200]
        )

    raw_anomalies = payload.get('anomalies') or []
    if not isinstance(raw_anomalies, list):
        raise DetectionUnavailableError(
            'DETECTION_BAD_RESPONSE', detection_pass=detection_pass, field='anomalies'
        )

    anomalies = tuple(normalize_anomaly(a) for a in raw_anomalies if isinstance(a, Mapping))

    count = _as_int(_first(payload, COUNT_FIELDS))
    if count is None:
        count = len(anomalies)

    return DetectionRunResult(
        detection_pass=detection_pass,
        anomalies_detected=count,
        alerts_generated=_as_int(_first(payload, ALERT_FIELDS)) or 0,
        anomalies=anomalies,
    )


def normalize_analytics(days: int, payload: Any) -> TheftAnalytics:
    if not isinstance(payload, Mapping):
        raise DetectionUnavailableError('DETECTION_BAD_RESPONSE', payload=repr(payload)[:200])

    high_risk = []
    for item in payload.get('highRiskProducts') or []:
        if not isinstance(item, Mapping):
            continue
        ref = _first(item, ('productId', '_id', 'id'))
        if isinstance(ref, Mapping):
            ref = ref.get('_id', ref.get('id'))
        high_risk.append(HighRiskProduct(
            product_id=_as_int(ref),
            name=str(item.get('name') or ''),
            incidents=_as_int(_first(item, ('incidents', 'count', 'incidentCount'))) or 0,
            estimated_loss=_as_decimal(item.get('estimatedLoss')),
        ))

    total = _as_int(payload.get('totalIncidents')) or 0
    resolved = _as_int(payload.get('resolvedIncidents')) or 0
    active = _as_int(payload.get('activeIncidents'))

    return TheftAnalytics(
        days=days,
        total_incidents=total,
        resolved_incidents=resolved,
        active_incidents=active if active is not None else max(0, total - resolved),
        estimated_loss=_as_decimal(payload.get('estimatedLoss')),
        high_risk_products=tuple(high_risk),
    )


class DetectionTrigger:
    """
    Stateless pass-through to a DetectionBackend.

    A failed or timed-out call raises DetectionUnavailableError; a call that
    finds nothing returns anomalies_detected == 0.
    """

    def __init__(self, backend: DetectionBackend | None = None):
        self._backend = backend

    @property
    def backend(self) -> DetectionBackend:
        if self._backend is None:
            self._backend = get_detection_backend()
        return self._backend

    def run_detection(self, detection_pass) -> DetectionRunResult:
        """
        Run one pass.

        Raises:
            ValidationError('UNKNOWN_PASS'): If the pass name is unknown
            DetectionUnavailableError: On transport failure, timeout or
                unreadable payload
        """
        pass_ = coerce_pass(detection_pass)
        call = self.backend.run_theft if pass_ == DetectionPass.THEFT else self.backend.run_general

        payload = self._call(call, pass_.value)
        result = normalize_result(pass_.value, payload)

        logger.info(
            "detection.completed",
            extra={
                "detection_pass": pass_.value,
                "anomalies_detected": result.anomalies_detected,
                "alerts_generated": result.alerts_generated,
            },
        )
        return result

    def theft_analytics(self, days: int = 30) -> TheftAnalytics:
        """Aggregate theft figures, for reporting."""
        payload = self._call(lambda: self.backend.theft_analytics(days=days), 'analytics')
        return normalize_analytics(days, payload)

    def _call(self, call, label: str):
        try:
            return call()
        except DetectionUnavailableError as exc:
            logger.warning(
                "detection.unavailable",
                extra={"detection_pass": label, "code": exc.code},
            )
            raise
        except TimeoutError as exc:
            logger.warning("detection.timeout", extra={"detection_pass": label})
            raise DetectionUnavailableError('DETECTION_TIMEOUT', detection_pass=label) from exc
        except ConnectionError as exc:
            logger.warning("detection.unavailable", extra={"detection_pass": label})
            raise DetectionUnavailableError(detection_pass=label, error=str(exc)) from exc
        except Exception as exc:
            # Any other backend failure still only fails this pass
            logger.exception("detection.failed", extra={"detection_pass": label})
            raise DetectionUnavailableError(detection_pass=label, error=str(exc)) from exc
