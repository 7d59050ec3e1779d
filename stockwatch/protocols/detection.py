"""
Detection Backend Protocol — interface to the anomaly detection service.

Stockwatch defines this protocol, detection services implement it.
Backends return the service's raw payloads; DetectionTrigger turns them
into the canonical dataclasses below.

Payload shapes seen from detection services:
    {"anomaliesDetected": 3, "alertsGenerated": 1, "anomalies": [...]}
    {"totalAnomaliesDetected": 3, "alertsGenerated": 1}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class DetectedAnomaly:
    """One anomaly as reported by a detection pass, after normalisation."""

    type: str
    severity: str
    description: str = ""
    product_id: int | None = None
    ai_confidence: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DetectionRunResult:
    """Outcome of one detection pass. Never persisted."""

    detection_pass: str
    anomalies_detected: int
    alerts_generated: int = 0
    anomalies: tuple[DetectedAnomaly, ...] = ()
    scenario: str | None = None
    product_id: int | None = None

    def tagged(self, scenario: str, product_id: int | None) -> DetectionRunResult:
        """Copy of this result labelled with the scenario that produced it."""
        return DetectionRunResult(
            detection_pass=self.detection_pass,
            anomalies_detected=self.anomalies_detected,
            alerts_generated=self.alerts_generated,
            anomalies=self.anomalies,
            scenario=scenario,
            product_id=product_id,
        )


@dataclass(frozen=True)
class HighRiskProduct:
    product_id: int | None
    name: str
    incidents: int
    estimated_loss: Decimal = Decimal("0")


@dataclass(frozen=True)
class TheftAnalytics:
    """Aggregate theft figures over a period, for reporting."""

    days: int
    total_incidents: int
    resolved_incidents: int
    active_incidents: int
    estimated_loss: Decimal
    high_risk_products: tuple[HighRiskProduct, ...] = ()


@runtime_checkable
class DetectionBackend(Protocol):
    """
    Protocol for detection services.

    Implementations should:
    - Return the raw service payload as a mapping
    - Raise DetectionUnavailableError on transport failure or timeout
    - Tolerate overlapping calls from unrelated mutations
    """

    def run_general(self) -> dict[str, Any]:
        """Run the general anomaly scan over current inventory state."""
        ...

    def run_theft(self) -> dict[str, Any]:
        """Run the theft-focused scan over recent transaction history."""
        ...

    def theft_analytics(self, days: int = 30) -> dict[str, Any]:
        """
        Aggregate theft figures over the last `days` days.

        Returns:
            {"totalIncidents", "resolvedIncidents", "activeIncidents",
             "estimatedLoss", "highRiskProducts": [...]}
        """
        ...
