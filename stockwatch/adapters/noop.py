"""
Noop Detection Backend — stub adapter for development and testing.

Usage in settings.py:
    STOCKWATCH = {
        "DETECTION_BACKEND": "stockwatch.adapters.noop.NoopDetectionBackend",
    }

WARNING: Do NOT use in production. Nothing is ever detected.
"""

from __future__ import annotations

from typing import Any


class NoopDetectionBackend:
    """
    No-operation detection backend.

    Every pass succeeds and finds nothing. Useful for:

    - Local development without a running detection service
    - Tests that exercise the mutation path but not detection
    """

    def run_general(self) -> dict[str, Any]:
        return {"anomaliesDetected": 0, "alertsGenerated": 0, "anomalies": []}

    def run_theft(self) -> dict[str, Any]:
        return {"totalAnomaliesDetected": 0, "alertsGenerated": 0, "anomalies": []}

    def theft_analytics(self, days: int = 30) -> dict[str, Any]:
        return {
            "totalIncidents": 0,
            "resolvedIncidents": 0,
            "activeIncidents": 0,
            "estimatedLoss": 0,
            "highRiskProducts": [],
        }
