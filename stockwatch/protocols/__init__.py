"""
Stockwatch Protocols.

Defines interfaces for external system integration.
"""

from stockwatch.protocols.detection import (
    DetectedAnomaly,
    DetectionBackend,
    DetectionRunResult,
    HighRiskProduct,
    TheftAnalytics,
)
from stockwatch.protocols.notification import NotificationSink

__all__ = [
    "DetectedAnomaly",
    "DetectionBackend",
    "DetectionRunResult",
    "HighRiskProduct",
    "TheftAnalytics",
    "NotificationSink",
]
