"""
Stockwatch configuration.

Usage in settings.py:
    STOCKWATCH = {
        "DETECTION_BACKEND": "stockwatch.adapters.rest.RestDetectionBackend",
        "DETECTION_URL": "http://localhost:5001/api",
        "DETECTION_TIMEOUT": 10,
        "DETECTION_PASSES": ["general", "theft"],
        "ANOMALY_DEDUP_WINDOW_HOURS": 24,
    }
"""

from dataclasses import dataclass, field
from typing import Any

from django.conf import settings


@dataclass
class StockwatchSettings:
    """Stockwatch configuration settings."""

    # Detection backend (dotted path to a DetectionBackend implementation)
    DETECTION_BACKEND: str = "stockwatch.adapters.rest.RestDetectionBackend"

    # Base URL of the detection service (RestDetectionBackend)
    DETECTION_URL: str = "http://localhost:5001/api"

    # Bearer token sent to the detection service ("" = no auth header)
    DETECTION_API_TOKEN: str = ""

    # Seconds before a detection call is considered unavailable
    DETECTION_TIMEOUT: float = 10.0

    # Attempts per detection call (1 = no retry)
    DETECTION_MAX_RETRIES: int = 1

    # Base of the exponential backoff between attempts, in seconds
    DETECTION_RETRY_BACKOFF: float = 1.5

    # Passes run after every mutation, in order
    DETECTION_PASSES: list[str] = field(default_factory=lambda: ["general", "theft"])

    # Open anomalies with same (product, type) inside this window are duplicates
    ANOMALY_DEDUP_WINDOW_HOURS: int = 24

    # Minimum stock for new products when none is given
    DEFAULT_MINIMUM_STOCK: int = 10

    # Seconds to wait for the per-product ledger lock
    LOCK_TIMEOUT_SECONDS: float = 5.0

    # Reserved name prefix for scenario harness fixtures
    SCENARIO_PRODUCT_PREFIX: str = "Test Product - "

    # Local backend: single unrecorded loss of this many units or more is theft
    THEFT_GAP_UNITS: int = 5

    # Local backend: unattributed reductions per product before flagging access
    UNATTRIBUTED_REDUCTIONS: int = 3

    # Notification sink (dotted path to a callable, "" = log only)
    NOTIFICATION_SINK: str = ""


def get_stockwatch_settings() -> StockwatchSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "STOCKWATCH", {})
    return StockwatchSettings(**{
        k: v for k, v in user_settings.items()
        if k in StockwatchSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_stockwatch_settings(), name)


stockwatch_settings = _LazySettings()
