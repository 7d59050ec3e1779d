"""
Stockwatch Adapters.

Implementations of protocols for external systems, and the loader that
picks the configured detection backend.

Usage:
    from stockwatch.adapters import get_detection_backend

    backend = get_detection_backend()
    payload = backend.run_general()

Settings:
    STOCKWATCH = {
        "DETECTION_BACKEND": "stockwatch.adapters.rest.RestDetectionBackend",
    }

Available backends:
    stockwatch.adapters.rest.RestDetectionBackend    HTTP detection service
    stockwatch.adapters.local.LocalDetectionBackend  in-process heuristics
    stockwatch.adapters.noop.NoopDetectionBackend    never detects anything
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from stockwatch.conf import stockwatch_settings

if TYPE_CHECKING:
    from stockwatch.protocols.detection import DetectionBackend

logger = logging.getLogger(__name__)


# Cached backend instance
_lock = threading.Lock()
_detection_backend: DetectionBackend | None = None


def get_detection_backend() -> DetectionBackend:
    """
    Return the configured detection backend.

    Raises:
        ImproperlyConfigured: If DETECTION_BACKEND is empty or import fails
    """
    global _detection_backend

    if _detection_backend is None:
        with _lock:
            if _detection_backend is None:  # double-checked
                backend_path = stockwatch_settings.DETECTION_BACKEND

                if not backend_path:
                    raise ImproperlyConfigured(
                        "STOCKWATCH['DETECTION_BACKEND'] must be configured. "
                        "Example: 'stockwatch.adapters.rest.RestDetectionBackend'"
                    )

                try:
                    backend_class = import_string(backend_path)
                except ImportError as e:
                    raise ImproperlyConfigured(
                        f"Failed to import detection backend '{backend_path}': {e}"
                    ) from e

                _detection_backend = backend_class()
                logger.debug("Loaded detection backend: %s", backend_path)

    return _detection_backend


def reset_detection_backend() -> None:
    """Reset the cached backend. Useful for testing."""
    global _detection_backend
    _detection_backend = None


__all__ = [
    "get_detection_backend",
    "reset_detection_backend",
]
