"""
REST Detection Backend — detection passes over HTTP.

Endpoints (relative to STOCKWATCH['DETECTION_URL']):
    POST /ai/detect-anomalies     general pass
    POST /ai/detect-theft         theft-focused pass
    GET  /analytics/theft?days=N  theft analytics

Settings:
    STOCKWATCH = {
        "DETECTION_BACKEND": "stockwatch.adapters.rest.RestDetectionBackend",
        "DETECTION_URL": "http://localhost:5001/api",
        "DETECTION_API_TOKEN": "...",
        "DETECTION_TIMEOUT": 10,
        "DETECTION_MAX_RETRIES": 3,
        "DETECTION_RETRY_BACKOFF": 1.5,
    }
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from stockwatch.conf import stockwatch_settings
from stockwatch.exceptions import DetectionUnavailableError

logger = logging.getLogger(__name__)


class RestDetectionBackend:
    """
    DetectionBackend backed by the detection service's HTTP API.

    Every call carries a timeout. Transport errors, timeouts and 5xx
    responses are retried up to the configured attempts; 4xx responses and
    non-JSON bodies fail at once. All of them raise DetectionUnavailableError.
    """

    def __init__(self, base_url: str | None = None, token: str | None = None,
                 timeout: float | None = None, max_retries: int | None = None,
                 backoff: float | None = None, session: requests.Session | None = None):
        self.base_url = (base_url or stockwatch_settings.DETECTION_URL).rstrip("/")
        self.token = stockwatch_settings.DETECTION_API_TOKEN if token is None else token
        self.timeout = stockwatch_settings.DETECTION_TIMEOUT if timeout is None else timeout
        self.max_retries = max(1, stockwatch_settings.DETECTION_MAX_RETRIES if max_retries is None else max_retries)
        self.backoff = stockwatch_settings.DETECTION_RETRY_BACKOFF if backoff is None else backoff
        self.session = session or requests.Session()

    def run_general(self) -> dict[str, Any]:
        return self._request("POST", "/ai/detect-anomalies")

    def run_theft(self) -> dict[str, Any]:
        return self._request("POST", "/ai/detect-theft")

    def theft_analytics(self, days: int = 30) -> dict[str, Any]:
        return self._request("GET", "/analytics/theft", params={"days": days})

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        url = f"{self.base_url}{path}"

        for attempt in range(1, self.max_retries + 1):
            try:
                res = self.session.request(
                    method, url, headers=self._headers(), timeout=self.timeout, **kwargs
                )
                res.raise_for_status()
                return res.json()
            except requests.Timeout as exc:
                error = DetectionUnavailableError('DETECTION_TIMEOUT', url=url, timeout=self.timeout)
                cause = exc
            except ValueError as exc:
                # Body is not JSON; the same request gets the same body
                raise DetectionUnavailableError(
                    'DETECTION_BAD_RESPONSE', url=url, error=str(exc)
                ) from exc
            except requests.RequestException as exc:
                status = getattr(exc.response, "status_code", None)
                error = DetectionUnavailableError(url=url, status=status, error=str(exc))
                cause = exc
                if status is not None and status < 500:
                    # Client errors (bad token, unknown route) do not heal on retry
                    logger.warning("Detection request to %s rejected with %s", url, status)
                    raise error from cause

            logger.warning("Detection attempt %s/%s on %s failed: %s",
                           attempt, self.max_retries, url, cause)
            if attempt == self.max_retries:
                raise error from cause
            time.sleep(self.backoff ** (attempt - 1))
