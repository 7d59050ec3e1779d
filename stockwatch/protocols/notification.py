"""
Notification Sink Protocol — where pipeline outcomes are announced.

The surrounding application (toasts, e-mail, chat) implements it. Calls are
fire-and-forget: a failing sink is logged and never changes an outcome.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

SUCCESS = "success"
WARNING = "warning"
ERROR = "error"


@runtime_checkable
class NotificationSink(Protocol):

    def __call__(self, level: str, message: str, **context: Any) -> None:
        """
        Announce an outcome.

        Args:
            level: "success", "warning" (partial failure) or "error"
            message: Human-readable summary
            context: Structured details (product_id, state, failures...)
        """
        ...
