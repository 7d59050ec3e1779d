"""
Process-wide actor and notification context.

The surrounding application (login session, toast layer) owns who is acting
and where outcome messages go. It installs both here once; the facade reads
them and hands them to services as explicit arguments. Services never read
this module.

Usage:
    from stockwatch import context

    context.initialize(actor=request.user, notify=my_toast_sink)
    ...
    context.teardown()
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from django.utils.module_loading import import_string

from stockwatch.conf import stockwatch_settings

if TYPE_CHECKING:
    from stockwatch.protocols.notification import NotificationSink

logger = logging.getLogger('stockwatch')

_lock = threading.Lock()
_state: dict[str, Any] = {"initialized": False, "actor": None, "notify": None}


def log_sink(level: str, message: str, **context: Any) -> None:
    """Default sink: outcome messages go to the stockwatch logger."""
    log_level = {"success": logging.INFO, "warning": logging.WARNING}.get(level, logging.ERROR)
    logger.log(log_level, "notify.%s: %s", level, message, extra={"notification": context})


def initialize(actor=None, notify: NotificationSink | None = None) -> None:
    """
    Install the current actor and notification sink.

    When notify is None, STOCKWATCH['NOTIFICATION_SINK'] is imported if set,
    otherwise outcomes are only logged.
    """
    if notify is None and stockwatch_settings.NOTIFICATION_SINK:
        notify = import_string(stockwatch_settings.NOTIFICATION_SINK)

    with _lock:
        _state.update(initialized=True, actor=actor, notify=notify)


def teardown() -> None:
    """Forget the actor and sink (logout, end of test)."""
    with _lock:
        _state.update(initialized=False, actor=None, notify=None)


def is_initialized() -> bool:
    return _state["initialized"]


def current_actor():
    """Actor installed by initialize(), or None."""
    return _state["actor"]


def notification_sink() -> NotificationSink:
    """Sink installed by initialize(), falling back to log_sink."""
    return _state["notify"] or log_sink
