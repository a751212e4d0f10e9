"""Notification dispatcher factory.

Uses the logging dispatcher by default; tests swap in FakeDispatcher.
"""

from settlement.notifications.logging_adapter import LoggingDispatcher
from settlement.notifications.port import NotificationDispatcher

_current_dispatcher: NotificationDispatcher | None = None


def get_dispatcher() -> NotificationDispatcher:
    global _current_dispatcher
    if _current_dispatcher is None:
        _current_dispatcher = LoggingDispatcher()
    return _current_dispatcher


def set_dispatcher(dispatcher: NotificationDispatcher) -> None:
    """Override the active dispatcher (useful for tests)."""
    global _current_dispatcher
    _current_dispatcher = dispatcher


def reset_dispatcher() -> None:
    global _current_dispatcher
    _current_dispatcher = None
