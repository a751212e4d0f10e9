"""Notification dispatcher port — fire-and-forget customer and admin messages.

Rendering is the dispatcher's concern; settlement only names the kind of
message and hands over the facts. A dispatcher that cannot deliver raises
``NotificationError``; callers log it and carry on.
"""

from abc import ABC, abstractmethod
from enum import Enum


class NotificationKind(Enum):
    ORDER_CONFIRMATION = "order_confirmation"
    ADMIN_NEW_ORDER = "admin_new_order"


class NotificationDispatcher(ABC):
    """Abstract interface for notification dispatch adapters."""

    @abstractmethod
    def send(self, recipient: str, kind: str, payload: dict) -> None:
        ...
