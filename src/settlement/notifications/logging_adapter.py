"""Dispatcher that writes notifications to the structured log."""

import structlog

from settlement.notifications.port import NotificationDispatcher

logger = structlog.get_logger(__name__)


class LoggingDispatcher(NotificationDispatcher):
    def send(self, recipient: str, kind: str, payload: dict) -> None:
        logger.info(
            "notification_dispatched",
            recipient=recipient,
            kind=kind,
            order_number=payload.get("order_number"),
        )
