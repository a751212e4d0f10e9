"""Fake dispatcher — records notifications for testing."""

from settlement.errors import NotificationError
from settlement.notifications.port import NotificationDispatcher


class FakeDispatcher(NotificationDispatcher):
    """Dispatcher that records messages in memory for test assertions."""

    def __init__(self):
        self.sent: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Notification delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Notification delivery failed"):
        """Configure the fake adapter behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def send(self, recipient: str, kind: str, payload: dict) -> None:
        if not self.should_succeed:
            raise NotificationError(self.failure_reason, recipient=recipient, notification_kind=kind)
        self.sent.append({"recipient": recipient, "kind": kind, "payload": dict(payload)})

    def sent_of_kind(self, kind: str) -> list[dict]:
        return [message for message in self.sent if message["kind"] == kind]
