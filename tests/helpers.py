from datetime import datetime, timedelta, timezone

from app.services.notification_service import DestructionNotifier


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class RecordingNotifier(DestructionNotifier):
    """Captures issued codes instead of delivering them."""

    def __init__(self):
        self.sent = []

    async def notify(self, recipient, gadget, code, expires_in_seconds):
        self.sent.append({
            "recipient": recipient,
            "gadget_id": gadget.id,
            "code": code,
            "expires_in_seconds": expires_in_seconds,
        })

    @property
    def last_code(self) -> str:
        return self.sent[-1]["code"]
