"""
Destruction Notification Service

Delivers self-destruct confirmation codes out-of-band, so that the code never
travels back in the response of the request that asked for it.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

from app.core.config import settings
from app.models.gadget import Gadget
from app.models.user import User

logger = logging.getLogger(__name__)


class NotificationServiceError(Exception):
    """Base exception for notification service operations."""
    pass


class NotificationDeliveryError(NotificationServiceError):
    """Raised when a confirmation code could not be delivered."""
    pass


class DestructionNotifier:
    """Interface for delivering confirmation codes to a gadget's owner."""

    async def notify(
        self,
        recipient: Optional[User],
        gadget: Gadget,
        code: str,
        expires_in_seconds: int
    ) -> None:
        raise NotImplementedError


class LoggingNotifier(DestructionNotifier):
    """
    Development notifier that writes the code to the operator log.

    Used when no webhook is configured.
    """

    async def notify(
        self,
        recipient: Optional[User],
        gadget: Gadget,
        code: str,
        expires_in_seconds: int
    ) -> None:
        username = recipient.username if recipient else "<unowned>"
        logger.info(
            f"Self-destruct code for gadget {gadget.id} ({gadget.name}) "
            f"issued to {username}: {code} (valid {expires_in_seconds}s)"
        )


class WebhookNotifier(DestructionNotifier):
    """Posts the confirmation code to an HTTP webhook (mail/SMS relay, chat bot, ...)."""

    def __init__(self, url: str, timeout: int = 10):
        self.url = url
        self.timeout = timeout

    def _build_payload(
        self,
        recipient: Optional[User],
        gadget: Gadget,
        code: str,
        expires_in_seconds: int
    ) -> Dict[str, Any]:
        return {
            "type": "gadget_self_destruct_code",
            "recipient": {
                "id": recipient.id,
                "username": recipient.username,
                "email": recipient.email,
            } if recipient else None,
            "gadget": {"id": str(gadget.id), "name": gadget.name},
            "confirmation_code": code,
            "expires_in_seconds": expires_in_seconds,
            "sent_at": datetime.now(timezone.utc).isoformat(),
        }

    def _sync_post(self, payload: Dict[str, Any]) -> None:
        response = requests.post(self.url, json=payload, timeout=self.timeout)
        response.raise_for_status()

    async def notify(
        self,
        recipient: Optional[User],
        gadget: Gadget,
        code: str,
        expires_in_seconds: int
    ) -> None:
        payload = self._build_payload(recipient, gadget, code, expires_in_seconds)
        try:
            # Run the synchronous request in a thread pool
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._sync_post, payload)
        except requests.RequestException as e:
            logger.error(f"Failed to deliver self-destruct code for gadget {gadget.id}: {e}")
            raise NotificationDeliveryError(
                "Could not deliver the confirmation code. Please try again later.") from e
        logger.info(f"Delivered self-destruct code for gadget {gadget.id} via webhook")


def build_notifier() -> DestructionNotifier:
    """Pick the notifier configured for this process."""
    if settings.notification_webhook_url:
        return WebhookNotifier(settings.notification_webhook_url, settings.notification_timeout)
    return LoggingNotifier()
