"""
Self-Destruct Workflow Service

Two-phase destruction of gadgets: a self-destruct request issues a short-lived,
attempt-limited confirmation code, and only a later confirmation carrying that
code moves the gadget to the terminal Destroyed state.
"""

import asyncio
import hmac
import logging
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Hashable, List, Optional

from app.core.config import settings
from app.models.gadget import Gadget, GadgetStatus
from app.models.user import User
from app.services.gadget_service import GadgetService
from app.services.notification_service import DestructionNotifier

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DestructionError(Exception):
    """Base exception for self-destruct workflow outcomes."""
    reason = "destruction_error"
    status_code = 400
    default_message = "Self-destruct request failed."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)

    def to_detail(self) -> Dict[str, object]:
        return {"reason": self.reason, "message": str(self)}


class UnknownGadgetError(DestructionError):
    reason = "gadget_not_found"
    status_code = 404
    default_message = "Gadget not found."


class PendingDestructionNotFoundError(DestructionError):
    reason = "no_pending_destruction"
    status_code = 404
    default_message = "No pending destruction request found or the request has expired."


class InvalidStateError(DestructionError):
    reason = "already_destroyed"
    default_message = "Gadget is already destroyed."


class MissingCodeError(DestructionError):
    reason = "missing_code"
    default_message = "Please provide the confirmation code."


class CodeExpiredError(DestructionError):
    reason = "code_expired"
    default_message = "Confirmation code has expired. Please initiate a new destruction request."


class AttemptsExhaustedError(DestructionError):
    reason = "attempts_exhausted"
    default_message = "Too many failed attempts. Please initiate a new destruction request."


class CodeMismatchError(DestructionError):
    reason = "code_mismatch"
    default_message = "Invalid confirmation code."

    def __init__(self, remaining_attempts: int, message: Optional[str] = None):
        super().__init__(message)
        self.remaining_attempts = remaining_attempts

    def to_detail(self) -> Dict[str, object]:
        detail = super().to_detail()
        detail["remaining_attempts"] = self.remaining_attempts
        return detail


@dataclass
class PendingDestruction:
    """An issued, not yet confirmed self-destruct request for one gadget."""
    item_id: Hashable
    code: str
    issued_at: datetime
    expires_at: datetime
    attempts: int = 0

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


@dataclass
class DestructionTicket:
    item_id: Hashable
    code: str
    expires_in_seconds: int
    expires_at: datetime


class NumericCodeGenerator:
    """Fixed-length numeric codes without a leading zero, e.g. '482913'."""

    def __init__(self, length: int = 6):
        if length < 1:
            raise ValueError("Code length must be positive")
        self.length = length

    def generate(self) -> str:
        low = 10 ** (self.length - 1)
        return str(low + secrets.randbelow(9 * low))


class PendingDestructionRegistry:
    """
    Process-wide store of pending destruction requests keyed by gadget id.

    Every read-modify-write on one key runs under that key's lock stripe, so
    racing calls for the same gadget are serialized while different gadgets
    proceed in parallel. Critical sections never await or perform I/O.
    """

    def __init__(self, stripes: int = 64):
        self._records: Dict[Hashable, PendingDestruction] = {}
        self._stripes: List[threading.Lock] = [threading.Lock() for _ in range(stripes)]

    def _lock_for(self, item_id: Hashable) -> threading.Lock:
        return self._stripes[hash(item_id) % len(self._stripes)]

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, item_id: Hashable) -> bool:
        return item_id in self._records

    def get(self, item_id: Hashable) -> Optional[PendingDestruction]:
        return self._records.get(item_id)

    def install(self, record: PendingDestruction) -> Optional[PendingDestruction]:
        """Store a fresh record, returning the one it superseded (if any)."""
        with self._lock_for(record.item_id):
            previous = self._records.get(record.item_id)
            self._records[record.item_id] = record
            return previous

    def discard(self, item_id: Hashable, expected: Optional[PendingDestruction] = None) -> bool:
        """Remove the record for item_id; with expected, only if it is still that record."""
        with self._lock_for(item_id):
            current = self._records.get(item_id)
            if current is None or (expected is not None and current is not expected):
                return False
            del self._records[item_id]
            return True

    def restore(self, record: PendingDestruction) -> bool:
        """Put a claimed record back unless a newer request took its place."""
        with self._lock_for(record.item_id):
            if record.item_id in self._records:
                return False
            self._records[record.item_id] = record
            return True

    def register_attempt(
        self,
        item_id: Hashable,
        code: Optional[str],
        now: datetime,
        max_attempts: int
    ) -> PendingDestruction:
        """
        Count one confirmation attempt against the pending record.

        Checks run in a fixed order: missing record, missing code, expiry,
        attempt budget, code comparison. Expired and exhausted records are
        removed; a mismatch keeps the record with its incremented count.

        Returns:
            The matching record, which has been claimed (removed) so that no
            concurrent attempt can confirm it a second time
        """
        with self._lock_for(item_id):
            record = self._records.get(item_id)
            if record is None:
                raise PendingDestructionNotFoundError()
            if not code:
                raise MissingCodeError()
            if record.is_expired(now):
                del self._records[item_id]
                raise CodeExpiredError()

            record.attempts += 1
            if record.attempts > max_attempts:
                del self._records[item_id]
                raise AttemptsExhaustedError()

            if not hmac.compare_digest(record.code.encode(), code.encode()):
                raise CodeMismatchError(remaining_attempts=max_attempts - record.attempts)

            del self._records[item_id]
            return record

    def sweep_expired(self, now: datetime) -> int:
        """Drop every record past its expiry. Returns the number removed."""
        removed = 0
        for item_id, record in list(self._records.items()):
            if not record.is_expired(now):
                continue
            with self._lock_for(item_id):
                if self._records.get(item_id) is record:
                    del self._records[item_id]
                    removed += 1
        return removed


async def run_expiry_sweeper(
    registry: PendingDestructionRegistry,
    interval_seconds: float,
    clock: Clock = utc_now
) -> None:
    """Periodically remove expired pending records until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        removed = registry.sweep_expired(clock())
        if removed:
            logger.info(f"Swept {removed} expired self-destruct request(s)")


class DestructionService:
    """
    Coordinates the two-phase self-destruct workflow.

    This is the only code path allowed to move a gadget to Destroyed.
    """

    def __init__(
        self,
        items: GadgetService,
        registry: PendingDestructionRegistry,
        notifier: DestructionNotifier,
        code_generator: Optional[NumericCodeGenerator] = None,
        clock: Clock = utc_now,
        ttl_seconds: int = settings.destruction_code_ttl_seconds,
        max_attempts: int = settings.destruction_max_attempts
    ):
        self.items = items
        self.registry = registry
        self.notifier = notifier
        self.code_generator = code_generator or NumericCodeGenerator(settings.destruction_code_length)
        self.clock = clock
        self.ttl_seconds = ttl_seconds
        self.max_attempts = max_attempts

    async def begin_destruction(
        self,
        gadget_id: Hashable,
        requested_by: Optional[User] = None
    ) -> DestructionTicket:
        """
        Start a self-destruct sequence for a gadget.

        Args:
            gadget_id: Gadget to destroy
            requested_by: Fallback recipient of the code when the gadget has no owner

        Returns:
            The issued ticket. Its code has already been dispatched via the notifier.
        """
        gadget = await self.items.find_by_id(gadget_id)
        if not gadget:
            raise UnknownGadgetError()
        if gadget.status == GadgetStatus.DESTROYED:
            raise InvalidStateError()

        # Resolved before install so a lookup failure leaves any earlier request intact
        recipient = await self.items.find_owner(gadget) or requested_by

        now = self.clock()
        record = PendingDestruction(
            item_id=gadget_id,
            code=self.code_generator.generate(),
            issued_at=now,
            expires_at=now + timedelta(seconds=self.ttl_seconds),
        )
        if self.registry.install(record):
            logger.info(f"Superseded pending self-destruct request for gadget {gadget_id}")

        try:
            await self.notifier.notify(recipient, gadget, record.code, self.ttl_seconds)
        except Exception:
            # Nobody received this code
            self.registry.discard(gadget_id, expected=record)
            raise

        logger.info(f"Self-destruct initiated for gadget {gadget_id}, expires at {record.expires_at}")
        return DestructionTicket(
            item_id=gadget_id,
            code=record.code,
            expires_in_seconds=self.ttl_seconds,
            expires_at=record.expires_at,
        )

    async def confirm_destruction(self, gadget_id: Hashable, code: Optional[str]) -> Gadget:
        """
        Confirm a pending self-destruct sequence and destroy the gadget.

        Raises:
            PendingDestructionNotFoundError, MissingCodeError, CodeExpiredError,
            AttemptsExhaustedError, CodeMismatchError, UnknownGadgetError
        """
        try:
            record = self.registry.register_attempt(gadget_id, code, self.clock(), self.max_attempts)
        except DestructionError as e:
            logger.warning(f"Self-destruct confirmation rejected for gadget {gadget_id}: {e.reason}")
            raise

        try:
            gadget = await self.items.find_by_id(gadget_id)
            if not gadget:
                raise UnknownGadgetError()
            if gadget.status == GadgetStatus.DESTROYED:
                raise InvalidStateError()
            destroyed = await self.items.update_status(
                gadget_id, GadgetStatus.DESTROYED, "destroyed_at", self.clock()
            )
            if not destroyed:
                raise UnknownGadgetError()
        except DestructionError:
            raise
        except Exception:
            # Infrastructure failure: give the caller a chance to retry the same code
            self.registry.restore(record)
            raise

        logger.info(f"Gadget {gadget_id} destroyed")
        return destroyed
