"""
Gadget Inventory Service

Session-backed store for gadgets: codename generation, listing, updates and
soft deletion. The self-destruct workflow uses it to look up and destroy gadgets.
"""

import logging
import random
import secrets
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlmodel import Session, select

from app.models.gadget import Gadget, GadgetStatus
from app.models.user import User

logger = logging.getLogger(__name__)

ADJECTIVES = [
    "Silent", "Crimson", "Swift", "Hidden", "Golden", "Shadow", "Iron",
    "Electric", "Frozen", "Rapid", "Brave", "Clever", "Midnight", "Scarlet",
    "Phantom", "Quiet", "Wild", "Arctic", "Cosmic", "Lucky", "Nimble",
    "Velvet", "Stealthy", "Bold", "Mystic", "Radiant", "Copper", "Emerald",
]

ANIMALS = [
    "Falcon", "Panther", "Cobra", "Fox", "Raven", "Wolf", "Otter", "Viper",
    "Hawk", "Lynx", "Jaguar", "Badger", "Heron", "Mantis", "Scorpion",
    "Octopus", "Gecko", "Stingray", "Owl", "Bison", "Crane", "Weasel",
    "Puma", "Hornet", "Marten", "Kestrel", "Dolphin", "Tiger",
]

NAME_GENERATION_ATTEMPTS = 10


class GadgetServiceError(Exception):
    """Base exception for gadget service operations."""
    status_code = 400


class GadgetNotFoundError(GadgetServiceError):
    status_code = 404


class GadgetStateError(GadgetServiceError):
    status_code = 400


class GadgetNameConflictError(GadgetServiceError):
    status_code = 409


class GadgetValidationError(GadgetServiceError):
    status_code = 422


def generate_gadget_name() -> str:
    """Generate a codename such as 'Silent Falcon'."""
    return f"{random.choice(ADJECTIVES)} {random.choice(ANIMALS)}"


def success_probability() -> str:
    """Random mission success probability between 1% and 100%."""
    return f"{random.randint(1, 100)}%"


class GadgetService:
    """Service for managing gadgets. Also serves as the item store for the self-destruct workflow."""

    def __init__(self, db: Session):
        self.db = db

    async def find_by_id(self, gadget_id: uuid.UUID) -> Optional[Gadget]:
        """Get a gadget by its ID."""
        return self.db.get(Gadget, gadget_id)

    async def find_owner(self, gadget: Gadget) -> Optional[User]:
        if gadget.owner_id is None:
            return None
        return self.db.get(User, gadget.owner_id)

    async def get_by_name(self, name: str) -> Optional[Gadget]:
        statement = select(Gadget).where(Gadget.name == name)
        return self.db.exec(statement).first()

    async def get_all(self, status: Optional[GadgetStatus] = None) -> List[Gadget]:
        """List gadgets, optionally filtered by status."""
        statement = select(Gadget)
        if status is not None:
            statement = statement.where(Gadget.status == status)
        return self.db.exec(statement.order_by(Gadget.created_at)).all()

    async def create(self, owner_id: Optional[int] = None) -> Gadget:
        """Create a gadget with a unique random codename and status Available."""
        name = None
        for _ in range(NAME_GENERATION_ATTEMPTS):
            candidate = generate_gadget_name()
            if not await self.get_by_name(candidate):
                name = candidate
                break
        if name is None:
            # Word list space is small; disambiguate instead of failing
            name = f"{generate_gadget_name()} {secrets.token_hex(2).upper()}"

        gadget = Gadget(name=name, status=GadgetStatus.AVAILABLE, owner_id=owner_id)
        self.db.add(gadget)
        self.db.commit()
        self.db.refresh(gadget)
        logger.info(f"Created gadget {gadget.id} ({gadget.name})")
        return gadget

    async def update(
        self,
        gadget_id: uuid.UUID,
        name: Optional[str] = None,
        status: Optional[GadgetStatus] = None
    ) -> Gadget:
        """
        Update the name and/or status of a gadget.

        Destroyed gadgets cannot be updated, and the Destroyed status can only be
        reached through the self-destruct workflow.
        """
        gadget = await self.find_by_id(gadget_id)
        if not gadget:
            raise GadgetNotFoundError("Gadget not found.")
        if gadget.status == GadgetStatus.DESTROYED:
            raise GadgetStateError("Gadget is destroyed! It can't be updated.")
        if not name and not status:
            raise GadgetValidationError(
                "Please provide at least one field (name or status) to update.")
        if status == GadgetStatus.DESTROYED:
            raise GadgetStateError(
                "Gadgets can only be destroyed through the self-destruct sequence.")

        if name and name != gadget.name:
            if await self.get_by_name(name):
                raise GadgetNameConflictError("Gadget name must be unique.")
            gadget.name = name

        if status:
            if status == GadgetStatus.DECOMMISSIONED:
                if gadget.status != GadgetStatus.DECOMMISSIONED:
                    gadget.decommissioned_at = datetime.now(timezone.utc)
            elif gadget.status == GadgetStatus.DECOMMISSIONED:
                gadget.decommissioned_at = None
            gadget.status = status

        gadget.updated_at = datetime.now(timezone.utc)
        self.db.add(gadget)
        self.db.commit()
        self.db.refresh(gadget)
        return gadget

    async def decommission(self, gadget_id: uuid.UUID) -> Gadget:
        """Soft-delete a gadget by moving it to Decommissioned."""
        gadget = await self.find_by_id(gadget_id)
        if not gadget:
            raise GadgetNotFoundError("Gadget not found.")
        if gadget.status == GadgetStatus.DESTROYED:
            raise GadgetStateError("Gadget is already destroyed! It can't be decommissioned.")
        if gadget.status == GadgetStatus.DECOMMISSIONED:
            raise GadgetStateError("Gadget is already decommissioned.")

        decommissioned = await self.update_status(
            gadget_id, GadgetStatus.DECOMMISSIONED, "decommissioned_at", datetime.now(timezone.utc)
        )
        logger.info(f"Decommissioned gadget {gadget_id}")
        return decommissioned

    async def update_status(
        self,
        gadget_id: uuid.UUID,
        status: GadgetStatus,
        timestamp_field: str,
        timestamp_value: datetime
    ) -> Optional[Gadget]:
        """
        Set the status of a gadget and stamp one timestamp column.

        Transition legality is the caller's responsibility.

        Returns:
            The updated gadget, or None if it no longer exists
        """
        gadget = await self.find_by_id(gadget_id)
        if not gadget:
            return None
        gadget.status = status
        setattr(gadget, timestamp_field, timestamp_value)
        gadget.updated_at = timestamp_value
        self.db.add(gadget)
        self.db.commit()
        self.db.refresh(gadget)
        return gadget
