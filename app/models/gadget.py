import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


class GadgetStatus(str, enum.Enum):
    """Lifecycle states of a gadget. DESTROYED is terminal."""
    AVAILABLE = "Available"
    DEPLOYED = "Deployed"
    DESTROYED = "Destroyed"
    DECOMMISSIONED = "Decommissioned"


class Gadget(SQLModel, table=True):
    __tablename__ = "gadgets"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(unique=True, index=True, max_length=100)
    status: GadgetStatus = Field(default=GadgetStatus.AVAILABLE, index=True)
    owner_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = Field(default=None)
    decommissioned_at: Optional[datetime] = Field(default=None)
    destroyed_at: Optional[datetime] = Field(default=None)
