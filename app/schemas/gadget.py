"""
Gadget-related Pydantic schemas for API request/response serialization.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.gadget import GadgetStatus


class GadgetRead(BaseModel):
    id: uuid.UUID
    name: str
    status: GadgetStatus
    owner_id: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    decommissioned_at: Optional[datetime] = None
    destroyed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GadgetWithProbability(GadgetRead):
    success_probability: str = Field(..., description="Mission success probability, e.g. '87%'.")


class GadgetList(BaseModel):
    message: str
    count: int
    gadgets: List[GadgetWithProbability]


class GadgetUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    status: Optional[GadgetStatus] = None


class GadgetResponse(BaseModel):
    message: str
    gadget: GadgetRead


class DestructionInitiatedResponse(BaseModel):
    """Response for an initiated self-destruct sequence."""
    message: str
    expires_in: str = Field(..., description="Human readable validity window, e.g. '5 minutes'.")
    expires_in_seconds: int
    expires_at: datetime
    confirmation_code: Optional[str] = Field(
        None, description="Only present when the server runs in simulation mode.")


class DestructionConfirmRequest(BaseModel):
    confirmation_code: Optional[str] = None
