"""
Audit Log Model

Database model for tracking gadget mutations and self-destruct lifecycle events.
"""

from typing import Optional, Dict, Any
from sqlmodel import SQLModel, Field, JSON, Column
from datetime import datetime, timezone
from enum import Enum


class AuditAction(str, Enum):
    """Enum for different types of audit actions."""
    GADGET_CREATED = "gadget_created"
    GADGET_UPDATED = "gadget_updated"
    GADGET_DECOMMISSIONED = "gadget_decommissioned"
    DESTRUCTION_INITIATED = "destruction_initiated"
    DESTRUCTION_CONFIRMED = "destruction_confirmed"
    DESTRUCTION_REJECTED = "destruction_rejected"


class AuditLogBase(SQLModel):
    """Base audit log model with shared fields."""
    action: AuditAction
    user_id: Optional[int] = Field(default=None, description="User who performed the action")
    entity_type: Optional[str] = Field(default=None, description="Type of entity affected")
    entity_id: Optional[str] = Field(default=None, index=True, description="ID of the affected entity")
    details: Dict[str, Any] = Field(default={}, sa_column=Column(JSON), description="Additional details about the action")
    ip_address: Optional[str] = Field(default=None, description="IP address of the user")
    status: str = Field(default="success", description="Status of the action (success, failure)")
    error_message: Optional[str] = Field(default=None, description="Error message if action failed")


class AuditLog(AuditLogBase, table=True):
    """Audit log table model."""
    __tablename__ = "audit_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="When the action occurred")


class AuditLogResponse(AuditLogBase):
    """Schema for audit log responses."""
    id: int
    created_at: datetime
