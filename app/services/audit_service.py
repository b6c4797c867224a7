"""
Audit Logging Service

Records gadget mutations and self-destruct lifecycle events.
"""

from typing import List, Dict, Any, Optional
from sqlmodel import Session, select, desc
import logging

from app.models.audit_log import AuditLog, AuditAction

logger = logging.getLogger(__name__)


class AuditServiceError(Exception):
    """Base exception for audit service operations."""
    pass


class AuditService:
    """Service for writing and reading audit logs."""

    def __init__(self, db: Session):
        self.db = db

    async def log_action(
        self,
        action: AuditAction,
        user_id: Optional[int] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        status: str = "success",
        error_message: Optional[str] = None
    ) -> AuditLog:
        """
        Log an audit action to the database.

        Args:
            action: The type of action being logged
            user_id: ID of the user performing the action
            entity_type: Type of entity (gadget, ...)
            entity_id: ID of the affected entity
            details: Additional details about the action
            ip_address: IP address of the user
            status: Status of the action
            error_message: Error message if action failed

        Returns:
            The created audit log entry
        """
        try:
            audit_log = AuditLog(
                action=action,
                user_id=user_id,
                entity_type=entity_type,
                entity_id=str(entity_id) if entity_id is not None else None,
                details=details or {},
                ip_address=ip_address,
                status=status,
                error_message=error_message
            )

            self.db.add(audit_log)
            self.db.commit()
            self.db.refresh(audit_log)

            return audit_log

        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to log audit action {action}: {e}")
            raise AuditServiceError(f"Failed to log audit action: {e}")

    async def get_entity_history(
        self,
        entity_type: str,
        entity_id: Any,
        limit: int = 100
    ) -> List[AuditLog]:
        """Audit entries for one entity, newest first."""
        query = (
            select(AuditLog)
            .where(
                AuditLog.entity_type == entity_type,
                AuditLog.entity_id == str(entity_id)
            )
            .order_by(desc(AuditLog.created_at), desc(AuditLog.id))
            .limit(limit)
        )
        return list(self.db.exec(query).all())
