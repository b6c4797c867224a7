"""
Error Reporting Service

Classifies failures that escape the gadget API, logs them under a traceable
error id and builds the body returned to the client. Nothing here retries.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Type

import requests
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from app.services.notification_service import NotificationServiceError

logger = logging.getLogger(__name__)


class ErrorSeverity(str, Enum):
    MEDIUM = "medium"
    HIGH = "high"


class ErrorCategory(str, Enum):
    NOTIFICATION = "notification"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    NETWORK = "network"
    VALIDATION = "validation"
    SYSTEM = "system"


STATUS_CODES: Dict[ErrorCategory, int] = {
    ErrorCategory.NOTIFICATION: 502,
    ErrorCategory.DATABASE: 500,
    ErrorCategory.EXTERNAL_API: 502,
    ErrorCategory.NETWORK: 503,
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.SYSTEM: 500,
}

USER_MESSAGES: Dict[ErrorCategory, str] = {
    ErrorCategory.NOTIFICATION: "The confirmation code could not be delivered. Please try again later.",
    ErrorCategory.DATABASE: "A database error occurred. Please try again later.",
    ErrorCategory.EXTERNAL_API: "An external service is temporarily unavailable. Please try again later.",
    ErrorCategory.NETWORK: "A network error occurred. Please try again later.",
    ErrorCategory.VALIDATION: "The provided data is invalid. Please check your input and try again.",
    ErrorCategory.SYSTEM: "An internal error occurred. Please try again later.",
}

# First matching entry wins, so subclasses go before their bases
ERROR_CLASSES: Tuple[Tuple[Type[BaseException], ErrorCategory, ErrorSeverity], ...] = (
    (NotificationServiceError, ErrorCategory.NOTIFICATION, ErrorSeverity.HIGH),
    (SQLAlchemyError, ErrorCategory.DATABASE, ErrorSeverity.HIGH),
    (requests.RequestException, ErrorCategory.EXTERNAL_API, ErrorSeverity.HIGH),
    (ConnectionError, ErrorCategory.NETWORK, ErrorSeverity.HIGH),
    (TimeoutError, ErrorCategory.NETWORK, ErrorSeverity.MEDIUM),
    (ValidationError, ErrorCategory.VALIDATION, ErrorSeverity.MEDIUM),
    (ValueError, ErrorCategory.VALIDATION, ErrorSeverity.MEDIUM),
    (TypeError, ErrorCategory.VALIDATION, ErrorSeverity.MEDIUM),
)


@dataclass
class ErrorReport:
    """One logged failure, as returned to the client."""
    error_id: str
    category: ErrorCategory
    severity: ErrorSeverity
    error_type: str
    operation: Optional[str]
    user_id: Optional[int]
    timestamp: datetime

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.category]

    def to_response(self, include_debug: bool = False) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "error": True,
            "error_id": self.error_id,
            "message": USER_MESSAGES[self.category],
            "category": self.category.value,
            "timestamp": self.timestamp.isoformat(),
        }
        if include_debug:
            body["debug"] = {"error_type": self.error_type, "operation": self.operation}
        return body


class ErrorHandlerService:
    """Classifies and logs unexpected errors."""

    def classify(self, error: BaseException) -> Tuple[ErrorCategory, ErrorSeverity]:
        for error_class, category, severity in ERROR_CLASSES:
            if isinstance(error, error_class):
                return category, severity
        return ErrorCategory.SYSTEM, ErrorSeverity.HIGH

    def handle_error(
        self,
        error: BaseException,
        operation: Optional[str] = None,
        user_id: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None
    ) -> ErrorReport:
        """
        Log an error and build its report.

        Args:
            error: The exception that escaped
            operation: What was being done, e.g. "POST /api/v1/gadgets/"
            user_id: Authenticated user, if any
            context: Extra request details for the log record

        Returns:
            The report, whose error_id also appears in the log
        """
        category, severity = self.classify(error)
        report = ErrorReport(
            error_id=f"{category.value}_{uuid.uuid4().hex[:12]}",
            category=category,
            severity=severity,
            error_type=type(error).__name__,
            operation=operation,
            user_id=user_id,
            timestamp=datetime.now(timezone.utc),
        )

        logger.log(
            logging.ERROR if severity == ErrorSeverity.HIGH else logging.WARNING,
            f"Error {report.error_id} in {operation}: {report.error_type}: {error}",
            exc_info=(type(error), error, error.__traceback__) if severity == ErrorSeverity.HIGH else None,
            extra={
                "error_id": report.error_id,
                "category": category.value,
                "user_id": user_id,
                **(context or {}),
            },
        )
        return report


error_handler = ErrorHandlerService()
