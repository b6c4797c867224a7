from sqlmodel import SQLModel

# Import all models here to ensure they are registered with SQLModel
from app.models.user import User  # noqa
from app.models.gadget import Gadget  # noqa
from app.models.audit_log import AuditLog  # noqa

__all__ = ["SQLModel"]
