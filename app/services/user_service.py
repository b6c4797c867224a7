"""
Agent Account Service

Registration and credential checks for the agents who own gadgets and receive
their self-destruct codes.
"""

import logging
from typing import Optional

from sqlmodel import Session, or_, select

from app.core.security import get_password_hash, verify_password
from app.models.user import User
from app.schemas.user import UserCreateSchema

logger = logging.getLogger(__name__)


class UserServiceError(Exception):
    """Base exception for account operations."""
    status_code = 400


class DuplicateAccountError(UserServiceError):
    """The username or email already belongs to another agent."""
    pass


class UserService:
    """Service for agent accounts."""

    def __init__(self, db: Session):
        self.db = db

    async def find_by_username(self, username: str) -> Optional[User]:
        return self.db.exec(select(User).where(User.username == username)).first()

    async def register(self, user_in: UserCreateSchema) -> User:
        """
        Create an account with an Argon2 password hash.

        Raises:
            DuplicateAccountError: if the username or email is taken
        """
        clashes = self.db.exec(
            select(User).where(or_(User.username == user_in.username, User.email == user_in.email))
        ).all()
        if any(existing.username == user_in.username for existing in clashes):
            raise DuplicateAccountError("Username already registered")
        if clashes:
            raise DuplicateAccountError("Email already registered")

        user = User(
            username=user_in.username,
            email=user_in.email,
            hashed_password=get_password_hash(user_in.password),
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Registered agent {user.username} (id={user.id})")
        return user

    async def authenticate(self, username: str, password: str) -> Optional[User]:
        """Return the active user matching the credentials, or None."""
        user = await self.find_by_username(username)
        if user is None or not user.is_active:
            return None
        if not verify_password(password, user.hashed_password):
            logger.warning(f"Failed login for agent {username}")
            return None
        return user
