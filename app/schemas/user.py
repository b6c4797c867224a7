from pydantic import BaseModel, EmailStr, Field
from datetime import datetime


class UserCreateSchema(BaseModel):
    """Schema for user creation requests."""
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)


class UserResponseSchema(BaseModel):
    """Schema for user response data."""
    id: int
    username: str
    email: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
