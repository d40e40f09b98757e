"""
Pydantic schemas for user registration and user reads.

hashed_password appears in NO response schema — the credential hash never
leaves the service.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from ledger.schemas.account import AccountResponse


class RegisterRequest(BaseModel):
    """Request body for POST /users."""
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone_number: str = Field(pattern=r"^\d{10}$", description="10-digit phone number")
    password: str = Field(min_length=8)
    email: EmailStr | None = None


class UserResponse(BaseModel):
    """Public representation of a user together with their account."""
    id: uuid.UUID
    first_name: str
    last_name: str
    phone_number: str
    email: str | None
    created_at: datetime
    account: AccountResponse

    model_config = {"from_attributes": True}


class UsersResponse(BaseModel):
    """Response body for GET /users."""
    users: list[UserResponse]
    count: int
