"""
Pydantic models for authentication and user management.
Defines data structures for API requests, responses and stored users.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


def _to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class CamelModel(BaseModel):
    """Response model serialised with camelCase keys."""
    model_config = ConfigDict(alias_generator=_to_camel, populate_by_name=True)


class UserCreate(BaseModel):
    """Model for user registration request."""
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=30, pattern=r"^[A-Za-z0-9]+$")
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()


class UserLogin(BaseModel):
    """Model for user login request."""
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()


class UserUpdate(BaseModel):
    """Model for profile update request. At least one field is required."""
    email: Optional[EmailStr] = None
    username: Optional[str] = Field(None, min_length=3, max_length=30, pattern=r"^[A-Za-z0-9]+$")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: Optional[str]) -> Optional[str]:
        return value.lower() if value else value


class UserRecord(BaseModel):
    """A stored user row, including the password hash. Never returned to clients."""
    id: str
    email: str
    username: str
    password_hash: str
    created_at: datetime
    updated_at: datetime

    def to_public(self) -> "PublicUser":
        return PublicUser(
            id=self.id,
            email=self.email,
            username=self.username,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class PublicUser(CamelModel):
    """User data safe to return to the owning user."""
    id: str
    email: str
    username: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class PublicProfile(CamelModel):
    """User data visible to anyone."""
    id: str
    username: str
    created_at: datetime


class TokenPair(BaseModel):
    """Access token and refresh token issued together."""
    access_token: str
    refresh_token: str


class TokenClaims(BaseModel):
    """Model for decoded access token data."""
    sub: str  # user_id
    email: str
    username: str
    iat: int
    exp: int


class Identity(BaseModel):
    """Authenticated caller, resolved from a verified access token."""
    id: str
    email: str
    username: str
