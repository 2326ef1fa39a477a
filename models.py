"""
Domain Models for AuthGate
==========================

This module defines the core data structures used throughout the application.
We use Pydantic for validation and easy conversion to/from JSON.

Design Principle: These models are "pure" - they have no dependencies on
external services, databases, or frameworks. The HTTP layer has its own
request/response models in ``api/models`` that map onto these.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(BaseModel):
    """
    A registered user as held by the user store.

    Attributes:
        id: Opaque unique identifier
        email: Unique email address
        password_hash: Credential hash (``salt:derivedKey``), never returned to clients
        created_at: Registration timestamp (UTC)
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Opaque unique identifier")
    email: str = Field(..., description="Unique email address")
    password_hash: str = Field(..., repr=False, description="Salted credential hash")
    created_at: datetime = Field(default_factory=utcnow, description="Creation time (UTC)")

    def public(self) -> "PublicUser":
        """The client-safe view of this user."""
        return PublicUser(id=self.id, email=self.email)


class PublicUser(BaseModel):
    """User identity safe to hand back to clients."""
    id: str
    email: str


class UserUpdate(BaseModel):
    """
    Partial update of a user. Unset fields are left untouched.

    An update with no fields set is valid and changes nothing.
    """
    email: Optional[str] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class AuthTokens(BaseModel):
    """An access/refresh token pair."""
    access_token: str
    refresh_token: str


class AuthResult(AuthTokens):
    """Tokens plus the identity they were issued for."""
    user: PublicUser
