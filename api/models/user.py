"""
User Models
===========

Pydantic models for the user identity exposed by the API.
The password hash never appears in any of them.
"""

from pydantic import BaseModel, Field


class CurrentUser(BaseModel):
    """The authenticated caller, as resolved from the bearer token."""

    id: str = Field(..., description="User identifier from the token")


class UserResponse(BaseModel):
    """Public user identity returned after registration or login."""

    id: str = Field(..., description="User identifier")
    email: str = Field(..., description="User email address")
