"""
API Request Models
==================

Pydantic models for API request validation.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class RegisterRequest(BaseModel):
    """Request model for account registration."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "jane@example.com",
                "password": "s3cret-pass"
            }
        }
    )

    email: EmailStr = Field(
        ...,
        description="Email address, must not already be registered"
    )
    password: str = Field(
        ...,
        min_length=6,
        description="Password, at least 6 characters"
    )


class LoginRequest(BaseModel):
    """Request model for credential login."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "jane@example.com",
                "password": "s3cret-pass"
            }
        }
    )

    email: EmailStr = Field(..., description="Registered email address")
    password: str = Field(..., min_length=6, description="Account password")


class RefreshRequest(BaseModel):
    """Request model for exchanging a refresh token for a new token pair."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "refreshToken": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9..."
            }
        }
    )

    refresh_token: str = Field(
        ...,
        alias="refreshToken",
        description="Refresh token from a previous login, registration or refresh"
    )
