"""
API Response Models
===================

Pydantic models for API responses. Field names are camelCase on the wire.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from api.models.user import CurrentUser, UserResponse
from models import AuthResult, AuthTokens


class CamelModel(BaseModel):
    """Base model serializing field names as camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TokensResponse(CamelModel):
    """Response model for the refresh endpoint."""

    access_token: str = Field(..., description="Short-lived bearer token")
    refresh_token: str = Field(..., description="Long-lived token used to obtain new pairs")

    @classmethod
    def from_tokens(cls, tokens: AuthTokens) -> "TokensResponse":
        return cls(access_token=tokens.access_token, refresh_token=tokens.refresh_token)


class AuthResponse(TokensResponse):
    """Response model for registration and login."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "accessToken": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "refreshToken": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "user": {
                    "id": "3f2b8c1e9d7a4e6b8c0d1e2f3a4b5c6d",
                    "email": "jane@example.com"
                }
            }
        }
    )

    user: UserResponse

    @classmethod
    def from_result(cls, result: AuthResult) -> "AuthResponse":
        return cls(
            access_token=result.access_token,
            refresh_token=result.refresh_token,
            user=UserResponse(id=result.user.id, email=result.user.email),
        )


class CurrentUserResponse(BaseModel):
    """Response model for the current-user endpoint."""

    user: CurrentUser


class PrivateResponse(BaseModel):
    """Response model for the private demo endpoint."""

    message: str
    user: CurrentUser


class ErrorItem(BaseModel):
    """A single error entry."""

    message: str
    field: Optional[str] = None


class ErrorResponse(BaseModel):
    """Uniform error body returned for every failure."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"errors": [{"message": "invalid credentials"}]}
        }
    )

    errors: list[ErrorItem]
