"""
Dependency Injection Functions
==============================

FastAPI dependency injection for the services built in ``create_app`` and
for bearer-token authentication.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.models.user import CurrentUser
from core.auth_service import AuthService
from core.user_store import UserStore
from exceptions import ServiceError

# Security scheme for Bearer tokens. auto_error=False so a missing or
# malformed header yields the uniform 401 body instead of FastAPI's 403.
security = HTTPBearer(auto_error=False)


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store


def get_auth_service(request: Request) -> AuthService:
    """
    Dependency to get the auth workflow instance from app state.

    The service is constructed once in ``create_app`` with its user store
    and token issuer injected.
    """
    return request.app.state.auth_service


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service),
) -> CurrentUser:
    """
    Dependency to get current authenticated user from the bearer token.

    Use this dependency for routes that REQUIRE authentication.

    Args:
        credentials: HTTP Authorization header with Bearer token
        auth_service: Auth workflow used to verify the token

    Returns:
        CurrentUser: The user id carried by the token

    Raises:
        ServiceError: UNAUTHORIZED if the header is missing or malformed,
            or the token does not verify
    """
    if credentials is None or not credentials.credentials:
        raise ServiceError.unauthorized()

    user_id = auth_service.authenticate(credentials.credentials)
    return CurrentUser(id=user_id)
