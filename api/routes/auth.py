"""
Authentication Endpoints
========================

User registration, login, token refresh and bearer-protected endpoints.

The handlers are plain ``def`` functions: FastAPI runs them in its
threadpool, so password hashing never blocks the event loop.
"""

from fastapi import APIRouter, Depends, status

from api.dependencies import get_auth_service, get_current_user
from api.middleware.rate_limiter import RateLimit
from api.models.requests import LoginRequest, RefreshRequest, RegisterRequest
from api.models.responses import (
    AuthResponse,
    CurrentUserResponse,
    ErrorResponse,
    PrivateResponse,
    TokensResponse,
)
from api.models.user import CurrentUser
from core.auth_service import AuthService

router = APIRouter()

RATE_LIMITED = {429: {"model": ErrorResponse, "description": "Too many requests"}}
BAD_REQUEST = {400: {"model": ErrorResponse, "description": "Invalid or conflicting data"}}
UNAUTHORIZED = {401: {"model": ErrorResponse, "description": "Missing or invalid bearer token"}}


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    responses={**BAD_REQUEST, **RATE_LIMITED},
    dependencies=[Depends(RateLimit("registration"))],
)
def register(
    request: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """
    Create an account and return a token pair for it.

    Returns 400 "email already in use" if the email is taken.
    """
    result = auth_service.register(request.email, request.password)
    return AuthResponse.from_result(result)


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Login user",
    responses={**BAD_REQUEST, **RATE_LIMITED},
    dependencies=[Depends(RateLimit("authentication"))],
)
def login(
    request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """
    Exchange email and password for a token pair.

    Unknown email and wrong password both return 400 "invalid credentials".
    """
    result = auth_service.login(request.email, request.password)
    return AuthResponse.from_result(result)


@router.post(
    "/refresh",
    response_model=TokensResponse,
    summary="Refresh access token",
    responses={**BAD_REQUEST, **RATE_LIMITED},
    dependencies=[Depends(RateLimit("refresh"))],
)
def refresh(
    request: RefreshRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> TokensResponse:
    """Exchange a refresh token for a new token pair."""
    tokens = auth_service.refresh(request.refresh_token)
    return TokensResponse.from_tokens(tokens)


@router.get(
    "/current-user",
    response_model=CurrentUserResponse,
    summary="Get current user information",
    responses=UNAUTHORIZED,
)
def current_user(user: CurrentUser = Depends(get_current_user)) -> CurrentUserResponse:
    return CurrentUserResponse(user=user)


@router.get(
    "/private",
    response_model=PrivateResponse,
    summary="Access private route (requires authentication)",
    responses=UNAUTHORIZED,
)
def private_route(user: CurrentUser = Depends(get_current_user)) -> PrivateResponse:
    return PrivateResponse(message="Access granted to private route", user=user)
