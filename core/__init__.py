"""
Core Authentication Module
==========================

Contains the credential and session components for AuthGate:
- password_hasher: Salted PBKDF2 hashing with constant-time verification
- token_issuer: Signed access/refresh token issuance and verification
- rate_limiter: Per-client request throttling policies
- user_store: Identity persistence (in-memory and SQLAlchemy)
- users_service: User creation, update and credential checks
- auth_service: Register, login and refresh workflows
"""

from core.password_hasher import hash_password, verify_password
from core.token_issuer import TokenIssuer, TokenPayload
from core.rate_limiter import (
    DEFAULT_POLICIES,
    RateLimitDecision,
    RateLimitPolicy,
    RateLimiter,
)
from core.user_store import InMemoryUserStore, SqlAlchemyUserStore, UserStore, create_user_store
from core.users_service import UsersService
from core.auth_service import AuthService

__all__ = [
    'hash_password',
    'verify_password',
    'TokenIssuer',
    'TokenPayload',
    'DEFAULT_POLICIES',
    'RateLimitDecision',
    'RateLimitPolicy',
    'RateLimiter',
    'InMemoryUserStore',
    'SqlAlchemyUserStore',
    'UserStore',
    'create_user_store',
    'UsersService',
    'AuthService',
]
