"""
Token Issuer/Verifier
=====================

Signed, time-bound JWTs carrying the user identity claim ``id``.

Access and refresh tokens are structurally identical and differ only in
lifetime. ``verify`` does not tell them apart, so a live access token is
accepted as a refresh token and vice versa. This is a known gap kept for
compatibility with existing clients: tokens carry no ``typ`` claim to check.
Tokens are stateless and cannot be revoked; a short access TTL is the only
mitigation for a leaked token.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel, ValidationError

from config import Settings
from exceptions import ConfigurationError, InvalidTokenError
from models import AuthTokens


logger = logging.getLogger(__name__)


class TokenPayload(BaseModel):
    """Structured representation of a verified token."""

    id: str
    iat: int
    exp: int

    @property
    def issued_at(self) -> datetime:
        return datetime.fromtimestamp(self.iat, tz=timezone.utc)

    @property
    def expires_at(self) -> datetime:
        return datetime.fromtimestamp(self.exp, tz=timezone.utc)


class TokenIssuer:
    """
    Issue and verify access/refresh tokens with a shared secret.

    Args:
        secret: Signing secret
        algorithm: JWS algorithm, e.g. "HS256"
        access_ttl: Access token lifetime
        refresh_ttl: Refresh token lifetime
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
    ):
        if not secret:
            raise ConfigurationError("JWT_SECRET", "a signing secret is required")
        self._secret = secret
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(
            secret=settings.jwt_secret or "",
            algorithm=settings.jwt_algorithm,
            access_ttl=timedelta(seconds=settings.jwt_expires_in),
            refresh_ttl=timedelta(seconds=settings.refresh_expires_in),
        )

    def _sign(self, user_id: str, ttl: timedelta, now: Optional[datetime]) -> str:
        issued_at = now or datetime.now(timezone.utc)
        claims = {
            "id": user_id,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + ttl).timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=self.algorithm)

    def issue_access(self, user_id: str, now: Optional[datetime] = None) -> str:
        """
        Create a short-lived access token.

        Args:
            user_id: Subject identifier
            now: Issuance time override (primarily for testing)

        Returns:
            str: The encoded token
        """
        return self._sign(user_id, self.access_ttl, now)

    def issue_refresh(self, user_id: str, now: Optional[datetime] = None) -> str:
        """
        Create a long-lived refresh token.

        Args:
            user_id: Subject identifier
            now: Issuance time override (primarily for testing)

        Returns:
            str: The encoded token
        """
        return self._sign(user_id, self.refresh_ttl, now)

    def issue_pair(self, user_id: str) -> AuthTokens:
        return AuthTokens(
            access_token=self.issue_access(user_id),
            refresh_token=self.issue_refresh(user_id),
        )

    def verify(self, token: str) -> TokenPayload:
        """
        Verify signature and expiry, and decode the claims.

        Args:
            token: Encoded token string

        Returns:
            TokenPayload: The verified claims

        Raises:
            InvalidTokenError: If the signature does not match, the token has
                expired, or the token or its claims are malformed
        """
        try:
            raw_payload = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as exc:
            logger.debug("Rejected expired token")
            raise InvalidTokenError("Token has expired") from exc
        except JWTError as exc:
            logger.debug(f"Rejected invalid token: {exc}")
            raise InvalidTokenError("Invalid token") from exc

        try:
            return TokenPayload(**raw_payload)
        except (TypeError, ValidationError) as exc:
            raise InvalidTokenError("Malformed token claims") from exc
