"""
Auth Workflow
=============

Registration, login and token refresh, composed from the users service and
the token issuer. Each operation is a self-contained sequence of steps; no
state is carried between requests.
"""

import logging

from core.token_issuer import TokenIssuer
from core.users_service import UsersService
from exceptions import InvalidTokenError, ServiceError
from models import AuthResult, AuthTokens, User


logger = logging.getLogger(__name__)

INVALID_REFRESH_TOKEN = "invalid refresh token"


class AuthService:
    """
    Issue tokens for registered users.

    Args:
        users: Users service (owns the user store handle)
        tokens: Token issuer/verifier
    """

    def __init__(self, users: UsersService, tokens: TokenIssuer):
        self.users = users
        self.tokens = tokens

    def _result_for(self, user: User) -> AuthResult:
        pair = self.tokens.issue_pair(user.id)
        return AuthResult(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            user=user.public(),
        )

    def register(self, email: str, password: str) -> AuthResult:
        """
        Create an account and sign the new user in.

        Raises:
            ServiceError: BAD_REQUEST "email already in use"
        """
        user = self.users.create_user(email, password)
        logger.info(f"Registered user {user.id}")
        return self._result_for(user)

    def login(self, email: str, password: str) -> AuthResult:
        """
        Exchange credentials for a token pair.

        Raises:
            ServiceError: BAD_REQUEST "invalid credentials" for an unknown
                email or a wrong password alike
        """
        user = self.users.validate_credentials(email, password)
        logger.info(f"User {user.id} logged in")
        return self._result_for(user)

    def refresh(self, refresh_token: str) -> AuthTokens:
        """
        Exchange a valid token for a fresh pair.

        The presented token is not invalidated, and any valid token is
        accepted here, access tokens included (see ``core.token_issuer``).

        Raises:
            ServiceError: BAD_REQUEST "invalid refresh token"
        """
        try:
            payload = self.tokens.verify(refresh_token)
        except InvalidTokenError as exc:
            logger.info(f"Refresh rejected: {exc.reason}")
            raise ServiceError.bad_request(INVALID_REFRESH_TOKEN) from None

        return self.tokens.issue_pair(payload.id)

    def authenticate(self, access_token: str) -> str:
        """
        Resolve a bearer token to the user id it was issued for.

        Raises:
            ServiceError: UNAUTHORIZED if the token does not verify
        """
        try:
            return self.tokens.verify(access_token).id
        except InvalidTokenError:
            raise ServiceError.unauthorized() from None
