"""
Users Service
=============

User creation, lookup, update and credential validation on top of an
injected ``UserStore``. Email uniqueness violations, missing users and bad
credentials surface as ``ServiceError`` with the matching kind.
"""

import logging
import secrets
from functools import lru_cache
from typing import Optional

from core.password_hasher import hash_password, verify_password
from core.user_store import UserStore
from exceptions import DuplicateEmailError, ServiceError
from models import User, UserUpdate


logger = logging.getLogger(__name__)

EMAIL_IN_USE = "email already in use"
INVALID_CREDENTIALS = "invalid credentials"
USER_NOT_FOUND = "User not found"


class UsersService:
    """
    Manage users through a user store.

    Args:
        store: The user store handle
    """

    def __init__(self, store: UserStore):
        self.store = store

    def _require_user(self, user_id: str) -> User:
        user = self.store.find_by_id(user_id)
        if user is None:
            raise ServiceError.not_found(USER_NOT_FOUND)
        return user

    def _ensure_email_available(self, email: str, exclude_user_id: Optional[str] = None) -> None:
        existing = self.store.find_by_email(email)
        if existing is not None and existing.id != exclude_user_id:
            raise ServiceError.bad_request(EMAIL_IN_USE)

    def create_user(self, email: str, password: str) -> User:
        """
        Register a new user with a hashed password.

        Args:
            email: Email address, must not be in use
            password: Plain text password

        Returns:
            User: The stored user

        Raises:
            ServiceError: BAD_REQUEST if the email is already in use
        """
        self._ensure_email_available(email)

        try:
            user = self.store.create(email, hash_password(password))
        except DuplicateEmailError:
            # Lost a race with a concurrent registration
            raise ServiceError.bad_request(EMAIL_IN_USE) from None

        logger.info(f"Created user {user.id}")
        return user

    def get_user_by_id(self, user_id: str) -> User:
        """Raises ServiceError NOT_FOUND if the user does not exist."""
        return self._require_user(user_id)

    def update_user(self, user_id: str, data: UserUpdate) -> User:
        """
        Apply a partial update to a user.

        An empty update, or setting the email to its current value, returns
        the user unchanged without writing to the store.

        Args:
            user_id: The user to update
            data: Fields to change

        Returns:
            User: The user after the update

        Raises:
            ServiceError: NOT_FOUND if the user does not exist,
                BAD_REQUEST if the email belongs to another user
        """
        user = self._require_user(user_id)

        changes = {
            name: value
            for name, value in data.changes().items()
            if getattr(user, name) != value
        }
        if not changes:
            return user

        if "email" in changes:
            self._ensure_email_available(changes["email"], exclude_user_id=user_id)

        try:
            updated = self.store.update(user_id, changes)
        except DuplicateEmailError:
            raise ServiceError.bad_request(EMAIL_IN_USE) from None

        if updated is None:
            raise ServiceError.not_found(USER_NOT_FOUND)

        logger.info(f"Updated user {user_id}: {sorted(changes)}")
        return updated

    def validate_credentials(self, email: str, password: str) -> User:
        """
        Look up a user and check the password.

        Unknown email and wrong password fail with the same message so the
        response does not reveal which accounts exist.

        Raises:
            ServiceError: BAD_REQUEST "invalid credentials"
        """
        user = self.store.find_by_email(email)
        if user is None:
            # Same key derivation cost as a real check
            verify_password(password, _dummy_hash())
            valid = False
        else:
            valid = verify_password(password, user.password_hash)

        if not valid:
            logger.info(f"Failed login attempt for '{email}'")
            raise ServiceError.bad_request(INVALID_CREDENTIALS)
        return user


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password(secrets.token_hex(16))
