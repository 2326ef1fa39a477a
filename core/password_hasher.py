"""
Credential Hasher
=================

Salted, iterated password hashing and constant-time verification.

Stored format is ``<salt>:<derivedKey>``, both hex-encoded:

- salt: 32 random bytes (64 hex characters). The hex string itself is the
  PBKDF2 salt input, so hashes written by earlier deployments still verify.
- derivedKey: PBKDF2-HMAC-SHA512, 10,000 iterations, 64-byte output.
"""

import secrets

from passlib.crypto.digest import pbkdf2_hmac
from passlib.utils import consteq

from exceptions import MalformedCredentialHashError


ITERATIONS = 10_000
KEY_LENGTH = 64
DIGEST = "sha512"
SALT_LENGTH = 32
SEPARATOR = ":"


def _derive_key(password: str, salt: str) -> bytes:
    return pbkdf2_hmac(
        DIGEST,
        password.encode("utf-8"),
        salt.encode("ascii"),
        ITERATIONS,
        KEY_LENGTH,
    )


def hash_password(password: str) -> str:
    """
    Hash a password with a fresh random salt.

    Args:
        password: Plain text password

    Returns:
        str: ``salt:derivedKey`` credential hash
    """
    salt = secrets.token_hex(SALT_LENGTH)
    derived = _derive_key(password, salt).hex()
    return f"{salt}{SEPARATOR}{derived}"


def verify_password(password: str, stored_hash: str) -> bool:
    """
    Verify a password against a stored credential hash.

    The derived keys are compared in constant time, so the time taken does
    not depend on how many leading bytes match.

    Args:
        password: Plain text password to verify
        stored_hash: Credential hash produced by ``hash_password``

    Returns:
        bool: True if the password matches

    Raises:
        MalformedCredentialHashError: If ``stored_hash`` is not ``salt:derivedKey``
    """
    salt, separator, expected_hex = stored_hash.partition(SEPARATOR)
    if not separator or not salt or not expected_hex:
        raise MalformedCredentialHashError()

    try:
        expected = bytes.fromhex(expected_hex)
    except ValueError as exc:
        raise MalformedCredentialHashError() from exc

    return consteq(_derive_key(password, salt), expected)
