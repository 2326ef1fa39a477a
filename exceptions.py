"""
Custom Exceptions for AuthGate
==============================

This module defines the error taxonomy shared by the core and the HTTP layer:

1. **Categorize Errors**: A closed set of error kinds, each with a status code
2. **Carry Context**: A human-readable message plus optional field issues
3. **Support APIs**: A uniform ``{"errors": [...]}`` body for every failure

Client-facing failures are all raised as ``ServiceError`` tagged with an
``ErrorKind``; the boundary maps them once, by kind:

    ErrorKind
    ├── BAD_REQUEST     400  client data invalid or conflicting
    ├── UNAUTHORIZED    401  missing or invalid bearer token
    ├── NOT_FOUND       404  referenced entity absent
    ├── RATE_LIMITED    429  policy threshold exceeded
    ├── VALIDATION      400  structured field-level issues
    └── INTERNAL        500  unexpected

The remaining classes are internal signals that never reach a client as-is.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """
    Closed set of client-facing failure categories.

    Using str, Enum keeps the kind JSON-serializable for logs.
    """
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    VALIDATION = "validation"
    INTERNAL = "internal"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]

    @property
    def default_message(self) -> str:
        return _DEFAULT_MESSAGES[self]


_STATUS_CODES = {
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.VALIDATION: 400,
    ErrorKind.INTERNAL: 500,
}

_DEFAULT_MESSAGES = {
    ErrorKind.BAD_REQUEST: "Bad request",
    ErrorKind.UNAUTHORIZED: "Unauthorized",
    ErrorKind.NOT_FOUND: "Resource not found",
    ErrorKind.RATE_LIMITED: "Too many requests, please try again later",
    ErrorKind.VALIDATION: "Invalid request parameters",
    ErrorKind.INTERNAL: "Something went wrong",
}


class ServiceError(Exception):
    """
    A client-facing failure of a known kind.

    Raise through the convenience constructors:

        raise ServiceError.bad_request("invalid credentials")

    Attributes:
        kind: The ErrorKind, which determines the HTTP status code
        message: Human-readable error description
        fields: Field-level issues, ``[{"message": ..., "field": ...}]``
            (only for VALIDATION errors)
        headers: Extra response headers (e.g. Retry-After)
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        fields: Optional[list[dict]] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        self.kind = kind
        self.message = message or kind.default_message
        self.fields = fields or []
        self.headers = headers or {}
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def to_dict(self) -> dict:
        """
        Convert to the uniform error body.

        Validation errors list one entry per field issue; every other kind
        yields a single ``{"message": ...}`` entry.
        """
        if self.kind is ErrorKind.VALIDATION and self.fields:
            return {"errors": [dict(issue) for issue in self.fields]}
        return {"errors": [{"message": self.message}]}

    def __repr__(self) -> str:
        return f"ServiceError(kind={self.kind.value!r}, message={self.message!r})"

    @classmethod
    def bad_request(cls, message: str) -> "ServiceError":
        return cls(ErrorKind.BAD_REQUEST, message)

    @classmethod
    def unauthorized(cls, message: Optional[str] = None) -> "ServiceError":
        return cls(ErrorKind.UNAUTHORIZED, message, headers={"WWW-Authenticate": "Bearer"})

    @classmethod
    def not_found(cls, message: Optional[str] = None) -> "ServiceError":
        return cls(ErrorKind.NOT_FOUND, message)

    @classmethod
    def rate_limited(
        cls,
        message: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> "ServiceError":
        return cls(ErrorKind.RATE_LIMITED, message, headers=headers)

    @classmethod
    def validation(cls, fields: list[dict]) -> "ServiceError":
        return cls(ErrorKind.VALIDATION, fields=fields)

    @classmethod
    def internal(cls, message: Optional[str] = None) -> "ServiceError":
        return cls(ErrorKind.INTERNAL, message)


# =============================================================================
# Internal Errors
# =============================================================================

class InvalidTokenError(Exception):
    """Raised when a token has a bad signature, has expired or is malformed."""

    def __init__(self, reason: str = "Invalid token"):
        self.reason = reason
        super().__init__(reason)


class MalformedCredentialHashError(ValueError):
    """
    Raised when a stored credential hash is not ``salt:derivedKey``.

    This is a broken invariant in the store, not a user error, so the
    boundary reports it as an internal failure.
    """

    def __init__(self):
        super().__init__("Stored credential hash is malformed")


class DuplicateEmailError(Exception):
    """Raised by a user store when a write would break email uniqueness."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email already registered: {email}")


class ConfigurationError(Exception):
    """Raised when there's a configuration problem."""

    def __init__(self, setting_name: str, issue: str):
        self.setting_name = setting_name
        self.issue = issue
        super().__init__(f"Configuration error for '{setting_name}': {issue}")
