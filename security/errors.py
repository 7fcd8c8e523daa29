"""Exceptions raised by the security layer.

They never leave the authentication gate: the gate converts each of them into
a structured outcome.
"""


class AuthError(Exception):
    """Base class for all authentication errors."""


class ConfigurationError(AuthError):
    """Raised when a server-side secret (identity, secret or signing key) is missing."""


class MalformedToken(AuthError):
    """Raised when a token cannot be parsed, fails its signature check or carries bad claims."""


class TokenExpired(AuthError):
    """Raised when a token is presented after its expiry time."""

    def __init__(self, expired_at: int):
        super().__init__(f"Token expired at {expired_at}")
        self.expired_at = expired_at
