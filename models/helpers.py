"""Contains all models commonly used across different modules."""
from enum import Enum


class Role(str, Enum):
    """Enumeration of recognised roles."""
    ADMIN = "admin"


class AuthStatus(str, Enum):
    """Classification of every authentication outcome."""

    AUTHENTICATED = "authenticated"
    MISSING_CREDENTIALS = "missing_credentials"
    INVALID_CREDENTIALS = "invalid_credentials"
    RATE_LIMITED = "rate_limited"
    CONFIGURATION_ERROR = "configuration_error"
    UNAUTHENTICATED = "unauthenticated"
    MALFORMED_TOKEN = "malformed_token"
    EXPIRED = "expired"
    FORBIDDEN = "forbidden"
    SYSTEM_ERROR = "system_error"
