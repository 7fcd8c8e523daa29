"""Verification of the configured admin secret."""

import secrets

from dataclasses import dataclass
from typing import Union

from passlib.context import CryptContext


pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass(frozen=True)
class PlainSecret:
    """Secret configured as raw text (development setups)."""

    value: str


@dataclass(frozen=True)
class HashedSecret:
    """Secret configured as a bcrypt hash."""

    value: str


StoredSecret = Union[PlainSecret, HashedSecret]


def classify_secret(raw: str) -> StoredSecret:
    """Decides once whether a configured secret is hashed or plain text.

    Args:
        raw (str): The secret exactly as configured.

    Returns:
        StoredSecret: `HashedSecret` when the value carries a bcrypt marker, `PlainSecret` otherwise.
    """
    if pwd_context.identify(raw, required=False) is not None:
        return HashedSecret(raw)
    return PlainSecret(raw)


def verify_secret(supplied: str, stored: StoredSecret) -> bool:
    """Verifies that `supplied` matches the configured secret.

    Args:
        supplied (str): The secret submitted by the client.
        stored (StoredSecret): The configured secret.

    Returns:
        bool: True if the secrets match, False otherwise.
    """
    if not supplied or not stored.value:
        return False

    if isinstance(stored, HashedSecret):
        try:
            return pwd_context.verify(supplied, stored.value)
        except (ValueError, TypeError):
            # Malformed hash in configuration
            return False

    return secrets.compare_digest(supplied.encode("utf-8"), stored.value.encode("utf-8"))


def hash_secret(secret: str) -> str:
    """Generates a bcrypt hash for the given secret.

    Args:
        secret (str): The plain text secret to hash.

    Returns:
        str: The hashed secret, usable as `ADMIN_PASSWORD`.
    """
    return pwd_context.hash(secret)
