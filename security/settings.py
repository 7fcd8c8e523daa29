"""
Admin credential configuration.

This is the only module that reads the process environment for authentication
settings. Everything downstream receives an `AuthSettings` instance.
"""

import os
import re

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Mapping, Optional

import logfire

from dotenv import load_dotenv

from .passwords import StoredSecret, classify_secret


DEFAULT_TOKEN_LIFETIME = "24h"
DEFAULT_LOGIN_MAX_ATTEMPTS = 15
DEFAULT_LOGIN_WINDOW_SECONDS = 900  # 15 minutes

_DURATION_PATTERN = re.compile(
    r"^\s*(?P<value>\d+(?:\.\d+)?)\s*(?P<unit>ms|s|m|h|d|w|y)?\s*$", re.IGNORECASE
)

_UNIT_SECONDS = {
    "ms": 0.001,
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 604800,
    "y": 31557600,  # 365.25 days
}


def parse_duration(text: str) -> timedelta:
    """Parses a duration string such as `"24h"`, `"7d"`, `"30m"` or `"3600"`.

    A bare number is read as seconds. Tokens carry whole-second timestamps,
    so the result must be a whole number of seconds, at least one.

    Args:
        text (str): The duration to parse.

    Raises:
        ValueError: Raised when the text is not a recognised duration of whole seconds.

    Returns:
        timedelta: The parsed duration.
    """
    match = _DURATION_PATTERN.match(text or "")
    if not match:
        raise ValueError(f"Invalid duration: {text!r}")

    unit = (match.group("unit") or "s").lower()
    seconds = float(match.group("value")) * _UNIT_SECONDS[unit]
    whole_seconds = round(seconds)
    if whole_seconds < 1 or abs(seconds - whole_seconds) > 1e-6:
        raise ValueError(f"Duration must be a whole number of seconds, at least 1: {text!r}")

    return timedelta(seconds=whole_seconds)


@dataclass(frozen=True)
class AuthSettings:
    """Process-wide admin credentials, read-only after startup."""

    identity: Optional[str] = None
    secret: Optional[StoredSecret] = None
    signing_key: Optional[str] = None
    token_lifetime: timedelta = field(default_factory=lambda: parse_duration(DEFAULT_TOKEN_LIFETIME))
    token_lifetime_label: str = DEFAULT_TOKEN_LIFETIME
    login_max_attempts: int = DEFAULT_LOGIN_MAX_ATTEMPTS
    login_window_seconds: int = DEFAULT_LOGIN_WINDOW_SECONDS

    def missing_fields(self) -> list[str]:
        """Names the required settings that are absent or empty."""
        missing = []
        if not self.identity:
            missing.append("identity")
        if self.secret is None or not self.secret.value:
            missing.append("secret")
        if not self.signing_key:
            missing.append("signing_key")
        return missing

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()

    @property
    def token_lifetime_seconds(self) -> int:
        return int(self.token_lifetime.total_seconds())


def _read_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logfire.error(f"Invalid integer for {name}: {raw!r}, using default {default}")
        return default
    if value <= 0:
        logfire.error(f"{name} must be positive, got {value}, using default {default}")
        return default
    return value


def load_auth_settings(environ: Optional[Mapping[str, str]] = None) -> AuthSettings:
    """Builds `AuthSettings` from environment variables.

    Missing credentials are not an error at this point: they surface as a
    configuration error on every authentication attempt instead.

    Args:
        environ (Mapping[str, str] | None, optional): Variables to read. Defaults to `os.environ` after loading `.env`.

    Returns:
        AuthSettings: The loaded settings.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    raw_secret = environ.get("ADMIN_PASSWORD") or None
    lifetime_label = environ.get("JWT_EXPIRES_IN") or DEFAULT_TOKEN_LIFETIME

    try:
        lifetime = parse_duration(lifetime_label)
    except ValueError:
        logfire.error(
            f"Invalid JWT_EXPIRES_IN value {lifetime_label!r}, using default {DEFAULT_TOKEN_LIFETIME}"
        )
        lifetime_label = DEFAULT_TOKEN_LIFETIME
        lifetime = parse_duration(DEFAULT_TOKEN_LIFETIME)

    settings = AuthSettings(
        identity=environ.get("ADMIN_EMAIL") or None,
        secret=classify_secret(raw_secret) if raw_secret else None,
        signing_key=environ.get("JWT_SECRET") or None,
        token_lifetime=lifetime,
        token_lifetime_label=lifetime_label,
        login_max_attempts=_read_int(
            environ, "LOGIN_RATE_LIMIT_MAX_ATTEMPTS", DEFAULT_LOGIN_MAX_ATTEMPTS
        ),
        login_window_seconds=_read_int(
            environ, "LOGIN_RATE_LIMIT_WINDOW_SECONDS", DEFAULT_LOGIN_WINDOW_SECONDS
        ),
    )

    missing = settings.missing_fields()
    if missing:
        logfire.error(f"Admin authentication is not fully configured, missing: {', '.join(missing)}")

    return settings
