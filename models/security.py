"""
Security models shared by the token service and the authentication gate.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Annotated, Optional

from pydantic import BaseModel, Field, StrictInt

from .helpers import AuthStatus, Role


class TokenPayload(BaseModel):
    """Claims embedded in every admin access token."""

    email: Annotated[str, Field(min_length=1)]
    role: Annotated[str, Field(min_length=1)]
    iat: StrictInt  # Issued at, seconds since epoch
    exp: StrictInt  # Expires at, seconds since epoch


class AdminPrincipal(BaseModel):
    """Identity attached to a request once its bearer token has been verified."""

    email: str
    role: str
    issued_at: datetime
    expires_at: datetime

    @classmethod
    def from_payload(cls, payload: TokenPayload) -> "AdminPrincipal":
        return cls(
            email=payload.email,
            role=payload.role,
            issued_at=datetime.fromtimestamp(payload.iat, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload.exp, tz=timezone.utc),
        )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a login attempt.

    Only `AUTHENTICATED` results carry a token. `RATE_LIMITED` results carry
    the number of seconds the client should wait before trying again.
    """

    status: AuthStatus
    error: Optional[str] = None
    message: Optional[str] = None
    token: Optional[str] = None
    expires_in: Optional[int] = None  # Token lifetime in seconds
    identity: Optional[str] = None
    role: Optional[str] = None
    retry_after_seconds: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.status is AuthStatus.AUTHENTICATED


@dataclass(frozen=True)
class RequestAuthResult:
    """Outcome of authenticating or authorizing a request."""

    status: AuthStatus
    principal: Optional[AdminPrincipal] = None
    error: Optional[str] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is AuthStatus.AUTHENTICATED
