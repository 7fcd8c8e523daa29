"""
Authentication gate for the admin backend.

Composes the login rate limiter, the secret verifier and the token service into
the two flows used by the HTTP layer: logging in, and authenticating requests
on protected routes. Every failure is returned as a structured outcome, never
raised.
"""

import re
import secrets
import time

from typing import Callable, Optional

import logfire

from middleware.rate_limiting import FixedWindowRateLimiter, RateLimitStore
from models.helpers import AuthStatus, Role
from models.security import AdminPrincipal, LoginResult, RequestAuthResult

from .errors import ConfigurationError, MalformedToken, TokenExpired
from .passwords import verify_secret
from .settings import AuthSettings
from .tokens import TokenService


BEARER_PREFIX = "Bearer "

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# (error, message) shown to clients for each outcome
FAILURE_MESSAGES: dict[AuthStatus, tuple[str, str]] = {
    AuthStatus.MISSING_CREDENTIALS: (
        "Email and password are required",
        "Please provide both email and password",
    ),
    AuthStatus.INVALID_CREDENTIALS: (
        "Invalid credentials",
        "Please check your email and password",
    ),
    AuthStatus.RATE_LIMITED: ("Too many attempts", "Please try again later"),
    AuthStatus.CONFIGURATION_ERROR: (
        "System configuration error",
        "Authentication service is temporarily unavailable",
    ),
    AuthStatus.UNAUTHENTICATED: ("Access denied", "Authentication token required"),
    AuthStatus.MALFORMED_TOKEN: ("Invalid token", "Please login again"),
    AuthStatus.EXPIRED: ("Token expired", "Please login again"),
    AuthStatus.FORBIDDEN: ("Access forbidden", "Admin privileges required"),
    AuthStatus.SYSTEM_ERROR: (
        "System error",
        "An unexpected error occurred. Please try again later.",
    ),
}


def _login_failure(status: AuthStatus, **extra) -> LoginResult:
    error, message = FAILURE_MESSAGES[status]
    return LoginResult(status=status, error=error, message=message, **extra)


def _request_failure(status: AuthStatus) -> RequestAuthResult:
    error, message = FAILURE_MESSAGES[status]
    return RequestAuthResult(status=status, error=error, message=message)


class AuthenticationGate:
    """Orchestrates login and request authentication for the single admin account."""

    def __init__(
        self,
        settings: AuthSettings,
        rate_limiter: Optional[RateLimitStore] = None,
        token_service: Optional[TokenService] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.rate_limiter = rate_limiter or FixedWindowRateLimiter(
            max_attempts=settings.login_max_attempts,
            window_seconds=settings.login_window_seconds,
            clock=clock,
        )
        self.token_service = token_service or TokenService(settings.signing_key, clock=clock)

    def login(
        self, client_key: str, identity: Optional[str], secret: Optional[str]
    ) -> LoginResult:
        """Authenticates the admin and issues an access token.

        Steps short-circuit on the first failure: rate limit, presence of both
        fields, server configuration, then the credential pair itself. A wrong
        identity and a wrong secret produce the same result.

        Args:
            client_key (str): Identifier of the calling client, usually its IP address.
            identity (str | None): The submitted email.
            secret (str | None): The submitted password.

        Returns:
            LoginResult: `AUTHENTICATED` with a token, or the classified failure.
        """
        with logfire.span(f"Admin login attempt from {client_key}"):
            decision = self.rate_limiter.admit(client_key)
            if not decision.admitted:
                logfire.warning(
                    f"Rate limit exceeded for {client_key} after {decision.attempt_count} attempts"
                )
                return _login_failure(
                    AuthStatus.RATE_LIMITED,
                    retry_after_seconds=decision.retry_after_seconds,
                )

            if not identity or not secret:
                logfire.warning(f"Admin login attempt with missing credentials from {client_key}")
                return _login_failure(AuthStatus.MISSING_CREDENTIALS)

            missing = self.settings.missing_fields()
            if missing:
                logfire.error(
                    f"Admin login refused, authentication is not configured (missing: {', '.join(missing)})"
                )
                return _login_failure(AuthStatus.CONFIGURATION_ERROR)

            reason = None
            if not EMAIL_PATTERN.match(identity):
                reason = "invalid_email_format"
            elif not secrets.compare_digest(
                identity.encode("utf-8"), self.settings.identity.encode("utf-8")
            ):
                reason = "invalid_email"
            elif not verify_secret(secret, self.settings.secret):
                reason = "invalid_password"

            if reason is not None:
                logfire.warning(
                    f"Admin login failed ({reason}) for {identity} from {client_key}"
                )
                return _login_failure(AuthStatus.INVALID_CREDENTIALS)

            try:
                token = self.token_service.issue(
                    self.settings.identity, Role.ADMIN.value, self.settings.token_lifetime
                )
            except ConfigurationError as e:
                logfire.error(f"Admin login refused: {e}")
                return _login_failure(AuthStatus.CONFIGURATION_ERROR)

            logfire.info(
                f"Admin {self.settings.identity} logged in from {client_key}, "
                f"session duration {self.settings.token_lifetime_label}"
            )

            return LoginResult(
                status=AuthStatus.AUTHENTICATED,
                token=token,
                expires_in=self.settings.token_lifetime_seconds,
                identity=self.settings.identity,
                role=Role.ADMIN.value,
            )

    def authenticate_request(self, authorization: Optional[str]) -> RequestAuthResult:
        """Verifies the bearer token presented with a request.

        Args:
            authorization (str | None): Raw value of the `Authorization` header.

        Returns:
            RequestAuthResult: `AUTHENTICATED` with the admin principal, or the classified failure.
        """
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            return _request_failure(AuthStatus.UNAUTHENTICATED)

        token = authorization[len(BEARER_PREFIX):]

        try:
            payload = self.token_service.verify(token)
        except ConfigurationError as e:
            logfire.error(f"Request authentication unavailable: {e}")
            return _request_failure(AuthStatus.CONFIGURATION_ERROR)
        except TokenExpired as e:
            logfire.warning(f"Authentication failed - token expired at {e.expired_at}")
            return _request_failure(AuthStatus.EXPIRED)
        except MalformedToken as e:
            logfire.warning(f"Authentication failed - invalid token: {e}")
            return _request_failure(AuthStatus.MALFORMED_TOKEN)

        principal = AdminPrincipal.from_payload(payload)
        logfire.debug(f"Admin {principal.email} authenticated")

        return RequestAuthResult(status=AuthStatus.AUTHENTICATED, principal=principal)

    def authorize_role(self, principal: Optional[AdminPrincipal]) -> RequestAuthResult:
        """Checks that an authenticated principal holds the admin role."""
        if principal is None:
            return _request_failure(AuthStatus.UNAUTHENTICATED)

        if not principal.is_admin:
            logfire.warning(
                f"Authorization failed - {principal.email} has role {principal.role!r}, admin required"
            )
            return _request_failure(AuthStatus.FORBIDDEN)

        return RequestAuthResult(status=AuthStatus.AUTHENTICATED, principal=principal)

    def optional_authenticate(self, authorization: Optional[str]) -> Optional[AdminPrincipal]:
        """Like `authenticate_request`, but any failure simply yields no principal."""
        result = self.authenticate_request(authorization)
        return result.principal if result.ok else None
