"""Contains the FastAPI dependencies that guard admin routes
"""
from typing import Annotated, Optional

import logfire

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from models.helpers import AuthStatus
from models.security import AdminPrincipal, RequestAuthResult

from .gate import AuthenticationGate
from .settings import load_auth_settings


HTTP_STATUS_CODES: dict[AuthStatus, int] = {
    AuthStatus.AUTHENTICATED: status.HTTP_200_OK,
    AuthStatus.MISSING_CREDENTIALS: status.HTTP_400_BAD_REQUEST,
    AuthStatus.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    AuthStatus.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    AuthStatus.MALFORMED_TOKEN: status.HTTP_401_UNAUTHORIZED,
    AuthStatus.EXPIRED: status.HTTP_401_UNAUTHORIZED,
    AuthStatus.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    AuthStatus.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    AuthStatus.CONFIGURATION_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    AuthStatus.SYSTEM_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


bearer_scheme = HTTPBearer(
    scheme_name="bearerAuth",
    bearerFormat="JWT",
    description="Admin access token returned by `/api/v1/auth/login`.",
    auto_error=False,
)


# Global gate instance
_authentication_gate: Optional[AuthenticationGate] = None


def get_authentication_gate() -> AuthenticationGate:
    """Get the authentication gate instance, built from the environment on first use."""
    global _authentication_gate

    if _authentication_gate is None:
        _authentication_gate = AuthenticationGate(load_auth_settings())

    return _authentication_gate


def _authorization_header(
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    # The scheme keeps the casing the client sent, the gate checks it exactly
    if credentials is None:
        return None
    return f"{credentials.scheme} {credentials.credentials}"


def _raise_for_result(result: RequestAuthResult) -> None:
    status_code = HTTP_STATUS_CODES[result.status]
    headers = (
        {"WWW-Authenticate": "Bearer"}
        if status_code == status.HTTP_401_UNAUTHORIZED
        else None
    )
    raise HTTPException(
        status_code=status_code,
        detail={"error": result.error, "message": result.message},
        headers=headers,
    )


async def authenticate_admin(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Security(bearer_scheme)],
    gate: Annotated[AuthenticationGate, Depends(get_authentication_gate)],
) -> AdminPrincipal:
    """Authenticate the request from its bearer token.

    Raises:
        HTTPException: 401 when the token is absent, malformed or expired,
            500 when authentication is not configured.

    Returns:
        AdminPrincipal: The admin, also attached to `request.state.admin`.
    """
    result = gate.authenticate_request(_authorization_header(credentials))

    if not result.ok:
        logfire.warning(
            f"Authentication failed ({result.status.value}) on {request.method} {request.url.path}"
        )
        _raise_for_result(result)

    request.state.admin = result.principal
    return result.principal


async def require_admin_role(
    admin: Annotated[AdminPrincipal, Depends(authenticate_admin)],
    gate: Annotated[AuthenticationGate, Depends(get_authentication_gate)],
) -> AdminPrincipal:
    """Ensure the authenticated principal holds the admin role.

    Raises:
        HTTPException: 403 when the role is not admin.
    """
    result = gate.authorize_role(admin)

    if not result.ok:
        _raise_for_result(result)

    return result.principal


async def optional_admin(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Security(bearer_scheme)],
    gate: Annotated[AuthenticationGate, Depends(get_authentication_gate)],
) -> Optional[AdminPrincipal]:
    """Attach the admin if a valid token was presented, never rejecting the request."""
    admin = gate.optional_authenticate(_authorization_header(credentials))
    request.state.admin = admin
    return admin
