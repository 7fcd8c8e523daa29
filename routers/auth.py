"""
Auth router for handling admin authentication endpoints.
"""

from datetime import datetime, timezone
from typing import Annotated, Optional

import logfire

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from middleware.rate_limiting import get_client_identifier

from models.helpers import AuthStatus
from models.security import AdminPrincipal

from schema.security import (
    AdminProfile,
    AdminSummary,
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    ProfileResponse,
    SessionResponse,
    TokenValidationResponse,
)

from security.gate import AuthenticationGate, FAILURE_MESSAGES
from security.helpers import (
    HTTP_STATUS_CODES,
    authenticate_admin,
    get_authentication_gate,
    optional_admin,
    require_admin_role,
)

router = APIRouter(
    prefix="/api/v1/auth",
    tags=["Auth"],
)


def _system_error_response() -> JSONResponse:
    error, message = FAILURE_MESSAGES[AuthStatus.SYSTEM_ERROR]
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": {"error": error, "message": message}},
    )


async def _read_login_request(request: Request) -> LoginRequest:
    """Reads the login body leniently.

    An absent or unparsable body, or fields that are not strings, count as
    missing credentials so the request still goes through the rate limiter.
    """
    try:
        body = await request.json()
    except ValueError:
        body = None

    if not isinstance(body, dict):
        body = {}

    email = body.get("email")
    password = body.get("password")

    return LoginRequest(
        email=email if isinstance(email, str) else None,
        password=password if isinstance(password, str) else None,
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": LoginRequest.model_json_schema()}},
        }
    },
)
async def login_for_access_token(
    request: Request,
    gate: Annotated[AuthenticationGate, Depends(get_authentication_gate)],
):
    """Authenticates the admin with email and password and returns a bearer token.

    ## Responses
    ### Missing email or password
    - status code: 400

    ### Invalid credentials
    - status code: 401
    - body: ```{'detail': {'error': 'Invalid credentials', 'message': 'Please check your email and password'}}```

    ### Too many attempts
    - status code: 429
    - body includes `retry_after` (seconds), also sent as the `Retry-After` header

    ### Authentication not configured / unexpected failure
    - status code: 500
    """
    client_id = get_client_identifier(request)
    payload = await _read_login_request(request)

    try:
        result = gate.login(client_id, payload.email, payload.password)
    except Exception as e:
        logfire.exception(f"Fatal error occured during login from {client_id}: {e}")
        return _system_error_response()

    if result.ok:
        return LoginResponse(
            token=result.token,
            expires_in=result.expires_in,
            admin=AdminSummary(email=result.identity, role=result.role),
        )

    content = {"detail": {"error": result.error, "message": result.message}}
    headers = None

    if result.status is AuthStatus.RATE_LIMITED:
        content["detail"]["retry_after"] = result.retry_after_seconds
        headers = {"Retry-After": str(result.retry_after_seconds)}
    elif result.status is AuthStatus.INVALID_CREDENTIALS:
        headers = {"WWW-Authenticate": "Bearer"}

    return JSONResponse(
        status_code=HTTP_STATUS_CODES[result.status],
        content=content,
        headers=headers,
    )


@router.get("/validate", response_model=TokenValidationResponse)
async def validate_token(
    admin: Annotated[AdminPrincipal, Depends(authenticate_admin)],
):
    """Validates the presented bearer token and returns the admin it belongs to."""
    return TokenValidationResponse(
        admin=AdminSummary(email=admin.email, role=admin.role),
        expires_at=admin.expires_at,
    )


@router.get("/profile", response_model=ProfileResponse)
async def get_admin_profile(
    admin: Annotated[AdminPrincipal, Depends(require_admin_role)],
):
    """Returns the admin profile derived from the verified token."""
    return ProfileResponse(
        admin=AdminProfile(
            email=admin.email,
            role=admin.role,
            issued_at=admin.issued_at,
            expires_at=admin.expires_at,
        )
    )


@router.get("/session", response_model=SessionResponse)
async def get_session(
    admin: Annotated[Optional[AdminPrincipal], Depends(optional_admin)],
):
    """Reports whether the caller is authenticated. Never rejects the request."""
    if admin is None:
        return SessionResponse(authenticated=False)

    return SessionResponse(
        authenticated=True,
        admin=AdminSummary(email=admin.email, role=admin.role),
    )


@router.post("/logout", response_model=LogoutResponse)
async def logout(request: Request):
    """Acknowledges a logout.

    Tokens are stateless, so nothing is invalidated server-side: the client
    must discard its token.
    """
    logfire.info(f"Admin logout requested from {get_client_identifier(request)}")

    return LogoutResponse(timestamp=datetime.now(timezone.utc))
