"""Defines schema of requests and responses related to security"""

from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Credentials submitted to the login endpoint.

    Both fields are optional here so that missing values are reported as a
    400 by the handler instead of a validation error.
    """

    email: Annotated[Optional[str], Field(examples=["admin@site.com"])] = None
    password: Annotated[Optional[str], Field(examples=["admin123"])] = None


class AdminSummary(BaseModel):
    """Public view of the authenticated admin."""

    email: str
    role: str


class AdminProfile(AdminSummary):
    """Admin details derived from a verified token."""

    issued_at: datetime  # When the token was issued, i.e. the login time
    expires_at: datetime


class LoginResponse(BaseModel):
    """Model returned after a successful login."""

    success: bool = True
    message: str = "Login successful"
    token: str
    token_type: str = "Bearer"
    expires_in: int  # Token expiry in seconds
    admin: AdminSummary


class TokenValidationResponse(BaseModel):
    success: bool = True
    message: str = "Token is valid"
    admin: AdminSummary
    expires_at: datetime


class ProfileResponse(BaseModel):
    success: bool = True
    message: str = "Admin profile retrieved successfully"
    admin: AdminProfile


class SessionResponse(BaseModel):
    """Model describing whether the caller presented a usable token."""

    authenticated: bool
    admin: Optional[AdminSummary] = None


class LogoutResponse(BaseModel):
    success: bool = True
    message: str = "Logout successful. Please remove token from client storage."
    timestamp: datetime
