"""
Data Models Package.

Re-exports all Pydantic models:
    from servicehub.models import SessionUser, AppMode, AuthResponse, AuthResult
"""

from __future__ import annotations

from servicehub.models.enums import AppMode, ModeSwitchOutcome
from servicehub.models.user import SessionUser, UserProfile
from servicehub.models.session_models import SessionSnapshot
from servicehub.models.auth_models import (
    AuthErrorCode,
    AuthResponse,
    AuthResult,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    UpdateProfileRequest,
)

__all__ = [
    "AppMode",
    "ModeSwitchOutcome",
    "SessionUser",
    "UserProfile",
    "SessionSnapshot",
    "AuthErrorCode",
    "AuthResponse",
    "AuthResult",
    "LoginRequest",
    "RefreshRequest",
    "RegisterRequest",
    "UpdateProfileRequest",
]
