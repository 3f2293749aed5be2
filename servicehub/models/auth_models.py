"""
Authentication Pipeline Models.

Pydantic models and enumerations for the auth request/response
contracts between the marketplace API, ``AuthService`` and its callers.
Every auth operation returns a structured ``AuthResult`` rather than
raising, so screens only ever branch on ``success``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, Field

from servicehub.models.user import SessionUser


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------

class AuthErrorCode(StrEnum):
    """Exhaustive enumeration of authentication error categories."""

    INVALID_CREDENTIALS = "invalid_credentials"
    PHONE_ALREADY_EXISTS = "phone_already_exists"
    VALIDATION_ERROR = "validation_error"
    RATE_LIMITED = "rate_limited"
    NETWORK_ERROR = "network_error"
    TIMEOUT_ERROR = "timeout_error"
    SESSION_EXPIRED = "session_expired"
    UNKNOWN_ERROR = "unknown_error"


HTTP_STATUS_ERROR_MAP: dict[int, AuthErrorCode] = {
    400: AuthErrorCode.VALIDATION_ERROR,
    401: AuthErrorCode.INVALID_CREDENTIALS,
    403: AuthErrorCode.INVALID_CREDENTIALS,
    409: AuthErrorCode.PHONE_ALREADY_EXISTS,
    422: AuthErrorCode.VALIDATION_ERROR,
    429: AuthErrorCode.RATE_LIMITED,
}


# ---------------------------------------------------------------------------
# Wire contracts
# ---------------------------------------------------------------------------

class AuthResponse(BaseModel):
    """Body returned by ``/auth/login``, ``/auth/registrar`` and ``/auth/refresh``."""

    token: str
    refresh_token: str = Field(alias="refreshToken")
    user: SessionUser = Field(alias="usuario")

    model_config = {"populate_by_name": True}


class LoginRequest(BaseModel):
    phone: str = Field(alias="celular")
    password: str = Field(alias="senha")

    model_config = {"populate_by_name": True}


class RegisterRequest(BaseModel):
    name: str = Field(alias="nome")
    phone: str = Field(alias="celular")
    password: str = Field(alias="senha")
    state: str = Field(alias="uf")
    city_ibge_id: int = Field(alias="cidadeIbgeId")
    city_name: str = Field(alias="cidadeNome")
    neighborhood: str = Field(alias="bairro")

    model_config = {"populate_by_name": True}


class RefreshRequest(BaseModel):
    refresh_token: str = Field(alias="refreshToken")

    model_config = {"populate_by_name": True}


class UpdateProfileRequest(BaseModel):
    """Editable profile fields sent to ``PUT /usuarios/me``."""

    name: str = Field(alias="nome")
    state: str = Field(alias="uf")
    city_ibge_id: int = Field(alias="cidadeIbgeId")
    city_name: str = Field(alias="cidadeNome")
    neighborhood: str = Field(alias="bairro")

    model_config = {"populate_by_name": True}


# ---------------------------------------------------------------------------
# Unified auth response
# ---------------------------------------------------------------------------

class AuthResult(BaseModel):
    """Unified response for login and registration.

    Attributes
    ----------
    success:
        ``True`` when the operation completed and the session was committed.
    error_code:
        Structured error category (``None`` on success).
    error_message:
        Message to show the user (``None`` on success).
    user:
        The committed session user on success.
    """

    success: bool
    error_code: Optional[AuthErrorCode] = None
    error_message: Optional[str] = None
    user: Optional[SessionUser] = None
