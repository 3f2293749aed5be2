"""
Authentication Service.

Orchestrates login, registration and logout between the marketplace API
and the ``SessionStore``.  Screens stay thin form handlers: every method
returns a typed ``AuthResult`` and never raises, and a successful call
has already committed the session by the time it returns.
"""

from __future__ import annotations

import logging

from servicehub.exceptions import ApiError, ApiNetworkError, ApiTimeoutError
from servicehub.logger import StructuredLogger
from servicehub.models.auth_models import (
    AuthErrorCode,
    AuthResponse,
    AuthResult,
    HTTP_STATUS_ERROR_MAP,
    LoginRequest,
    RegisterRequest,
)
from servicehub.services.api_client import ApiClient
from servicehub.services.base_service import BaseService
from servicehub.session import SessionStore

_LOGIN_FALLBACK_MESSAGE: str = "Erro ao fazer login"
_REGISTER_FALLBACK_MESSAGE: str = "Erro ao registrar"


class AuthService(BaseService):
    """Centralised authentication service.

    Parameters
    ----------
    api:
        Marketplace REST client.
    session:
        The application's session store.
    logger:
        Structured JSON logger.
    """

    def __init__(
        self,
        api: ApiClient,
        session: SessionStore,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._api: ApiClient = api
        self._session: SessionStore = session

    # ==================================================================
    # Login
    # ==================================================================

    async def login(self, phone: str, password: str) -> AuthResult:
        """Authenticate with phone and password and commit the session."""
        request = LoginRequest(phone=phone.strip(), password=password)
        try:
            body = await self._api.post("/auth/login", json=request.model_dump(by_alias=True))
            auth = AuthResponse.model_validate(body)
        except (ApiError, ValueError) as exc:
            return self._classify_error(exc, _LOGIN_FALLBACK_MESSAGE, "LOGIN_FAILED")

        await self._session.commit_auth(auth.user, auth.token, auth.refresh_token)
        self._emit("LOGIN", "User authenticated: %s", auth.user.id, user_id=auth.user.id)
        return AuthResult(success=True, user=auth.user)

    # ==================================================================
    # Registration
    # ==================================================================

    async def register(self, request: RegisterRequest) -> AuthResult:
        """Create an account and commit the session it returns."""
        try:
            body = await self._api.post("/auth/registrar", json=request.model_dump(by_alias=True))
            auth = AuthResponse.model_validate(body)
        except (ApiError, ValueError) as exc:
            return self._classify_error(exc, _REGISTER_FALLBACK_MESSAGE, "REGISTER_FAILED")

        await self._session.commit_auth(auth.user, auth.token, auth.refresh_token)
        self._emit("REGISTER", "User registered: %s", auth.user.id, user_id=auth.user.id)
        return AuthResult(success=True, user=auth.user)

    # ==================================================================
    # Logout
    # ==================================================================

    async def logout(self) -> None:
        """End the session locally.  Never raises."""
        await self._session.clear()

    # ==================================================================
    # Error classification
    # ==================================================================

    def _classify_error(
        self,
        exc: Exception,
        fallback_message: str,
        event: str,
    ) -> AuthResult:
        """Map an API or payload failure to a structured ``AuthResult``."""
        if isinstance(exc, ApiTimeoutError):
            code = AuthErrorCode.TIMEOUT_ERROR
            message = exc.message
        elif isinstance(exc, ApiNetworkError):
            code = AuthErrorCode.NETWORK_ERROR
            message = exc.message
        elif isinstance(exc, ApiError):
            code = HTTP_STATUS_ERROR_MAP.get(exc.status_code or 0, AuthErrorCode.UNKNOWN_ERROR)
            message = exc.detail or fallback_message
        else:
            # Response body did not match the auth contract.
            code = AuthErrorCode.UNKNOWN_ERROR
            message = fallback_message

        self._emit(
            event, "Auth request failed (%s): %s", code.value, exc,
            level=logging.WARNING, error_code=code.value,
        )
        return AuthResult(success=False, error_code=code, error_message=message)
