"""
Bearer Authentication & Guard Decorator.

``SessionBearerAuth`` plugs the ``SessionStore`` credentials into
``httpx``: every request carries the current access token, and a 401 on
an authenticated request triggers exactly one refresh-and-replay.

``require_auth`` produces a decorator gating coroutine service methods
behind an authenticated session.

Usage::

    client = httpx.AsyncClient(
        base_url=config.api_base_url,
        auth=SessionBearerAuth(session, f"{config.api_base_url}/auth/refresh", log),
    )

    auth_guard = require_auth(session)

    @auth_guard
    async def load_profile() -> dict:
        ...
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, Awaitable, Generator
from functools import wraps
from typing import Callable, ParamSpec, TypeVar

import httpx

from servicehub.exceptions import AuthenticationError
from servicehub.logger import StructuredLogger
from servicehub.models.auth_models import AuthResponse, RefreshRequest
from servicehub.session import SessionStore

P = ParamSpec("P")
R = TypeVar("R")

_AUTH_PATH_MARKER: str = "/auth/"
# The server answers these when the refresh token itself is no good.
_REFRESH_REJECTED_STATUSES: frozenset[int] = frozenset({400, 401, 403})


class SessionBearerAuth(httpx.Auth):
    """``httpx`` auth flow backed by a ``SessionStore``.

    Parameters
    ----------
    session:
        The store holding the token pair.
    refresh_url:
        Absolute URL of ``POST /auth/refresh``.
    logger:
        Structured JSON logger.
    """

    def __init__(
        self,
        session: SessionStore,
        refresh_url: str,
        logger: StructuredLogger,
    ) -> None:
        self._session: SessionStore = session
        self._refresh_url: str = refresh_url
        self._logger: StructuredLogger = logger
        self._refresh_lock: asyncio.Lock = asyncio.Lock()

    def sync_auth_flow(
        self, request: httpx.Request,
    ) -> Generator[httpx.Request, httpx.Response, None]:
        raise RuntimeError("SessionBearerAuth only supports httpx.AsyncClient.")

    async def async_auth_flow(
        self, request: httpx.Request,
    ) -> AsyncGenerator[httpx.Request, httpx.Response]:
        sent_token = self._session.access_token
        if sent_token is not None:
            request.headers["Authorization"] = f"Bearer {sent_token}"

        response = yield request

        if (
            response.status_code != 401
            or sent_token is None
            or _AUTH_PATH_MARKER in request.url.path
        ):
            return

        async with self._refresh_lock:
            # Another request may have refreshed while this one waited.
            if self._session.access_token == sent_token:
                refresh_token = self._session.refresh_token
                if refresh_token is None:
                    return

                refresh_response = yield httpx.Request(
                    "POST",
                    self._refresh_url,
                    json=RefreshRequest(refresh_token=refresh_token).model_dump(by_alias=True),
                )
                await refresh_response.aread()

                if refresh_response.status_code in _REFRESH_REJECTED_STATUSES:
                    self._logger.warning(
                        "Token refresh rejected (HTTP %d); clearing session.",
                        refresh_response.status_code,
                        extra={"event": "SESSION_EXPIRED"},
                    )
                    await self._session.clear()
                    return
                if refresh_response.is_error:
                    # Outage or throttling: keep the session for a later retry.
                    self._logger.warning(
                        "Token refresh unavailable (HTTP %d); session kept.",
                        refresh_response.status_code,
                        extra={"event": "TOKEN_REFRESH_FAILED"},
                    )
                    return

                try:
                    payload = AuthResponse.model_validate(refresh_response.json())
                except ValueError as exc:
                    self._logger.warning("Malformed refresh response: %s", exc)
                    return

                await self._session.rotate_tokens(payload.token, payload.refresh_token)

        new_token = self._session.access_token
        if new_token is None:
            return
        request.headers["Authorization"] = f"Bearer {new_token}"
        yield request


def require_auth(
    session: SessionStore,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Return a decorator that enforces authentication via *session*.

    The wrapped coroutine raises :class:`AuthenticationError` when
    ``session.is_authenticated`` is false at call time.
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            if not session.is_authenticated:
                raise AuthenticationError(
                    "Authentication required. Please log in before "
                    "performing this action."
                )
            return await func(*args, **kwargs)

        return wrapper

    return decorator
