"""
Marketplace REST Client.

Thin async transport over one ``httpx.AsyncClient``: JSON in, decoded
JSON out, and a single exception family (``ApiError``) for everything
that can go wrong on the wire.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from servicehub.exceptions import ApiError, ApiNetworkError, ApiTimeoutError
from servicehub.logger import StructuredLogger
from servicehub.services.base_service import BaseService


class ApiClient(BaseService):
    """Async JSON client for the marketplace API.

    Parameters
    ----------
    base_url:
        API root, e.g. ``https://api.example.com/api``.
    timeout_s:
        Per-request timeout in seconds.
    logger:
        Structured JSON logger.
    transport:
        Optional ``httpx`` transport (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        base_url: str,
        timeout_s: float,
        logger: StructuredLogger,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(logger)
        self._client: httpx.AsyncClient = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_s,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def set_auth(self, auth: Optional[httpx.Auth]) -> None:
        """Install the auth flow used for every subsequent request."""
        self._client.auth = auth

    async def get(self, path: str) -> Any:
        return await self.request("GET", path)

    async def post(self, path: str, json: Any = None) -> Any:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, json: Any = None) -> Any:
        return await self.request("PUT", path, json=json)

    async def patch(self, path: str, json: Any = None) -> Any:
        return await self.request("PATCH", path, json=json)

    async def request(self, method: str, path: str, json: Any = None) -> Any:
        """Send one request and return the decoded JSON body.

        Returns ``None`` for empty bodies (``204`` or zero-length ``200``).

        Raises
        ------
        ApiTimeoutError
            The server did not answer in time.
        ApiNetworkError
            The server could not be reached.
        ApiError
            The server answered with a 4xx/5xx status.
        """
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.TimeoutException as exc:
            self._logger.warning("%s %s timed out: %s", method, path, exc)
            raise ApiTimeoutError("Tempo de resposta esgotado.") from exc
        except httpx.TransportError as exc:
            self._logger.warning("%s %s unreachable: %s", method, path, exc)
            raise ApiNetworkError("Nao foi possivel conectar ao servidor.") from exc

        if response.is_error:
            detail = _server_message(response)
            message = detail or response.reason_phrase or f"HTTP {response.status_code}"
            self._logger.info(
                "%s %s failed with HTTP %d: %s", method, path, response.status_code, message,
            )
            raise ApiError(message, status_code=response.status_code, detail=detail)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(
                "Resposta invalida do servidor.", status_code=response.status_code,
            ) from exc

    async def aclose(self) -> None:
        await self._client.aclose()


def _server_message(response: httpx.Response) -> Optional[str]:
    """Return the ``message`` field of a JSON error body, if any."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message:
            return message
    return None
