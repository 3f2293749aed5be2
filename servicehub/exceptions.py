"""ServiceHub exception hierarchy."""

from __future__ import annotations

from typing import Optional


class ServiceHubError(Exception):
    """Base exception for all ServiceHub client errors."""


class SecureStorageError(ServiceHubError):
    """Raised when the secure on-device store cannot read, write or decrypt."""


class AuthenticationError(ServiceHubError):
    """Raised when a guarded call is made without an active session."""


class ApiError(ServiceHubError):
    """Raised when a marketplace API call fails.

    ``detail`` is the server-provided ``message`` field, when the error
    body had one; screens show it verbatim and fall back to their own
    text otherwise.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message: str = message
        self.status_code: Optional[int] = status_code
        self.detail: Optional[str] = detail


class ApiNetworkError(ApiError):
    """Raised when the API could not be reached at all."""


class ApiTimeoutError(ApiNetworkError):
    """Raised when the API did not answer within the configured timeout."""
