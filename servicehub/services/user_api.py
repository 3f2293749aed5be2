"""
User Endpoints.

The ``/usuarios/me`` family plus the professional-status probe.  Holds
no session state, which lets the ``SessionStore`` use it as its
``ModeSyncer`` without a construction cycle.
"""

from __future__ import annotations

from servicehub.logger import StructuredLogger
from servicehub.models.auth_models import UpdateProfileRequest
from servicehub.models.enums import AppMode
from servicehub.models.user import UserProfile
from servicehub.services.api_client import ApiClient
from servicehub.services.base_service import BaseService


class UserApi(BaseService):
    """Remote calls about the logged-in user."""

    def __init__(self, api: ApiClient, logger: StructuredLogger) -> None:
        super().__init__(logger)
        self._api: ApiClient = api

    async def update_mode(self, mode: AppMode) -> None:
        """Record *mode* as the user's preferred mode server-side."""
        await self._api.patch("/usuarios/me/modo", json={"modo": AppMode(mode).value})

    async def update_profile(self, request: UpdateProfileRequest) -> UserProfile:
        """Save the editable profile fields and return the updated user."""
        body = await self._api.put("/usuarios/me", json=request.model_dump(by_alias=True))
        return UserProfile.model_validate(body)

    async def is_professional(self) -> bool:
        """``True`` when the user already has a professional profile."""
        return bool(await self._api.get("/profissionais/me/status"))
