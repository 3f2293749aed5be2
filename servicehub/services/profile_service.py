"""
Profile Service.

Profile edits and the client/professional mode toggle.  Both write
through the ``SessionStore`` so every screen sees the change at once.
"""

from __future__ import annotations

from servicehub.jwt_auth import require_auth
from servicehub.logger import StructuredLogger
from servicehub.models.auth_models import UpdateProfileRequest
from servicehub.models.enums import AppMode, ModeSwitchOutcome
from servicehub.models.user import UserProfile
from servicehub.services.base_service import BaseService
from servicehub.services.user_api import UserApi
from servicehub.session import SessionStore


class ProfileService(BaseService):
    """Session-aware wrapper around :class:`UserApi`.

    Parameters
    ----------
    user_api:
        Remote user endpoints.
    session:
        The application's session store.
    logger:
        Structured JSON logger.
    """

    def __init__(
        self,
        user_api: UserApi,
        session: SessionStore,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._user_api: UserApi = user_api
        self._session: SessionStore = session
        self.update_profile = require_auth(session)(self._update_profile)

    async def _update_profile(self, request: UpdateProfileRequest) -> UserProfile:
        """Save the profile server-side, then merge the echo into the session.

        Raises
        ------
        AuthenticationError
            No session is active.
        ApiError
            The server rejected or never received the update.
        """
        profile = await self._user_api.update_profile(request)
        await self._session.update_user(
            name=profile.name,
            state=profile.state,
            city_ibge_id=profile.city_ibge_id,
            city_name=profile.city_name,
            neighborhood=profile.neighborhood,
            photo_url=profile.photo_url,
        )
        user = self._session.user
        self._emit("PROFILE_UPDATE", "Profile updated.", user_id=user.id if user else None)
        return profile

    async def request_mode_switch(self, mode: AppMode) -> ModeSwitchOutcome:
        """Switch modes after checking the user may enter *mode*.

        Entering professional mode requires a professional profile;
        without one the caller gets ``PROFILE_REQUIRED`` and should offer
        to create it.  An ``ApiError`` from the eligibility check
        propagates, since no state has changed yet.
        """
        if not self._session.is_authenticated:
            return ModeSwitchOutcome.NOT_AUTHENTICATED

        mode = AppMode(mode)
        if mode == self._session.current_mode:
            return ModeSwitchOutcome.UNCHANGED

        if mode == AppMode.PROFESSIONAL and not await self._user_api.is_professional():
            self._emit(
                "MODE_SWITCH_REFUSED",
                "Professional mode requested without a professional profile.",
            )
            return ModeSwitchOutcome.PROFILE_REQUIRED

        await self._session.switch_mode(mode)
        return ModeSwitchOutcome.SWITCHED
