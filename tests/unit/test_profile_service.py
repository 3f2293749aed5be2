"""Tests for servicehub.services.profile_service and servicehub.services.user_api."""

from __future__ import annotations

import json

import httpx
import pytest

from servicehub.exceptions import ApiError, AuthenticationError
from servicehub.jwt_auth import SessionBearerAuth
from servicehub.models.auth_models import UpdateProfileRequest
from servicehub.models.enums import AppMode, ModeSwitchOutcome
from servicehub.services.api_client import ApiClient
from servicehub.services.profile_service import ProfileService
from servicehub.services.user_api import UserApi
from servicehub.session import USER_KEY, SessionStore, mode_key

BASE_URL = "https://api.test/api"


class FakeBackend:
    """Minimal stand-in for the marketplace user endpoints."""

    def __init__(self, has_professional_profile: bool = True) -> None:
        self.has_professional_profile = has_professional_profile
        self.mode_calls: list[dict] = []
        self.fail_mode_sync = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/api/profissionais/me/status":
            return httpx.Response(200, json=self.has_professional_profile)
        if path == "/api/usuarios/me/modo":
            self.mode_calls.append(json.loads(request.content))
            if self.fail_mode_sync:
                raise httpx.ConnectError("offline", request=request)
            return httpx.Response(204)
        if path == "/api/usuarios/me" and request.method == "PUT":
            body = json.loads(request.content)
            body["fotoUrl"] = "https://cdn.test/ana.png"
            return httpx.Response(200, json=body)
        return httpx.Response(404, json={"message": "Rota desconhecida"})


def _wire(backend, storage, logger):
    api = ApiClient(BASE_URL, 5.0, logger, transport=httpx.MockTransport(backend))
    user_api = UserApi(api=api, logger=logger)
    session = SessionStore(storage, logger, mode_syncer=user_api)
    api.set_auth(SessionBearerAuth(session, f"{BASE_URL}/auth/refresh", logger))
    return session, ProfileService(user_api=user_api, session=session, logger=logger)


def _profile_request() -> UpdateProfileRequest:
    return UpdateProfileRequest(
        name="Ana Lima",
        state="RJ",
        city_ibge_id=3304557,
        city_name="Rio de Janeiro",
        neighborhood="Botafogo",
    )


class TestUpdateProfile:
    @pytest.mark.asyncio
    async def test_requires_session(self, storage, logger):
        _, service = _wire(FakeBackend(), storage, logger)

        with pytest.raises(AuthenticationError):
            await service.update_profile(_profile_request())

    @pytest.mark.asyncio
    async def test_merges_server_echo_into_session(self, storage, logger, make_user):
        session, service = _wire(FakeBackend(), storage, logger)
        await session.commit_auth(make_user(), "a", "r")

        profile = await service.update_profile(_profile_request())

        assert profile.name == "Ana Lima"
        assert session.user.name == "Ana Lima"
        assert session.user.city_name == "Rio de Janeiro"
        assert session.user.photo_url == "https://cdn.test/ana.png"
        assert session.user.phone == "11987654321"
        assert json.loads(storage.items[USER_KEY])["uf"] == "RJ"

    @pytest.mark.asyncio
    async def test_server_rejection_propagates(self, storage, logger, make_user):
        def backend(request: httpx.Request) -> httpx.Response:
            return httpx.Response(422, json={"message": "Bairro obrigatorio"})

        session, service = _wire(backend, storage, logger)
        await session.commit_auth(make_user(), "a", "r")

        with pytest.raises(ApiError) as exc_info:
            await service.update_profile(_profile_request())

        assert exc_info.value.detail == "Bairro obrigatorio"
        assert session.user.name == "Ana Souza"


class TestRequestModeSwitch:
    @pytest.mark.asyncio
    async def test_not_authenticated(self, storage, logger):
        _, service = _wire(FakeBackend(), storage, logger)

        outcome = await service.request_mode_switch(AppMode.PROFESSIONAL)

        assert outcome == ModeSwitchOutcome.NOT_AUTHENTICATED

    @pytest.mark.asyncio
    async def test_same_mode_is_unchanged(self, storage, logger, make_user):
        backend = FakeBackend()
        session, service = _wire(backend, storage, logger)
        await session.commit_auth(make_user(), "a", "r")

        outcome = await service.request_mode_switch(AppMode.CLIENT)
        await session.wait_for_sync()

        assert outcome == ModeSwitchOutcome.UNCHANGED
        assert backend.mode_calls == []

    @pytest.mark.asyncio
    async def test_professional_requires_profile(self, storage, logger, make_user):
        backend = FakeBackend(has_professional_profile=False)
        session, service = _wire(backend, storage, logger)
        await session.commit_auth(make_user(), "a", "r")

        outcome = await service.request_mode_switch(AppMode.PROFESSIONAL)
        await session.wait_for_sync()

        assert outcome == ModeSwitchOutcome.PROFILE_REQUIRED
        assert session.current_mode == AppMode.CLIENT
        assert backend.mode_calls == []

    @pytest.mark.asyncio
    async def test_switch_syncs_in_background(self, storage, logger, make_user):
        backend = FakeBackend()
        session, service = _wire(backend, storage, logger)
        await session.commit_auth(make_user(), "a", "r")

        outcome = await service.request_mode_switch(AppMode.PROFESSIONAL)
        await session.wait_for_sync()

        assert outcome == ModeSwitchOutcome.SWITCHED
        assert session.current_mode == AppMode.PROFESSIONAL
        assert backend.mode_calls == [{"modo": "profissional"}]

    @pytest.mark.asyncio
    async def test_failed_sync_keeps_local_choice(self, storage, logger, make_user):
        backend = FakeBackend()
        backend.fail_mode_sync = True
        session, service = _wire(backend, storage, logger)
        await session.commit_auth(
            make_user(preferred_mode=AppMode.PROFESSIONAL), "access-1", "refresh-1",
        )
        assert storage.items[mode_key(42)] == "profissional"

        outcome = await service.request_mode_switch(AppMode.CLIENT)
        await session.wait_for_sync()

        assert outcome == ModeSwitchOutcome.SWITCHED
        assert session.current_mode == AppMode.CLIENT
        assert storage.items[mode_key(42)] == "cliente"
        assert backend.mode_calls == [{"modo": "cliente"}]
