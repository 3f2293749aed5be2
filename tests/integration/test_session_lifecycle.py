"""End-to-end session lifecycle through the composition root.

Real SQLite + AES storage, ``httpx.MockTransport`` in place of the API.
"""

from __future__ import annotations

import json

import httpx
import pytest

from servicehub.config import AppConfig
from servicehub.models.enums import AppMode, ModeSwitchOutcome
from servicehub.services import create_services
from servicehub.session import mode_key

USER_RECORD = {
    "id": 42,
    "nome": "Ana Souza",
    "celular": "11987654321",
    "fotoUrl": None,
    "uf": "SP",
    "cidadeIbgeId": 3550308,
    "cidadeNome": "Sao Paulo",
    "bairro": "Pinheiros",
    "modoPreferido": "profissional",
}


class MarketplaceStub:
    def __init__(self) -> None:
        self.requests: list[tuple[str, str]] = []
        self.offline = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.path))
        if self.offline:
            raise httpx.ConnectError("offline", request=request)
        if request.url.path == "/api/auth/login":
            return httpx.Response(
                200,
                json={"token": "access-1", "refreshToken": "refresh-1", "usuario": USER_RECORD},
            )
        if request.url.path == "/api/usuarios/me/modo":
            return httpx.Response(200, json={"modo": json.loads(request.content)["modo"]})
        return httpx.Response(404)


@pytest.fixture
def config(tmp_path) -> AppConfig:
    return AppConfig(
        API_BASE_URL="https://api.test/api/",
        SECURE_STORE_PATH=str(tmp_path / "secure.db"),
        STORAGE_SALT_PATH=str(tmp_path / "storage_salt"),
        STORAGE_KDF_ITERATIONS=1_000,
    )


class TestSessionLifecycle:
    @pytest.mark.asyncio
    async def test_login_switch_offline_and_restart(self, db, config):
        backend = MarketplaceStub()
        services = create_services(db=db, config=config, transport=httpx.MockTransport(backend))
        session = services["session"]
        await session.hydrate()
        assert session.is_authenticated is False

        result = await services["auth_service"].login("11987654321", "s3nha")

        assert result.success is True
        assert session.current_mode == AppMode.PROFESSIONAL
        assert await services["secure_storage"].get(mode_key(42)) == "profissional"

        # Switching back to client needs no eligibility probe; the
        # background sync fails and the local choice stands.
        backend.offline = True
        outcome = await services["profile_service"].request_mode_switch(AppMode.CLIENT)
        await session.wait_for_sync()

        assert outcome == ModeSwitchOutcome.SWITCHED
        assert session.current_mode == AppMode.CLIENT
        assert ("PATCH", "/api/usuarios/me/modo") in backend.requests
        await services["api_client"].aclose()

        restarted = create_services(db=db, config=config, transport=httpx.MockTransport(backend))
        await restarted["session"].hydrate()

        assert restarted["session"].is_authenticated is True
        assert restarted["session"].user.id == 42
        assert restarted["session"].current_mode == AppMode.CLIENT
        await restarted["api_client"].aclose()

    @pytest.mark.asyncio
    async def test_logout_survives_restart(self, db, config):
        backend = MarketplaceStub()
        services = create_services(db=db, config=config, transport=httpx.MockTransport(backend))
        await services["session"].hydrate()
        await services["auth_service"].login("11987654321", "s3nha")

        await services["auth_service"].logout()
        await services["api_client"].aclose()

        restarted = create_services(db=db, config=config, transport=httpx.MockTransport(backend))
        await restarted["session"].hydrate()

        assert restarted["session"].is_authenticated is False
        assert await restarted["secure_storage"].get(mode_key(42)) == "profissional"
        await restarted["api_client"].aclose()
