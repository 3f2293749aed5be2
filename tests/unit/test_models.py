"""Tests for the pydantic models and their wire aliases."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from servicehub.models import AppMode, AuthResponse, SessionSnapshot, SessionUser

WIRE_USER = {
    "id": 7,
    "nome": "Bruno Reis",
    "celular": "21912345678",
    "uf": "RJ",
    "cidadeIbgeId": 3304557,
    "cidadeNome": "Rio de Janeiro",
    "bairro": "Tijuca",
}


class TestSessionUser:
    def test_parses_wire_aliases(self):
        user = SessionUser.model_validate(WIRE_USER)

        assert user.name == "Bruno Reis"
        assert user.city_ibge_id == 3304557
        assert user.photo_url is None
        assert user.preferred_mode is None

    def test_preferred_mode_aliases(self):
        assert SessionUser.model_validate(
            {**WIRE_USER, "modoPreferido": "profissional"}
        ).preferred_mode == AppMode.PROFESSIONAL
        assert SessionUser.model_validate(
            {**WIRE_USER, "preferredMode": "cliente"}
        ).preferred_mode == AppMode.CLIENT

    def test_storage_json_uses_wire_names(self):
        user = SessionUser.model_validate({**WIRE_USER, "preferredMode": "profissional"})

        stored = json.loads(user.to_storage_json())

        assert stored["nome"] == "Bruno Reis"
        assert stored["modoPreferido"] == "profissional"
        assert "preferredMode" not in stored

    def test_rejects_unknown_mode(self):
        with pytest.raises(ValidationError):
            SessionUser.model_validate({**WIRE_USER, "modoPreferido": "admin"})


class TestAppMode:
    def test_values_match_wire_strings(self):
        assert AppMode.CLIENT == "cliente"
        assert AppMode.PROFESSIONAL == "profissional"
        assert AppMode("profissional") is AppMode.PROFESSIONAL


class TestAuthResponse:
    def test_parses_login_body(self):
        body = {"token": "t", "refreshToken": "r", "usuario": WIRE_USER}

        auth = AuthResponse.model_validate(body)

        assert auth.refresh_token == "r"
        assert auth.user.id == 7


class TestSessionSnapshot:
    def test_is_frozen(self):
        snapshot = SessionSnapshot(
            user=None,
            access_token=None,
            refresh_token=None,
            is_authenticated=False,
            is_loading=True,
            current_mode=AppMode.CLIENT,
        )

        with pytest.raises(ValidationError):
            snapshot.is_loading = False
