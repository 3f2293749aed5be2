"""Shared fixtures: in-memory storage, recording mode syncer, sample users."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable, Optional

import pytest

from servicehub.database import DatabaseManager
from servicehub.exceptions import ApiNetworkError, SecureStorageError
from servicehub.logger import StructuredLogger
from servicehub.models.enums import AppMode
from servicehub.models.user import SessionUser
from servicehub.schema import initialize_schema
from servicehub.services.secure_storage import SecureStorageService


class InMemoryStorage:
    """Async key-value fake with failure injection and a write journal."""

    def __init__(self) -> None:
        self.items: dict[str, str] = {}
        self.writes: list[tuple[str, str]] = []
        self.fail_reads: bool = False
        self.fail_writes: bool = False
        self.write_gate: Optional[asyncio.Event] = None

    async def get(self, key: str) -> Optional[str]:
        if self.fail_reads:
            raise SecureStorageError("storage unavailable")
        return self.items.get(key)

    async def set(self, key: str, value: str) -> None:
        if self.write_gate is not None:
            await self.write_gate.wait()
        self.writes.append(("set", key))
        if self.fail_writes:
            raise SecureStorageError("disk full")
        self.items[key] = value

    async def delete(self, key: str) -> None:
        self.writes.append(("delete", key))
        if self.fail_writes:
            raise SecureStorageError("disk full")
        self.items.pop(key, None)


class RecordingModeSyncer:
    """Records every mode sent to the server; can block or fail."""

    def __init__(self, error: Optional[Exception] = None) -> None:
        self.calls: list[AppMode] = []
        self.error: Optional[Exception] = error
        self.gate: Optional[asyncio.Event] = None

    async def update_mode(self, mode: AppMode) -> None:
        self.calls.append(mode)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error


@pytest.fixture
def logger(tmp_path: Path) -> StructuredLogger:
    return StructuredLogger(name="servicehub.tests", log_file=str(tmp_path / "test.log"))


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def syncer() -> RecordingModeSyncer:
    return RecordingModeSyncer()


@pytest.fixture
def make_user() -> Callable[..., SessionUser]:
    def _make(**overrides: object) -> SessionUser:
        fields: dict[str, object] = {
            "id": 42,
            "name": "Ana Souza",
            "phone": "11987654321",
            "photo_url": None,
            "state": "SP",
            "city_ibge_id": 3550308,
            "city_name": "Sao Paulo",
            "neighborhood": "Pinheiros",
        }
        fields.update(overrides)
        return SessionUser(**fields)

    return _make


@pytest.fixture
def db(tmp_path: Path, logger: StructuredLogger) -> DatabaseManager:
    manager = DatabaseManager(sqlite_path=tmp_path / "secure.db", logger=logger)
    initialize_schema(manager.sqlite, logger)
    yield manager
    manager.close()


@pytest.fixture
def secure_storage(
    db: DatabaseManager, logger: StructuredLogger, tmp_path: Path,
) -> SecureStorageService:
    return SecureStorageService(
        db=db,
        logger=logger,
        salt_path=tmp_path / "storage_salt",
        kdf_iterations=1_000,
    )


@pytest.fixture
def failing_syncer() -> RecordingModeSyncer:
    return RecordingModeSyncer(error=ApiNetworkError("Nao foi possivel conectar ao servidor."))
