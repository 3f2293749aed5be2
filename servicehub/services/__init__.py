"""
Services Package.

The ``create_services()`` factory wires secure storage, the HTTP client,
the session store and the services built on them, returning a typed dict
the application root hands to its consumers.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, TypedDict

import httpx

from servicehub.config import AppConfig
from servicehub.database import DatabaseManager
from servicehub.jwt_auth import SessionBearerAuth
from servicehub.logger import get_logger
from servicehub.services.api_client import ApiClient
from servicehub.services.auth_service import AuthService
from servicehub.services.profile_service import ProfileService
from servicehub.services.secure_storage import SecureStorageService
from servicehub.services.user_api import UserApi
from servicehub.session import SessionStore


class ServiceContainer(TypedDict):
    """Typed container for all application services."""

    secure_storage: SecureStorageService
    api_client: ApiClient
    session: SessionStore
    user_api: UserApi
    auth_service: AuthService
    profile_service: ProfileService


def create_services(
    db: DatabaseManager,
    config: AppConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ServiceContainer:
    """Wire every service together.

    This is the single composition root.  The session store is created
    here, once, and shared by every service that needs it; it is not
    hydrated yet, which is the caller's first job.

    Args:
        db: Initialised DatabaseManager with the schema applied.
        config: Application configuration.
        transport: Optional ``httpx`` transport override.

    Returns:
        ServiceContainer mapping service names to fully-wired instances.
    """
    logger = get_logger("servicehub.services")

    secure_storage = SecureStorageService(
        db=db,
        logger=logger,
        salt_path=Path(config.STORAGE_SALT_PATH).expanduser(),
        kdf_iterations=config.STORAGE_KDF_ITERATIONS,
    )
    api_client = ApiClient(
        base_url=config.api_base_url,
        timeout_s=config.API_TIMEOUT_S,
        logger=logger,
        transport=transport,
    )
    user_api = UserApi(api=api_client, logger=logger)

    session = SessionStore(
        storage=secure_storage,
        logger=get_logger("servicehub.session"),
        mode_syncer=user_api,
    )
    api_client.set_auth(
        SessionBearerAuth(
            session=session,
            refresh_url=f"{config.api_base_url}/auth/refresh",
            logger=logger,
        )
    )

    return ServiceContainer(
        secure_storage=secure_storage,
        api_client=api_client,
        session=session,
        user_api=user_api,
        auth_service=AuthService(api=api_client, session=session, logger=logger),
        profile_service=ProfileService(user_api=user_api, session=session, logger=logger),
    )
