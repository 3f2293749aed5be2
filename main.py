"""
ServiceHub Client Entry Point.

Bootstraps the dependency graph via constructor injection, initialises
the local secure-store schema, restores the persisted session once and
reports it.  Every subsystem is wired here; there are no module-level globals.

Usage::

    python main.py
"""

from __future__ import annotations

import asyncio
import sys
import traceback
from pathlib import Path

from servicehub.config import get_config
from servicehub.database import DatabaseManager
from servicehub.logger import StructuredLogger, get_logger
from servicehub.schema import initialize_schema
from servicehub.services import create_services


async def main() -> None:
    """Application entry point: wire dependencies and restore the session."""
    logger: StructuredLogger = get_logger("servicehub.main")
    logger.info("Starting ServiceHub client...")

    # ------------------------------------------------------------------
    # 1. Configuration (from .env / environment variables)
    # ------------------------------------------------------------------
    config = get_config()

    # ------------------------------------------------------------------
    # 2. Local secure-store database + schema (idempotent)
    # ------------------------------------------------------------------
    db = DatabaseManager(
        sqlite_path=Path(config.SECURE_STORE_PATH),
        logger=get_logger("servicehub.database"),
    )
    initialize_schema(db.sqlite, get_logger("servicehub.schema"))

    # ------------------------------------------------------------------
    # 3. Service container (single composition root)
    # ------------------------------------------------------------------
    services = create_services(db=db, config=config)
    session = services["session"]

    try:
        # --------------------------------------------------------------
        # 4. Restore the persisted session once
        # --------------------------------------------------------------
        await session.hydrate()

        if session.is_authenticated and session.user is not None:
            logger.info(
                "Logged in as %s (id %s) in mode '%s'.",
                session.user.name,
                session.user.id,
                session.current_mode.value,
            )
        else:
            logger.info("No active session; login required.")
    finally:
        await session.wait_for_sync()
        await services["api_client"].aclose()
        db.close()
        logger.info("ServiceHub client shut down.")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
    except Exception as exc:
        detail = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        sys.stderr.write(f"FATAL: {type(exc).__name__}: {exc}\n{detail}")
        sys.exit(1)
