"""
Base Service Class.

Services log through :meth:`BaseService._emit` so every domain event
carries the same ``event``/``user_id`` shape the JSON formatter lifts to
the top of the entry.
"""

from __future__ import annotations

import logging
from typing import Optional

from servicehub.logger import StructuredLogger


class BaseService:
    """Holds the injected logger and the event-logging helper."""

    def __init__(self, logger: StructuredLogger) -> None:
        self._logger: StructuredLogger = logger

    def _emit(
        self,
        event: str,
        msg: str,
        *args: object,
        level: int = logging.INFO,
        user_id: Optional[int] = None,
        **fields: object,
    ) -> None:
        extra: dict[str, object] = {"event": event, **fields}
        if user_id is not None:
            extra["user_id"] = user_id
        log = self._logger.warning if level >= logging.WARNING else self._logger.info
        log(msg, *args, extra=extra)
