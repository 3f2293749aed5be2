"""
Session Snapshot Model.

Immutable view of the session handed to subscribers of
``SessionStore.subscribe``.  Readers never get the live store state, so
they cannot mutate it.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from servicehub.models.enums import AppMode
from servicehub.models.user import SessionUser


class SessionSnapshot(BaseModel):
    user: Optional[SessionUser] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    is_authenticated: bool = False
    is_loading: bool = False
    current_mode: AppMode = AppMode.CLIENT

    model_config = {"frozen": True}
