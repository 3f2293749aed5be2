"""
Authentication & Session State.

Provides the injectable ``SessionStore``: the single source of truth for
who is logged in, with which credentials, and in which role-mode.  The
application root constructs one store, calls :meth:`SessionStore.hydrate`
once at startup and passes the instance to every consumer.

Persistence is write-through to secure storage under these keys::

    token                 access token
    refreshToken          refresh token
    usuario               JSON user record (wire aliases)
    modoAtual_<userId>    last mode chosen by that user on this device

Usage::

    store = SessionStore(storage=secure_storage, logger=log, mode_syncer=user_api)
    await store.hydrate()
    unsubscribe = store.subscribe(lambda snap: render(snap))
    await store.switch_mode(AppMode.PROFESSIONAL)
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional, Protocol

from pydantic import ValidationError

from servicehub.logger import StructuredLogger
from servicehub.models.enums import AppMode
from servicehub.models.session_models import SessionSnapshot
from servicehub.models.user import SESSION_USER_KEYS, SessionUser

TOKEN_KEY: str = "token"
REFRESH_TOKEN_KEY: str = "refreshToken"
USER_KEY: str = "usuario"
_MODE_KEY_PREFIX: str = "modoAtual_"


def mode_key(user_id: int) -> str:
    """Storage key of the per-user mode preference."""
    return f"{_MODE_KEY_PREFIX}{user_id}"


class KeyValueStorage(Protocol):
    """Async fallible key-value persistence (see ``SecureStorageService``)."""

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...


class ModeSyncer(Protocol):
    """Remote endpoint that records the user's preferred mode server-side."""

    async def update_mode(self, mode: AppMode) -> None: ...


SessionListener = Callable[[SessionSnapshot], None]


class SessionStore:
    """Process-wide session holder with write-through persistence.

    No method raises into callers: storage failures are logged and the
    in-memory state stays authoritative for the rest of the process, and
    a failed remote mode sync is logged as a warning without rollback.

    Parameters
    ----------
    storage:
        Secure key-value storage owned exclusively by this store.
    logger:
        Structured JSON logger.
    mode_syncer:
        Remote mode-update endpoint.  ``None`` disables the background
        sync (the local preference still works).
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        logger: StructuredLogger,
        mode_syncer: Optional[ModeSyncer] = None,
    ) -> None:
        self._storage: KeyValueStorage = storage
        self._logger: StructuredLogger = logger
        self._mode_syncer: Optional[ModeSyncer] = mode_syncer

        self._user: Optional[SessionUser] = None
        self._access_token: Optional[str] = None
        self._refresh_token: Optional[str] = None
        self._is_loading: bool = True
        self._current_mode: AppMode = AppMode.CLIENT

        self._listeners: list[SessionListener] = []

        # Background mode syncs run one at a time; a sync whose
        # generation is stale when it gets the lock is skipped.
        self._sync_tasks: set[asyncio.Task[None]] = set()
        self._sync_lock: asyncio.Lock = asyncio.Lock()
        self._sync_generation: int = 0

    # ------------------------------------------------------------------
    # Reactive fields
    # ------------------------------------------------------------------

    @property
    def user(self) -> Optional[SessionUser]:
        return self._user

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    @property
    def refresh_token(self) -> Optional[str]:
        return self._refresh_token

    @property
    def is_authenticated(self) -> bool:
        """``True`` iff user, access token and refresh token are all present."""
        return (
            self._user is not None
            and self._access_token is not None
            and self._refresh_token is not None
        )

    @property
    def is_loading(self) -> bool:
        """``True`` until the first hydrate, commit or clear settles the session."""
        return self._is_loading

    @property
    def current_mode(self) -> AppMode:
        return self._current_mode

    def snapshot(self) -> SessionSnapshot:
        """Return an immutable copy of the current session state."""
        return SessionSnapshot(
            user=self._user,
            access_token=self._access_token,
            refresh_token=self._refresh_token,
            is_authenticated=self.is_authenticated,
            is_loading=self._is_loading,
            current_mode=self._current_mode,
        )

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register *listener* for every committed state change.

        Returns a callable that removes the listener again.
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def hydrate(self) -> None:
        """Restore the session persisted by a previous process.

        The mode is resolved from the cached user's ``preferred_mode``,
        then the per-user ``modoAtual_<id>`` key, then ``CLIENT``.
        Missing, corrupt or unreadable storage settles the session to
        "not authenticated" without raising.
        """
        try:
            access_token = await self._storage.get(TOKEN_KEY)
            refresh_token = await self._storage.get(REFRESH_TOKEN_KEY)
            user_json = await self._storage.get(USER_KEY)
            if not (access_token and refresh_token and user_json):
                self._logger.info("No stored session found.", extra={"event": "HYDRATE"})
                self._reset()
                return
            user = SessionUser.model_validate_json(user_json)
        except Exception as exc:
            self._logger.warning(
                "Stored session could not be restored: %s", exc,
                extra={"event": "HYDRATE_FAILED"},
            )
            self._reset()
            return

        mode: AppMode = (
            user.preferred_mode
            or await self._read_cached_mode(user.id)
            or AppMode.CLIENT
        )

        self._user = user
        self._access_token = access_token
        self._refresh_token = refresh_token
        self._current_mode = mode
        self._is_loading = False

        self._logger.info(
            "Session restored for user %s in mode '%s'.", user.id, mode.value,
            extra={"event": "HYDRATE", "user_id": user.id},
        )
        self._notify()

    async def commit_auth(
        self,
        user: SessionUser,
        access_token: str,
        refresh_token: str,
    ) -> None:
        """Persist and adopt a freshly authenticated session.

        A full overwrite: called after login or registration.
        ``current_mode`` follows ``user.preferred_mode``
        (``CLIENT`` when absent); a preference carried by the payload is
        also cached under the per-user mode key.  Background syncs still
        queued for the previous session are dropped.
        """
        self._sync_generation += 1

        await self._persist(TOKEN_KEY, access_token)
        await self._persist(REFRESH_TOKEN_KEY, refresh_token)
        await self._persist(USER_KEY, user.to_storage_json())
        if user.preferred_mode is not None:
            await self._persist(mode_key(user.id), user.preferred_mode.value)

        self._user = user
        self._access_token = access_token
        self._refresh_token = refresh_token
        self._current_mode = user.preferred_mode or AppMode.CLIENT
        self._is_loading = False

        self._logger.info(
            "Session committed for user %s.", user.id,
            extra={"event": "SESSION_COMMIT", "user_id": user.id},
        )
        self._notify()

    async def rotate_tokens(self, access_token: str, refresh_token: str) -> None:
        """Replace the token pair after a refresh, keeping user and mode.

        No-op when no user is loaded, so a refresh racing a logout cannot
        resurrect the session.
        """
        if self._user is None:
            self._logger.debug("rotate_tokens ignored: no user loaded.")
            return

        await self._persist(TOKEN_KEY, access_token)
        await self._persist(REFRESH_TOKEN_KEY, refresh_token)
        self._access_token = access_token
        self._refresh_token = refresh_token

        self._logger.info(
            "Session tokens rotated for user %s.", self._user.id,
            extra={"event": "TOKEN_REFRESH", "user_id": self._user.id},
        )
        self._notify()

    async def update_user(self, **changes: object) -> None:
        """Shallow-merge *changes* into the cached user and re-persist it.

        No-op when no user is loaded.  Tokens and mode are untouched.
        Names that are neither a ``SessionUser`` field nor one of its wire
        aliases are logged and dropped.
        """
        if self._user is None:
            self._logger.debug("update_user ignored: no user loaded.")
            return

        unknown = sorted(set(changes) - SESSION_USER_KEYS)
        if unknown:
            self._logger.warning("Ignoring unknown user fields: %s", ", ".join(unknown))
            changes = {key: value for key, value in changes.items() if key not in unknown}
            if not changes:
                return

        try:
            merged = SessionUser.model_validate({**self._user.model_dump(), **changes})
        except ValidationError as exc:
            self._logger.warning("Rejected invalid user update: %s", exc)
            return

        self._user = merged
        await self._persist(USER_KEY, merged.to_storage_json())
        self._notify()

    async def switch_mode(self, mode: AppMode) -> None:
        """Switch the UI mode optimistically and sync it in the background.

        ``current_mode`` changes before the first suspension point.  The
        preference is then cached per user and merged into the stored
        user record, and a detached task reports it to the server.  A
        failed sync is logged and the local choice is kept.

        No-op when no user is loaded.  Callers check professional
        eligibility before switching.
        """
        user = self._user
        if user is None:
            self._logger.debug("switch_mode ignored: no user loaded.")
            return

        mode = AppMode(mode)
        updated = user.model_copy(update={"preferred_mode": mode})
        self._current_mode = mode
        self._user = updated
        self._sync_generation += 1
        generation: int = self._sync_generation
        self._notify()

        await self._persist(mode_key(user.id), mode.value)
        if self._user is not None and self._user.id == user.id:
            await self._persist(USER_KEY, self._user.to_storage_json())

        self._logger.info(
            "Mode switched to '%s' for user %s.", mode.value, user.id,
            extra={"event": "MODE_SWITCH", "user_id": user.id},
        )
        self._spawn_mode_sync(mode, generation)

    async def clear(self) -> None:
        """Log out: drop tokens and the cached user, keep the mode cache.

        The ``modoAtual_<id>`` key survives so the same account logging
        in again on this device gets its last mode back.
        """
        user_id: Optional[int] = self._user.id if self._user is not None else None

        for key in (TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY):
            await self._remove(key)

        # Queued syncs would go out without credentials.
        self._sync_generation += 1
        self._reset()

        self._logger.info(
            "Session cleared.",
            extra={"event": "LOGOUT", "user_id": user_id},
        )

    async def wait_for_sync(self) -> None:
        """Wait until every in-flight background mode sync has finished."""
        while True:
            pending = [task for task in self._sync_tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _reset(self) -> None:
        self._user = None
        self._access_token = None
        self._refresh_token = None
        self._current_mode = AppMode.CLIENT
        self._is_loading = False
        self._notify()

    async def _read_cached_mode(self, user_id: int) -> Optional[AppMode]:
        try:
            raw = await self._storage.get(mode_key(user_id))
        except Exception as exc:
            self._logger.warning("Cached mode for user %s unreadable: %s", user_id, exc)
            return None
        if raw is None:
            return None
        try:
            return AppMode(raw)
        except ValueError:
            self._logger.warning("Ignoring unknown cached mode '%s'.", raw)
            return None

    async def _persist(self, key: str, value: str) -> bool:
        try:
            await self._storage.set(key, value)
            return True
        except Exception as exc:
            self._logger.warning(
                "Failed to persist '%s'; keeping in-memory state: %s", key, exc,
                extra={"event": "STORAGE_WRITE_FAILED"},
            )
            return False

    async def _remove(self, key: str) -> None:
        try:
            await self._storage.delete(key)
        except Exception as exc:
            self._logger.warning(
                "Failed to delete '%s' from storage: %s", key, exc,
                extra={"event": "STORAGE_WRITE_FAILED"},
            )

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                self._logger.error("Session listener raised.", exc_info=True)

    def _spawn_mode_sync(self, mode: AppMode, generation: int) -> None:
        if self._mode_syncer is None:
            self._logger.debug("No mode syncer configured; skipping remote sync.")
            return
        task = asyncio.create_task(
            self._sync_mode(self._mode_syncer, mode, generation),
            name=f"mode-sync-{generation}",
        )
        self._sync_tasks.add(task)
        task.add_done_callback(self._sync_tasks.discard)

    async def _sync_mode(self, syncer: ModeSyncer, mode: AppMode, generation: int) -> None:
        async with self._sync_lock:
            if generation != self._sync_generation:
                self._logger.debug(
                    "Mode sync to '%s' superseded before it was sent.", mode.value,
                )
                return
            try:
                await syncer.update_mode(mode)
            except Exception as exc:
                self._logger.warning(
                    "Remote mode sync to '%s' failed; local mode kept: %s",
                    mode.value,
                    exc,
                    extra={"event": "MODE_SYNC_FAILED"},
                )
                return
        self._logger.info(
            "Mode '%s' synced to server.", mode.value,
            extra={"event": "MODE_SYNC"},
        )
