"""
Secure On-Device Storage Service.

Encrypted key-value store backing the session: access token, refresh
token, the cached ``usuario`` record and the per-user ``modoAtual_<id>``
mode preference all live here.

Security model
--------------
- The encryption key is derived at runtime from machine characteristics
  (hostname + OS username) via PBKDF2-HMAC-SHA256 with a per-installation
  random salt.  The key is **never** persisted to disk; it is derived
  once per process and kept in memory.
- Every value is encrypted with AES-256-GCM under a fresh nonce, with the
  item key bound as associated data so a ciphertext copied onto another
  key fails authentication.

Storage layout::

    secure_items
    ├── key         TEXT PRIMARY KEY
    ├── ciphertext  BLOB
    ├── nonce       BLOB
    └── tag         BLOB
"""

from __future__ import annotations

import asyncio
import getpass
import os
import socket
import stat
import threading
from pathlib import Path
from typing import Optional

from Crypto.Cipher import AES
from Crypto.Hash import SHA256
from Crypto.Protocol.KDF import PBKDF2

from servicehub.database import DatabaseManager
from servicehub.exceptions import SecureStorageError
from servicehub.logger import StructuredLogger
from servicehub.services.base_service import BaseService


class SecureStorageService(BaseService):
    """Async encrypted key-value storage over the local SQLite database.

    Every public method is a coroutine; blocking SQLite and KDF work is
    pushed to a worker thread with ``asyncio.to_thread``.  Every failure
    (I/O, missing salt, tampered ciphertext) surfaces as
    ``SecureStorageError`` so callers have a single thing to catch.

    Parameters
    ----------
    db:
        ``DatabaseManager`` whose schema includes ``secure_items``.
    logger:
        Structured JSON logger.
    salt_path:
        Location of the per-installation 32-byte salt file.
    kdf_iterations:
        PBKDF2 iteration count used to derive the AES key.
    """

    _KEY_LENGTH: int = 32  # 256 bits
    _SALT_LENGTH: int = 32

    def __init__(
        self,
        db: DatabaseManager,
        logger: StructuredLogger,
        salt_path: Path,
        kdf_iterations: int = 600_000,
    ) -> None:
        super().__init__(logger)
        self._db: DatabaseManager = db
        self._salt_path: Path = salt_path
        self._kdf_iterations: int = kdf_iterations
        self._key: Optional[bytes] = None
        self._key_lock: threading.Lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Optional[str]:
        """Return the decrypted value stored under *key*, or ``None``."""
        return await asyncio.to_thread(self._get_sync, key)

    async def set(self, key: str, value: str) -> None:
        """Encrypt *value* and upsert it under *key*."""
        await asyncio.to_thread(self._set_sync, key, value)

    async def delete(self, key: str) -> None:
        """Remove *key*.  Deleting a missing key is not an error."""
        await asyncio.to_thread(self._delete_sync, key)

    # ------------------------------------------------------------------
    # Blocking implementations (run on a worker thread)
    # ------------------------------------------------------------------

    def _get_sync(self, key: str) -> Optional[str]:
        try:
            row = self._db.sqlite.execute(
                "SELECT ciphertext, nonce, tag FROM secure_items WHERE key = ?",
                (key,),
            ).fetchone()
        except Exception as exc:
            raise SecureStorageError(f"Failed to read secure item '{key}': {exc}") from exc

        if row is None:
            return None

        try:
            cipher = AES.new(self._derive_key(), AES.MODE_GCM, nonce=row["nonce"])
            cipher.update(key.encode("utf-8"))
            plaintext: bytes = cipher.decrypt_and_verify(row["ciphertext"], row["tag"])
            return plaintext.decode("utf-8")
        except (ValueError, KeyError, UnicodeDecodeError) as exc:
            self._logger.warning(
                "Secure item '%s' could not be decrypted (corrupted data or "
                "machine identity changed): %s",
                key,
                exc,
            )
            raise SecureStorageError(f"Secure item '{key}' is unreadable.") from exc
        except OSError as exc:
            raise SecureStorageError(f"Storage key unavailable: {exc}") from exc

    def _set_sync(self, key: str, value: str) -> None:
        try:
            cipher = AES.new(self._derive_key(), AES.MODE_GCM)
            cipher.update(key.encode("utf-8"))
            ciphertext, tag = cipher.encrypt_and_digest(value.encode("utf-8"))
            nonce: bytes = cipher.nonce
        except (ValueError, OSError) as exc:
            raise SecureStorageError(f"Failed to encrypt secure item '{key}': {exc}") from exc

        try:
            with self._db.write_lock:
                self._db.sqlite.execute(
                    """
                    INSERT INTO secure_items (key, ciphertext, nonce, tag)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        ciphertext = excluded.ciphertext,
                        nonce      = excluded.nonce,
                        tag        = excluded.tag,
                        updated_at = CURRENT_TIMESTAMP
                    """,
                    (key, ciphertext, nonce, tag),
                )
                self._db.sqlite.commit()
        except Exception as exc:
            raise SecureStorageError(f"Failed to write secure item '{key}': {exc}") from exc
        self._logger.debug("Secure item '%s' written.", key)

    def _delete_sync(self, key: str) -> None:
        try:
            with self._db.write_lock:
                self._db.sqlite.execute("DELETE FROM secure_items WHERE key = ?", (key,))
                self._db.sqlite.commit()
        except Exception as exc:
            raise SecureStorageError(f"Failed to delete secure item '{key}': {exc}") from exc
        self._logger.debug("Secure item '%s' deleted.", key)

    # ------------------------------------------------------------------
    # Key material
    # ------------------------------------------------------------------

    def _derive_key(self) -> bytes:
        """Return the 256-bit AES key, deriving it on first use.

        The key is deterministic for a given (hostname, OS username,
        salt) triple.  If the machine identity changes, previously
        stored items become undecryptable and read as errors, which the
        session treats as "logged out".

        Raises
        ------
        OSError
            If the salt file cannot be created or read.
        """
        with self._key_lock:
            if self._key is None:
                password: str = f"{socket.gethostname()}:{getpass.getuser()}"
                self._key = PBKDF2(
                    password=password,
                    salt=self._get_or_create_salt(),
                    dkLen=self._KEY_LENGTH,
                    count=self._kdf_iterations,
                    hmac_hash_module=SHA256,
                )
            return self._key

    def _get_or_create_salt(self) -> bytes:
        """Return the per-installation salt, creating it on first run.

        A salt of the wrong length is regenerated, which invalidates
        anything encrypted under the old one.

        Raises
        ------
        OSError
            If the salt file cannot be read or written.
        """
        if self._salt_path.exists():
            data: bytes = self._salt_path.read_bytes()
            if len(data) == self._SALT_LENGTH:
                return data
            self._logger.warning(
                "Salt file has unexpected length (%d); regenerating.",
                len(data),
            )
        salt: bytes = os.urandom(self._SALT_LENGTH)
        self._salt_path.parent.mkdir(parents=True, exist_ok=True)
        self._salt_path.write_bytes(salt)
        self._salt_path.chmod(stat.S_IRUSR | stat.S_IWUSR)  # 0o600

        self._logger.info("Storage salt created at %s.", self._salt_path)
        return salt
