"""Key-value storage used by the passwordless email-link flow.

This module introduces a *narrow* asynchronous persistence interface
(:class:`KeyValueStore`) together with two implementations:

* :class:`InMemoryKeyValueStore` – process-local, for tests and single-run tools.
* :class:`DiskKeyValueStore` – one JSON file per key.

The disk implementation follows these goals:

* **Atomicity** – writes use a unique *temp-file + os.replace*.
* **Non-blocking** – file I/O runs in a worker thread via :mod:`anyio`.
* **Filename safety** – keys are hashed / slugified before hitting the
  filesystem.

Environment variables
---------------------
AUTH_STORAGE_DIR
    Base directory for all persisted data.
    Defaults to ``~/.auth-facade/kv`` when unset.
"""

from __future__ import annotations

import contextlib
import json
import os
import re
import tempfile
from hashlib import sha256
from pathlib import Path
from typing import Final, Protocol, runtime_checkable

import anyio.to_thread

from auth_facade.core.errors import (
    StorageDeleteError,
    StorageReadError,
    StorageTypeError,
    StorageWriteError,
)

PENDING_EMAIL_KEY: Final[str] = "pending_signin_email"

# --------------------------------------------------------------------------- #
# helpers                                                                     #
# --------------------------------------------------------------------------- #


def _hash(text: str, length: int = 12) -> str:
    return sha256(text.encode()).hexdigest()[:length]


def _slug(text: str, max_len: int = 48) -> str:
    text = (text or "").strip().lower()
    text = re.sub(r"[^a-z0-9._-]+", "-", text)
    text = re.sub(r"-{2,}", "-", text).strip("-")
    return text[:max_len] or "key"


def _atomic_write(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    # Unique temp name per call so concurrent writers never share a file.
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f"{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, separators=(",", ":"), sort_keys=True)
        os.replace(tmp, path)  # atomic on POSIX
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp)
        raise


# --------------------------------------------------------------------------- #
# public interface                                                            #
# --------------------------------------------------------------------------- #


@runtime_checkable
class KeyValueStore(Protocol):
    """Minimal string persistence contract.

    ``read_string`` returns ``None`` for an absent key (implementations may
    raise :class:`~auth_facade.core.errors.StorageKeyNotFoundError` instead).
    Failures raise a :class:`~auth_facade.core.errors.StorageError` subclass.
    """

    async def read_string(self, key: str) -> str | None: ...
    async def write_string(self, key: str, value: str) -> None: ...
    async def delete(self, key: str) -> None: ...


# --------------------------------------------------------------------------- #
# In-memory implementation                                                    #
# --------------------------------------------------------------------------- #


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed :class:`KeyValueStore`; contents die with the process."""

    def __init__(self, initial: dict[str, object] | None = None) -> None:
        self._data: dict[str, object] = dict(initial or {})

    async def read_string(self, key: str) -> str | None:
        value = self._data.get(key)
        if value is not None and not isinstance(value, str):
            raise StorageTypeError(key, f"value under {key!r} is not a string")
        return value

    async def write_string(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


# --------------------------------------------------------------------------- #
# Disk implementation                                                         #
# --------------------------------------------------------------------------- #


class DiskKeyValueStore(KeyValueStore):
    """JSON-file implementation of :class:`KeyValueStore`."""

    def __init__(self, base_dir: str | os.PathLike | None = None) -> None:
        self.base_dir = Path(
            base_dir
            or os.getenv("AUTH_STORAGE_DIR")
            or Path.home() / ".auth-facade" / "kv"
        ).expanduser()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _key_path(self, key: str) -> Path:
        return self.base_dir / f"{_slug(key)}-{_hash(key)}.json"

    # ---------------- blocking primitives -------------------------------- #
    def _read_sync(self, key: str) -> str | None:
        path = self._key_path(key)
        try:
            with path.open(encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            raise StorageReadError(key, f"could not read {key!r}: {exc}") from exc
        value = data.get("value") if isinstance(data, dict) else None
        if not isinstance(value, str):
            raise StorageTypeError(key, f"value under {key!r} is not a string")
        return value

    def _write_sync(self, key: str, value: str) -> None:
        try:
            _atomic_write(self._key_path(key), {"key": key, "value": value})
        except OSError as exc:
            raise StorageWriteError(key, f"could not write {key!r}: {exc}") from exc

    def _delete_sync(self, key: str) -> None:
        try:
            self._key_path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageDeleteError(key, f"could not delete {key!r}: {exc}") from exc

    # ---------------- async API ------------------------------------------ #
    async def read_string(self, key: str) -> str | None:
        return await anyio.to_thread.run_sync(self._read_sync, key)

    async def write_string(self, key: str, value: str) -> None:
        await anyio.to_thread.run_sync(self._write_sync, key, value)

    async def delete(self, key: str) -> None:
        await anyio.to_thread.run_sync(self._delete_sync, key)
