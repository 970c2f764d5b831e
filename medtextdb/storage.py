"""
Local key-value persistence for MedTextDB.

Every collection (books, reviews, users) and the active session is kept
as one JSON value under a fixed key, and every mutation rewrites the
whole value. The ``Store`` does the JSON work; the raw strings live in a
backend that only knows how to get, set and remove them:

* ``MemoryBackend`` keeps the strings in a dict (tests, throwaway runs).
* ``JsonFileBackend`` keeps one file per key under a data directory.

A value that cannot be decoded is treated as absent: ``Store.read()``
logs a warning and hands back the caller's fallback instead of raising.
"""

from __future__ import annotations

import json
import logging
import os
import random
import string
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import StorageReadError


logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def storage_keys(prefix: str = "medtextdb") -> Dict[str, str]:
    """Return the fixed storage keys for the given namespace prefix."""
    return {
        "books": f"{prefix}:books",
        "reviews": f"{prefix}:reviews",
        "users": f"{prefix}:users",
        "session": f"{prefix}:session",
    }


def _to_base36(n: int) -> str:
    if n == 0:
        return "0"
    digits = []
    while n:
        n, rem = divmod(n, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_id() -> str:
    """Return a probabilistically unique opaque id.

    The id is a random base-36 prefix followed by the current time in
    milliseconds, also in base 36. Uniqueness is not checked.
    """
    prefix = "".join(random.choice(_BASE36) for _ in range(11))
    return prefix + _to_base36(int(time.time() * 1000))


class MemoryBackend:
    """Dict-backed raw string storage."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, raw: str) -> None:
        self._data[key] = raw

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileBackend:
    """One file per key under ``directory``.

    Keys such as ``medtextdb:books`` map to ``medtextdb-books.json``.
    Writes go through a temporary file in the same directory followed by
    ``os.replace`` so a reader sees either the old or the new value.
    """

    def __init__(self, directory):
        self.directory = Path(directory)
        self._lock = threading.Lock()

    def _path(self, key: str) -> Path:
        safe = "".join(c if c.isalnum() or c in "-_." else "-" for c in key)
        return self.directory / f"{safe}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise StorageReadError(f"Undecodable bytes in {path.name}: {exc}") from exc

    def set(self, key: str, raw: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        with self._lock:
            fd, tmp = tempfile.mkstemp(dir=str(self.directory), prefix=path.stem, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(raw)
                os.replace(tmp, path)
            except BaseException:
                if os.path.exists(tmp):
                    os.remove(tmp)
                raise

    def remove(self, key: str) -> None:
        with self._lock:
            try:
                self._path(key).unlink()
            except FileNotFoundError:
                pass


class Store:
    """JSON values on top of a raw string backend."""

    def __init__(self, backend=None):
        self.backend = backend if backend is not None else MemoryBackend()

    def _decode(self, key: str, raw: str) -> Any:
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise StorageReadError(f"Corrupt value under {key!r}: {exc}") from exc

    def read(self, key: str, fallback: Any = None) -> Any:
        """Return the value stored under ``key``.

        ``fallback`` is returned when nothing is stored, or when the
        stored value is not valid UTF-8 JSON (the error is logged, not
        raised).
        """
        try:
            raw = self.backend.get(key)
        except OSError as exc:
            logger.warning("Could not read %s: %s", key, exc)
            return fallback
        except StorageReadError as exc:
            logger.warning("%s; using fallback", exc)
            return fallback
        if not raw:
            return fallback
        try:
            return self._decode(key, raw)
        except StorageReadError as exc:
            logger.warning("%s; using fallback", exc)
            return fallback

    def write(self, key: str, value: Any) -> None:
        """Serialize ``value`` and replace whatever is stored under ``key``."""
        self.backend.set(key, json.dumps(value, ensure_ascii=False))

    def remove(self, key: str) -> None:
        self.backend.remove(key)

    def generate_id(self) -> str:
        return generate_id()
