# ABOUTME: Key-value store collaborator: protocol plus in-memory and file-backed implementations.
# ABOUTME: Offers get/put/list_keys only; no transactions or conditional writes.

import os
import tempfile
import threading
from pathlib import Path
from typing import Protocol
from urllib.parse import quote, unquote

import structlog

from feed_relay.exceptions import StoreError

log = structlog.get_logger()


class KeyValueStore(Protocol):
    """Minimal key-value contract the subscription store builds on."""

    def get(self, key: str) -> bytes | None: ...

    def put(self, key: str, value: bytes) -> None: ...

    def list_keys(self, prefix: str) -> list[str]: ...


class MemoryKeyValueStore:
    """Thread-safe dictionary store for tests and dry runs."""

    def __init__(self, initial: dict[str, bytes] | None = None) -> None:
        self._data: dict[str, bytes] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> bytes | None:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: bytes) -> None:
        with self._lock:
            self._data[key] = value

    def list_keys(self, prefix: str) -> list[str]:
        with self._lock:
            return [key for key in self._data if key.startswith(prefix)]


class FileKeyValueStore:
    """Stores each key as one file in a directory.

    File names are the percent-encoded key, so any key maps to a single
    flat file. Writes go through a temporary file and an atomic rename.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.root / quote(key, safe="")

    def get(self, key: str) -> bytes | None:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            log.error("kv_read_failed", key=key, error=str(e))
            raise StoreError(key, str(e)) from e

    def put(self, key: str, value: bytes) -> None:
        path = self._path(key)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".tmp-")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            log.error("kv_write_failed", key=key, error=str(e))
            raise StoreError(key, str(e)) from e

    def list_keys(self, prefix: str) -> list[str]:
        try:
            names = sorted(p.name for p in self.root.iterdir() if p.is_file())
        except OSError as e:
            log.error("kv_list_failed", prefix=prefix, error=str(e))
            raise StoreError(prefix, str(e)) from e

        keys = (unquote(name) for name in names if not name.startswith(".tmp-"))
        return [key for key in keys if key.startswith(prefix)]
