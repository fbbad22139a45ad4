"""Key-value backends for the durable store."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Protocol

from lightsync.core.errors import SharedStorageUnavailableError


class KeyValueBackend(Protocol):
    @property
    def location(self) -> str:
        """Human-readable location used in diagnostics."""

    def get(self, key: str) -> bytes | None:
        """Return stored bytes for key, or None when absent."""

    def set(self, key: str, data: bytes) -> None:
        """Store bytes under key, replacing any previous value."""

    def delete(self, key: str) -> None:
        """Remove key if present."""


class DirectoryBackend:
    """One file per key inside a directory.

    Writes go through a temporary file and ``os.replace`` so a concurrent
    reader in another process never observes a partially written value.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    @property
    def location(self) -> str:
        return str(self.directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> bytes | None:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise SharedStorageUnavailableError(f"Could not read {path}: {exc}") from exc

    def set(self, key: str, data: bytes) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(data)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise SharedStorageUnavailableError(f"Could not write {path}: {exc}") from exc

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise SharedStorageUnavailableError(f"Could not delete {path}: {exc}") from exc


class MemoryBackend:
    def __init__(self, name: str = "memory") -> None:
        self.name = name
        self.values: dict[str, bytes] = {}

    @property
    def location(self) -> str:
        return f"<{self.name}>"

    def get(self, key: str) -> bytes | None:
        return self.values.get(key)

    def set(self, key: str, data: bytes) -> None:
        self.values[key] = data

    def delete(self, key: str) -> None:
        self.values.pop(key, None)


def directory_is_usable(directory: Path) -> bool:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError:
        return False
    return directory.is_dir() and os.access(directory, os.W_OK | os.X_OK)
