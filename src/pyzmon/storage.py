"""Key/value persistence for the small amount of state that survives restarts."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Protocol

from pyzmon.exceptions import StorageError

_logger = logging.getLogger(__name__)


class StateStorage(Protocol):
    """Abstract persisted state.

    ``load`` returns ``None`` when nothing was stored under *key* and
    raises :class:`~pyzmon.exceptions.StorageError` on any other failure.
    """

    async def load(self, key: str) -> Any | None: ...

    async def save(self, key: str, data: Any) -> None: ...


class MemoryStorage:
    """Process-local storage (no persistence); used when no directory is configured."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def load(self, key: str) -> Any | None:
        serialized = self._data.get(key)
        if serialized is None:
            return None
        return json.loads(serialized)

    async def save(self, key: str, data: Any) -> None:
        self._data[key] = json.dumps(data)


class JsonFileStorage:
    """One ``state-<key>.json`` file per key inside *directory*.

    Writes go to a temporary file that is then renamed over the target so a
    crash never leaves a truncated file behind. File I/O runs in the
    default executor.
    """

    def __init__(self, directory: Path | str) -> None:
        self._directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self._directory / f"state-{key}.json"

    def _read(self, key: str) -> Any | None:
        path = self.path_for(key)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageError(f"Failed to read {path}: {exc}", key=key) from exc
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise StorageError(f"Corrupt state file {path}: {exc}", key=key) from exc

    def _write(self, key: str, data: Any) -> None:
        path = self.path_for(key)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            serialized = json.dumps(data)
            self._directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(serialized, encoding="utf-8")
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as exc:
            raise StorageError(f"Failed to write {path}: {exc}", key=key) from exc
        _logger.debug("Saved %s (%d bytes)", path, len(serialized))

    async def load(self, key: str) -> Any | None:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._read, key)

    async def save(self, key: str, data: Any) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write, key, data)
