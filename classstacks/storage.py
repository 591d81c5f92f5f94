import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Union

_LOGGER = logging.getLogger(__name__)


class MemoryStorage:
    """Key/value storage held only in memory.

    Same interface as SessionStorage; useful for tests and short-lived
    clients that should not leave a session behind.
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = dict(data or {})

    async def async_get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    async def async_set(self, key: str, value: Any) -> None:
        self._data[key] = value

    async def async_remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def async_clear(self) -> None:
        self._data = {}


class SessionStorage:
    """Durable JSON key/value storage for session descriptors.

    - Persists all keys in a single JSON file.
    - Caches data in-memory after the first load.
    - Runs file IO in the default executor so the event loop never blocks.
    - Writes through a temp file and os.replace so a crash never leaves a
      half-written file behind.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)
        self._lock: asyncio.Lock = asyncio.Lock()
        self._cache: Optional[dict] = None

    @property
    def path(self) -> Path:
        return self._path

    async def async_load(self) -> dict:
        """Load data once and cache it; returns a shallow copy."""
        async with self._lock:
            if self._cache is None:
                loop = asyncio.get_running_loop()
                self._cache = await loop.run_in_executor(None, self._read_file)
            return dict(self._cache)

    def _read_file(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as e:
            _LOGGER.warning("Storage load failed for %s: %s", self._path, e)
            return {}
        if not isinstance(data, dict):
            _LOGGER.warning("Ignoring storage file %s: top level is not an object", self._path)
            return {}
        return data

    def _write_file(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self._path.parent), prefix=".storage-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2)
            os.replace(tmp_path, self._path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    async def _async_save(self, data: dict) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write_file, data)

    async def async_get(self, key: str, default: Any = None) -> Any:
        data = await self.async_load()
        return data.get(key, default)

    async def async_set(self, key: str, value: Any) -> None:
        await self.async_load()
        async with self._lock:
            self._cache[key] = value
            to_save = dict(self._cache)
            await self._async_save(to_save)

    async def async_remove(self, key: str) -> None:
        await self.async_load()
        async with self._lock:
            if key not in self._cache:
                return
            del self._cache[key]
            to_save = dict(self._cache)
            await self._async_save(to_save)

    async def async_clear(self) -> None:
        async with self._lock:
            self._cache = {}
            await self._async_save({})
