from pathlib import Path
import logging
from typing import Optional, Protocol

from aiocache import SimpleMemoryCache

logger = logging.getLogger(__name__)

class CacheStore(Protocol):
    """Key/bytes persistence used for the station catalog and selections."""

    async def load(self, key: str) -> Optional[bytes]:
        ...

    async def save(self, key: str, data: bytes) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...

class FileCacheStore:
    """Stores each key as a file under a base directory."""

    def __init__(self, base_dir: str = "cache"):
        """Initialize the store with a base directory."""
        self.base_dir = Path(base_dir)
        self._ensure_storage_dir()

    def _ensure_storage_dir(self) -> None:
        """Ensure the storage directory exists."""
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def get_file_path(self, key: str) -> Path:
        """Generate the path for a cache key."""
        safe_key = "".join(c if c.isalnum() or c in "-_" else "_" for c in key)
        return self.base_dir / f"{safe_key}.json"

    async def load(self, key: str) -> Optional[bytes]:
        file_path = self.get_file_path(key)
        if not file_path.exists():
            return None
        with open(file_path, 'rb') as f:
            return f.read()

    async def save(self, key: str, data: bytes) -> None:
        """Write through a temporary file so readers never see a partial entry."""
        file_path = self.get_file_path(key)
        tmp_path = file_path.with_suffix(".tmp")
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, 'wb') as f:
            f.write(data)
        tmp_path.replace(file_path)
        logger.debug(f"Saved {len(data)} bytes to {file_path}")

    async def delete(self, key: str) -> None:
        file_path = self.get_file_path(key)
        if file_path.exists():
            file_path.unlink()
            logger.info(f"🗑️ Removed cache entry {key}")

class MemoryCacheStore:
    """Keeps entries in an aiocache memory cache. Nothing survives a restart."""

    def __init__(self, cache: Optional[SimpleMemoryCache] = None, namespace: str = "store"):
        self._cache = cache or SimpleMemoryCache(namespace=namespace)

    async def load(self, key: str) -> Optional[bytes]:
        return await self._cache.get(key)

    async def save(self, key: str, data: bytes) -> None:
        await self._cache.set(key, data)

    async def delete(self, key: str) -> None:
        await self._cache.delete(key)
