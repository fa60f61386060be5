"""Port interface for the presence cache store."""

from abc import ABC, abstractmethod
from typing import Optional


class PresenceCacheStore(ABC):
    """
    Key-value store with native per-key expiry.

    Values are opaque strings. Implementations raise
    ``CacheStoreUnavailable`` when the backend cannot be reached.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Get the raw value stored under a key.

        Args:
            key: Cache key

        Returns:
            Stored value or None if missing or expired
        """
        pass

    @abstractmethod
    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        """
        Store a value that the backend expires after ``ttl_seconds``.

        Args:
            key: Cache key
            value: Raw value
            ttl_seconds: Expiry in seconds
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a key. Returns True if something was removed."""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Whether the backend is reachable."""
        pass

    async def close(self) -> None:
        """Release backend connections."""
        return None
