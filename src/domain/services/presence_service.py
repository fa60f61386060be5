"""Presence Resolver - cached presence lookups backed by the directory."""

import json
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from src.domain.models.errors import (
    CacheStoreUnavailable,
    NotFoundOrForbidden,
    PresenceError,
    UpstreamUnavailable,
)
from src.domain.models.presence_models import (
    PresenceCacheEntry,
    PresenceSnapshot,
    cache_key_for,
    clamp_ttl,
    normalize_email,
)
from src.domain.ports.presence_cache import PresenceCacheStore
from src.domain.ports.presence_provider import PresenceProvider

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PresenceService:
    """
    Resolves presence for a mailbox through a TTL cache.

    Concurrent misses for the same email each call upstream; there is no
    per-key de-duplication.
    """

    def __init__(
        self,
        provider: PresenceProvider,
        cache: Optional[PresenceCacheStore] = None,
        clock: Callable[[], datetime] = _utcnow
    ):
        """
        Initialize presence service.

        Args:
            provider: Upstream presence provider
            cache: Cache store, or None to disable caching
            clock: Returns the current UTC time
        """
        self.provider = provider
        self.cache = cache
        self.clock = clock

    async def get_presence(
        self,
        email: str,
        no_cache: bool = False,
        ttl_hint: Optional[float] = None
    ) -> Optional[PresenceSnapshot]:
        """
        Get presence for an email address.

        Without ``no_cache`` any cached entry is returned as-is, whatever its
        age. With ``no_cache`` a cached entry is returned only while its age
        is within the clamped ``ttl_hint``.

        Args:
            email: Email address (normalized before use)
            no_cache: Require a fresh entry
            ttl_hint: Requested TTL in seconds, clamped to [30, 300]

        Returns:
            Presence snapshot, or None when the mailbox exposes no presence

        Raises:
            UpstreamUnavailable: Upstream failed for any other reason
        """
        normalized = normalize_email(email)
        effective_ttl = clamp_ttl(ttl_hint)
        key = cache_key_for(normalized)

        entry = await self._read_cache(key)
        if entry is not None:
            if not no_cache:
                return PresenceSnapshot.from_entry(entry, cached=True)
            if entry.is_fresh(effective_ttl, self.clock()):
                return PresenceSnapshot.from_entry(entry, cached=True)
            logger.debug(
                f"Cached presence for {normalized} is stale "
                f"(age={entry.age_seconds(self.clock()):.0f}s, ttl={effective_ttl}s)"
            )

        try:
            upstream = await self.provider.fetch_presence(normalized)
        except NotFoundOrForbidden as e:
            logger.info(f"Presence not available for {normalized} (status {e.status_code})")
            return None
        except PresenceError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error fetching presence for {normalized}: {e}")
            raise UpstreamUnavailable(str(e)) from e

        fresh = PresenceCacheEntry(
            activity=upstream.activity,
            availability=upstream.availability,
            fetched_at=self.clock(),
            ttl=effective_ttl,
        )
        await self._write_cache(key, fresh, effective_ttl)
        return PresenceSnapshot.from_entry(fresh, cached=False)

    async def invalidate(self, email: str) -> bool:
        """Drop the cached entry for an email address."""
        if self.cache is None:
            return False
        try:
            return await self.cache.delete(cache_key_for(email))
        except CacheStoreUnavailable as e:
            logger.warning(f"Presence cache unavailable, nothing invalidated: {e}")
            return False

    async def _read_cache(self, key: str) -> Optional[PresenceCacheEntry]:
        if self.cache is None:
            return None
        try:
            raw = await self.cache.get(key)
        except CacheStoreUnavailable as e:
            logger.warning(f"Presence cache unavailable, treating as miss: {e}")
            return None
        if not raw:
            return None
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("cached presence is not an object")
            return PresenceCacheEntry.from_dict(data, now=self.clock())
        except ValueError as e:
            logger.warning(f"Ignoring unreadable cache entry {key}: {e}")
            return None

    async def _write_cache(self, key: str, entry: PresenceCacheEntry, ttl_seconds: int) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.set_with_expiry(key, json.dumps(entry.to_dict()), ttl_seconds)
        except CacheStoreUnavailable as e:
            logger.warning(f"Presence cache unavailable, result not cached: {e}")
