"""Out-of-office lookups cached alongside presence."""

import json
import logging
from typing import Optional

from src.domain.models.errors import (
    CacheStoreUnavailable,
    NotFoundOrForbidden,
    PresenceError,
    UpstreamUnavailable,
)
from src.domain.models.ooo_models import OOO_TTL_SECONDS, OutOfOfficeStatus, ooo_cache_key_for
from src.domain.models.presence_models import normalize_email
from src.domain.ports.out_of_office_provider import OutOfOfficeProvider
from src.domain.ports.presence_cache import PresenceCacheStore

logger = logging.getLogger(__name__)


class OutOfOfficeService:
    """Resolves a mailbox's out-of-office state through the shared cache."""

    def __init__(
        self,
        provider: OutOfOfficeProvider,
        cache: Optional[PresenceCacheStore] = None,
        ttl_seconds: int = OOO_TTL_SECONDS
    ):
        self.provider = provider
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    async def get_status(self, email: str) -> Optional[OutOfOfficeStatus]:
        """
        Get the out-of-office state for an email address.

        A cached entry is returned whatever its age; the store expiry bounds it.

        Returns:
            Status, or None when the mailbox settings are not readable

        Raises:
            UpstreamUnavailable: Upstream failed for any other reason
        """
        normalized = normalize_email(email)
        key = ooo_cache_key_for(normalized)

        cached = await self._read_cache(key)
        if cached is not None:
            return cached

        try:
            replies = await self.provider.fetch_automatic_replies(normalized)
        except NotFoundOrForbidden as e:
            logger.info(f"Out-of-office not available for {normalized} (status {e.status_code})")
            return None
        except PresenceError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error fetching out-of-office for {normalized}: {e}")
            raise UpstreamUnavailable(str(e)) from e

        status = OutOfOfficeStatus.from_automatic_replies(replies)
        await self._write_cache(key, status)
        return status

    async def invalidate(self, email: str) -> bool:
        if self.cache is None:
            return False
        try:
            return await self.cache.delete(ooo_cache_key_for(email))
        except CacheStoreUnavailable as e:
            logger.warning(f"Cache unavailable, out-of-office not invalidated: {e}")
            return False

    async def _read_cache(self, key: str) -> Optional[OutOfOfficeStatus]:
        if self.cache is None:
            return None
        try:
            raw = await self.cache.get(key)
        except CacheStoreUnavailable as e:
            logger.warning(f"Cache unavailable, treating out-of-office as miss: {e}")
            return None
        if not raw:
            return None
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("cached out-of-office entry is not an object")
            return OutOfOfficeStatus.from_dict(data, cached=True)
        except ValueError as e:
            logger.warning(f"Ignoring unreadable cache entry {key}: {e}")
            return None

    async def _write_cache(self, key: str, status: OutOfOfficeStatus) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.set_with_expiry(key, json.dumps(status.to_dict()), self.ttl_seconds)
        except CacheStoreUnavailable as e:
            logger.warning(f"Cache unavailable, out-of-office not cached: {e}")
