"""API routes for cached presence lookups."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from src.application.di import get_container
from src.domain.models.audit_models import RequestContext
from src.domain.models.errors import UpstreamUnavailable
from src.middleware.admin_auth import require_admin

logger = logging.getLogger(__name__)

router = APIRouter()

_TRUTHY = {"1", "true"}


class PresenceData(BaseModel):
    """Presence payload."""
    activity: Optional[str] = None
    availability: Optional[str] = None
    fetchedAt: str
    ttl: int
    cached: bool


class PresenceMeta(BaseModel):
    cached: bool
    ttl: int


class PresenceResponse(BaseModel):
    """Envelope returned by the presence endpoint (always HTTP 200)."""
    ok: bool
    data: Optional[PresenceData] = None
    meta: Optional[PresenceMeta] = None
    error: Optional[str] = None


@router.get("/presence/{email}", response_model=PresenceResponse)
async def get_presence(email: str, noCache: Optional[str] = None, ttl: Optional[str] = None):
    """
    Get presence for a mailbox.

    Args:
        email: Mailbox address
        noCache: "1" or "true" to require an entry no older than ``ttl``
        ttl: Requested freshness in seconds (clamped to 30..300)

    Returns:
        ``ok`` with data and cache metadata, or ``ok: false`` when presence
        is unavailable
    """
    no_cache = (noCache or "").lower() in _TRUTHY
    ttl_hint = ttl if ttl not in (None, "") else None

    try:
        service = get_container().get_presence_service()
        snapshot = await service.get_presence(email, no_cache=no_cache, ttl_hint=ttl_hint)
    except UpstreamUnavailable as e:
        logger.warning(f"⚠️ Failed to fetch presence for {email}: {e}")
        return PresenceResponse(ok=False, error="presence_fetch_failed")
    except Exception as e:
        logger.error(f"❌ Unexpected presence error for {email}: {e}", exc_info=True)
        return PresenceResponse(ok=False, error="presence_fetch_failed")

    if snapshot is None:
        return PresenceResponse(ok=False)

    return PresenceResponse(
        ok=True,
        data=PresenceData(**snapshot.to_dict()),
        meta=PresenceMeta(cached=snapshot.cached, ttl=snapshot.ttl),
    )


@router.delete("/presence/{email}")
async def invalidate_presence(email: str, ctx: RequestContext = Depends(require_admin)):
    """Drop the cached presence entry for a mailbox."""
    try:
        removed = await get_container().get_presence_service().invalidate(email)
        logger.info(f"Presence cache for {email} invalidated by {ctx.admin_email}")
        return {"removed": removed}
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error invalidating presence: {str(e)}"
        )
