"""API routes for cached out-of-office lookups."""

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


class OutOfOfficeData(BaseModel):
    isOOO: bool
    message: Optional[str] = None
    startTime: Optional[str] = None
    endTime: Optional[str] = None


class OutOfOfficeMeta(BaseModel):
    cached: bool


class OutOfOfficeResponse(BaseModel):
    """Envelope returned by the out-of-office endpoint (always HTTP 200)."""
    ok: bool
    data: Optional[OutOfOfficeData] = None
    meta: Optional[OutOfOfficeMeta] = None
    error: Optional[str] = None


@router.get("/ooo/{email}", response_model=OutOfOfficeResponse)
async def get_out_of_office(email: str):
    """
    Get the automatic-replies state of a mailbox.

    Returns:
        ``ok`` with the state, or ``ok: false`` when the mailbox settings
        cannot be read
    """
    try:
        result = await get_container().get_out_of_office_service().get_status(email)
    except UpstreamUnavailable as e:
        logger.warning(f"⚠️ Failed to fetch out-of-office for {email}: {e}")
        return OutOfOfficeResponse(ok=False, error="ooo_fetch_failed")
    except Exception as e:
        logger.error(f"❌ Unexpected out-of-office error for {email}: {e}", exc_info=True)
        return OutOfOfficeResponse(ok=False, error="ooo_fetch_failed")

    if result is None:
        return OutOfOfficeResponse(ok=False)

    return OutOfOfficeResponse(
        ok=True,
        data=OutOfOfficeData(**result.to_dict()),
        meta=OutOfOfficeMeta(cached=result.cached),
    )


@router.delete("/ooo/{email}")
async def invalidate_out_of_office(email: str, ctx: RequestContext = Depends(require_admin)):
    """Drop the cached out-of-office entry for a mailbox."""
    try:
        removed = await get_container().get_out_of_office_service().invalidate(email)
        logger.info(f"Out-of-office cache for {email} invalidated by {ctx.admin_email}")
        return {"removed": removed}
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error invalidating out-of-office: {str(e)}"
        )
