"""API routes that consume SMTP domain routing."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.application.di import get_container
from src.domain.models.audit_models import RequestContext
from src.domain.models.errors import TenancyValidationError
from src.domain.models.tenancy_models import FLAG_FIELD_NAMES, DomainNotFound
from src.middleware.admin_auth import require_user

logger = logging.getLogger(__name__)

router = APIRouter()


class RoutingTenancy(BaseModel):
    id: str
    name: str
    tenantId: str
    enabled: bool


class RoutingResponse(BaseModel):
    """Tenancy that owns a sender domain and the capabilities it grants."""
    domain: str
    found: bool
    enabled: bool = False
    tenancy: Optional[RoutingTenancy] = None
    effectiveFlags: Dict[str, bool] = {}


class CheckSendPermissionRequest(BaseModel):
    groupId: Optional[str] = None
    userEmail: Optional[str] = None


@router.get("/routing/{domain}", response_model=RoutingResponse)
async def resolve_domain(domain: str, ctx: RequestContext = Depends(require_user)):
    """
    Resolve a sender domain (or email address) to its tenancy.

    A disabled tenancy is still returned with ``enabled: false``.
    """
    try:
        domain_router = await get_container().get_domain_router()
        route = await domain_router.resolve_tenancy_for_domain(domain)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error resolving domain: {str(e)}"
        )

    if isinstance(route, DomainNotFound):
        return RoutingResponse(domain=route.domain, found=False)

    flags = {FLAG_FIELD_NAMES[name]: value for name, value in route.effective_flags.items()}
    flags["enableGroupSendCheck"] = route.tenancy.enable_group_send_check
    return RoutingResponse(
        domain=route.domain.domain,
        found=True,
        enabled=route.enabled,
        tenancy=RoutingTenancy(
            id=route.tenancy.id,
            name=route.tenancy.name,
            tenantId=route.tenancy.tenant_id,
            enabled=route.tenancy.enabled,
        ),
        effectiveFlags=flags,
    )


@router.post("/groups/check-send-permission")
async def check_send_permission(
    payload: CheckSendPermissionRequest,
    ctx: RequestContext = Depends(require_user)
):
    """
    Check whether a user can send mail to a group.

    The sender's domain selects the tenancy whose Graph app performs the
    check. ``available: false`` means the check could not be made.
    """
    try:
        service = await get_container().get_group_send_service()
        result = await service.check_send_permission(
            ctx,
            group_id=payload.groupId or "",
            user_email=payload.userEmail or "",
        )
    except TenancyValidationError as e:
        reason = next(iter(e.errors.values()))
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"available": False, "reason": reason}
        )
    except Exception as e:
        logger.error(f"❌ Permission check error: {e}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"available": False, "reason": "An unexpected error occurred. Please try again later."}
        )

    content: Dict[str, Any] = result.to_dict()
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR if result.failed else status.HTTP_200_OK,
        content=content
    )
