"""API routes for SMTP domain administration."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import BaseModel, Field, ValidationError

from src.application.api.errors import ADMIN_ERRORS, to_http_error
from src.application.di import get_container
from src.domain.models.audit_models import RequestContext
from src.domain.models.tenancy_models import FLAG_FIELD_NAMES, OfficeTenancy, SmtpDomain
from src.domain.services.feature_flags import effective_flags
from src.middleware.admin_auth import require_admin


router = APIRouter()


# Request/Response Models
class DomainCreate(BaseModel):
    """
    Request model for creating an SMTP domain.

    Overrides: null inherits the tenancy flag, true/false override it.
    """
    domain: str = Field(..., description="Domain without @, e.g. example.com")
    tenancyId: str = Field(..., description="Owning tenancy")
    priority: int = Field(default=0, description="Higher values win when several records match")
    enablePresence: Optional[bool] = None
    enablePhotos: Optional[bool] = None
    enableOutOfOffice: Optional[bool] = None
    enableLocalGroups: Optional[bool] = None
    enableGlobalGroups: Optional[bool] = None


class DomainUpdate(BaseModel):
    """Request model for updating an SMTP domain; omitted fields are unchanged."""
    domain: Optional[str] = None
    tenancyId: Optional[str] = None
    priority: Optional[int] = None
    enablePresence: Optional[bool] = None
    enablePhotos: Optional[bool] = None
    enableOutOfOffice: Optional[bool] = None
    enableLocalGroups: Optional[bool] = None
    enableGlobalGroups: Optional[bool] = None


class DomainPriority(BaseModel):
    id: str
    priority: int


class TenancySummary(BaseModel):
    id: str
    name: str
    enabled: bool


class DomainResponse(BaseModel):
    """Response model for an SMTP domain."""
    id: str
    domain: str
    tenancyId: str
    priority: int
    enablePresence: Optional[bool]
    enablePhotos: Optional[bool]
    enableOutOfOffice: Optional[bool]
    enableLocalGroups: Optional[bool]
    enableGlobalGroups: Optional[bool]
    effectiveFlags: Optional[Dict[str, bool]] = None
    tenancy: Optional[TenancySummary] = None
    createdAt: Optional[str]
    updatedAt: Optional[str]


_UPDATE_FIELDS = {
    "domain": "domain",
    "tenancyId": "tenancy_id",
    "priority": "priority",
    "enablePresence": "enable_presence",
    "enablePhotos": "enable_photos",
    "enableOutOfOffice": "enable_out_of_office",
    "enableLocalGroups": "enable_local_groups",
    "enableGlobalGroups": "enable_global_groups",
}


def _wire_flags(flags: Dict[str, bool]) -> Dict[str, bool]:
    return {FLAG_FIELD_NAMES[name]: value for name, value in flags.items()}


def _to_response(domain: SmtpDomain, tenancy: Optional[OfficeTenancy] = None) -> DomainResponse:
    return DomainResponse(
        id=domain.id,
        domain=domain.domain,
        tenancyId=domain.tenancy_id,
        priority=domain.priority,
        enablePresence=domain.enable_presence.to_nullable(),
        enablePhotos=domain.enable_photos.to_nullable(),
        enableOutOfOffice=domain.enable_out_of_office.to_nullable(),
        enableLocalGroups=domain.enable_local_groups.to_nullable(),
        enableGlobalGroups=domain.enable_global_groups.to_nullable(),
        effectiveFlags=_wire_flags(effective_flags(tenancy, domain)) if tenancy else None,
        tenancy=TenancySummary(id=tenancy.id, name=tenancy.name, enabled=tenancy.enabled) if tenancy else None,
        createdAt=domain.created_at.isoformat() if domain.created_at else None,
        updatedAt=domain.updated_at.isoformat() if domain.updated_at else None
    )


@router.get("/admin/domains", response_model=List[DomainResponse])
async def list_domains(
    tenancyId: Optional[str] = None,
    ctx: RequestContext = Depends(require_admin)
):
    """
    List SMTP domains, newest first.

    Args:
        tenancyId: Only return domains of this tenancy
    """
    try:
        service = await get_container().get_tenancy_service()
        domains = await service.list_domains(ctx, tenancy_id=tenancyId)
        return [_to_response(domain, tenancy) for domain, tenancy in domains]
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error listing domains: {str(e)}"
        )


@router.put("/admin/domains/reorder")
async def reorder_domains(
    body: Any = Body(...),
    ctx: RequestContext = Depends(require_admin)
):
    """
    Bulk-update domain priorities.

    Body: ``[{"id": ..., "priority": ...}, ...]``
    """
    if not isinstance(body, list):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid request body: expected a list of {id, priority}"
        )
    try:
        items = [DomainPriority.model_validate(item) for item in body]
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid request body: {str(e)}"
        )

    try:
        service = await get_container().get_tenancy_service()
        updated = await service.reorder_domains(ctx, [(item.id, item.priority) for item in items])
        return {"success": True, "updated": updated}
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error reordering domains: {str(e)}"
        )


@router.get("/admin/domains/{domain_id}", response_model=DomainResponse)
async def get_domain(domain_id: str, ctx: RequestContext = Depends(require_admin)):
    """Get an SMTP domain with its tenancy and effective flags."""
    try:
        service = await get_container().get_tenancy_service()
        domain, tenancy = await service.get_domain(domain_id)
        return _to_response(domain, tenancy)
    except ADMIN_ERRORS as e:
        raise to_http_error(e)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error retrieving domain: {str(e)}"
        )


@router.post("/admin/domains", response_model=DomainResponse, status_code=status.HTTP_201_CREATED)
async def create_domain(payload: DomainCreate, ctx: RequestContext = Depends(require_admin)):
    """
    Create an SMTP domain.

    Returns 400 for a malformed domain or an override the tenancy does not
    allow, 404 for an unknown tenancy, 409 for a duplicate domain.
    """
    try:
        service = await get_container().get_tenancy_service()
        domain = await service.create_domain(
            ctx,
            domain=payload.domain,
            tenancy_id=payload.tenancyId,
            priority=payload.priority,
            overrides={
                "enable_presence": payload.enablePresence,
                "enable_photos": payload.enablePhotos,
                "enable_out_of_office": payload.enableOutOfOffice,
                "enable_local_groups": payload.enableLocalGroups,
                "enable_global_groups": payload.enableGlobalGroups,
            },
        )
        _, tenancy = await service.get_domain(domain.id)
        return _to_response(domain, tenancy)
    except ADMIN_ERRORS as e:
        raise to_http_error(e)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error creating domain: {str(e)}"
        )


@router.put("/admin/domains/{domain_id}", response_model=DomainResponse)
async def update_domain(
    domain_id: str,
    payload: DomainUpdate,
    ctx: RequestContext = Depends(require_admin)
):
    """Update an SMTP domain. An explicit null override resets it to inherit."""
    try:
        changes = {
            _UPDATE_FIELDS[key]: value
            for key, value in payload.model_dump(exclude_unset=True).items()
        }
        service = await get_container().get_tenancy_service()
        domain = await service.update_domain(ctx, domain_id, changes)
        _, tenancy = await service.get_domain(domain.id)
        return _to_response(domain, tenancy)
    except ADMIN_ERRORS as e:
        raise to_http_error(e)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error updating domain: {str(e)}"
        )


@router.delete("/admin/domains/{domain_id}")
async def delete_domain(domain_id: str, ctx: RequestContext = Depends(require_admin)):
    """Delete an SMTP domain."""
    try:
        service = await get_container().get_tenancy_service()
        await service.delete_domain(ctx, domain_id)
        return {"success": True}
    except ADMIN_ERRORS as e:
        raise to_http_error(e)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error deleting domain: {str(e)}"
        )
