"""API routes for Office 365 tenancy administration."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from src.application.api.errors import ADMIN_ERRORS, to_http_error
from src.application.di import get_container
from src.domain.models.audit_models import RequestContext
from src.domain.models.tenancy_models import OfficeTenancy, SmtpDomain
from src.middleware.admin_auth import require_admin


router = APIRouter()


# Request/Response Models
class TenancyCreate(BaseModel):
    """Request model for creating a tenancy."""
    name: str = Field(..., description="Display name")
    tenantId: str = Field(..., description="Azure AD tenant ID (UUID)")
    clientId: str = Field(..., description="App registration client ID (UUID)")
    clientSecret: str = Field(..., description="App registration client secret")
    enabled: bool = True
    enablePresence: bool = True
    enablePhotos: bool = True
    enableOutOfOffice: bool = True
    enableLocalGroups: bool = False
    enableGlobalGroups: bool = False
    enableGroupSendCheck: bool = False


class TenancyUpdate(BaseModel):
    """Request model for updating a tenancy; omitted fields are unchanged."""
    name: Optional[str] = None
    tenantId: Optional[str] = Field(None, description="Ignored, cannot change")
    clientId: Optional[str] = Field(None, description="Ignored, cannot change")
    clientSecret: Optional[str] = Field(None, description="Replaced only when not masked")
    enabled: Optional[bool] = None
    enablePresence: Optional[bool] = None
    enablePhotos: Optional[bool] = None
    enableOutOfOffice: Optional[bool] = None
    enableLocalGroups: Optional[bool] = None
    enableGlobalGroups: Optional[bool] = None
    enableGroupSendCheck: Optional[bool] = None


class ConnectionTestRequest(BaseModel):
    tenantId: str
    clientId: str
    clientSecret: str


class ConnectionTestResponse(BaseModel):
    success: bool
    message: str


class TenancyDomainSummary(BaseModel):
    id: str
    domain: str
    priority: int


class TenancyResponse(BaseModel):
    """Response model for a tenancy. The client secret is never returned."""
    id: str
    name: str
    tenantId: str
    clientId: str
    clientSecretHint: Optional[str]
    enabled: bool
    enablePresence: bool
    enablePhotos: bool
    enableOutOfOffice: bool
    enableLocalGroups: bool
    enableGlobalGroups: bool
    enableGroupSendCheck: bool
    createdBy: Optional[str]
    createdAt: Optional[str]
    updatedAt: Optional[str]
    domains: List[TenancyDomainSummary] = []


class TenancyDeleteResponse(BaseModel):
    success: bool
    domainsDeleted: int


_UPDATE_FIELDS = {
    "name": "name",
    "tenantId": "tenant_id",
    "clientId": "client_id",
    "clientSecret": "client_secret",
    "enabled": "enabled",
    "enablePresence": "enable_presence",
    "enablePhotos": "enable_photos",
    "enableOutOfOffice": "enable_out_of_office",
    "enableLocalGroups": "enable_local_groups",
    "enableGlobalGroups": "enable_global_groups",
    "enableGroupSendCheck": "enable_group_send_check",
}


def _to_response(
    tenancy: OfficeTenancy,
    secret_hint: Optional[str],
    domains: Optional[List[SmtpDomain]] = None
) -> TenancyResponse:
    return TenancyResponse(
        id=tenancy.id,
        name=tenancy.name,
        tenantId=tenancy.tenant_id,
        clientId=tenancy.client_id,
        clientSecretHint=secret_hint,
        enabled=tenancy.enabled,
        enablePresence=tenancy.enable_presence,
        enablePhotos=tenancy.enable_photos,
        enableOutOfOffice=tenancy.enable_out_of_office,
        enableLocalGroups=tenancy.enable_local_groups,
        enableGlobalGroups=tenancy.enable_global_groups,
        enableGroupSendCheck=tenancy.enable_group_send_check,
        createdBy=tenancy.created_by,
        createdAt=tenancy.created_at.isoformat() if tenancy.created_at else None,
        updatedAt=tenancy.updated_at.isoformat() if tenancy.updated_at else None,
        domains=[
            TenancyDomainSummary(id=d.id, domain=d.domain, priority=d.priority)
            for d in (domains or [])
        ]
    )


@router.get("/admin/tenancies", response_model=List[TenancyResponse])
async def list_tenancies(ctx: RequestContext = Depends(require_admin)):
    """List all tenancies with their SMTP domains, newest first."""
    try:
        service = await get_container().get_tenancy_service()
        tenancies = await service.list_tenancies(ctx)
        return [
            _to_response(tenancy, service.secret_hint(tenancy), domains)
            for tenancy, domains in tenancies
        ]
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error listing tenancies: {str(e)}"
        )


@router.get("/admin/tenancies/{tenancy_id}", response_model=TenancyResponse)
async def get_tenancy(tenancy_id: str, ctx: RequestContext = Depends(require_admin)):
    """Get a tenancy by ID."""
    try:
        service = await get_container().get_tenancy_service()
        tenancy, domains = await service.get_tenancy(tenancy_id)
        return _to_response(tenancy, service.secret_hint(tenancy), domains)
    except ADMIN_ERRORS as e:
        raise to_http_error(e)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error retrieving tenancy: {str(e)}"
        )


@router.post("/admin/tenancies", response_model=TenancyResponse, status_code=status.HTTP_201_CREATED)
async def create_tenancy(payload: TenancyCreate, ctx: RequestContext = Depends(require_admin)):
    """
    Create a tenancy.

    Returns 400 for invalid IDs, 409 when the tenant ID is already configured.
    """
    try:
        service = await get_container().get_tenancy_service()
        tenancy = await service.create_tenancy(
            ctx,
            name=payload.name,
            tenant_id=payload.tenantId,
            client_id=payload.clientId,
            client_secret=payload.clientSecret,
            enabled=payload.enabled,
            enable_presence=payload.enablePresence,
            enable_photos=payload.enablePhotos,
            enable_out_of_office=payload.enableOutOfOffice,
            enable_local_groups=payload.enableLocalGroups,
            enable_global_groups=payload.enableGlobalGroups,
            enable_group_send_check=payload.enableGroupSendCheck,
        )
        return _to_response(tenancy, service.secret_hint(tenancy))
    except ADMIN_ERRORS as e:
        raise to_http_error(e)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error creating tenancy: {str(e)}"
        )


@router.put("/admin/tenancies/{tenancy_id}", response_model=TenancyResponse)
async def update_tenancy(
    tenancy_id: str,
    payload: TenancyUpdate,
    ctx: RequestContext = Depends(require_admin)
):
    """Update a tenancy."""
    try:
        changes = {
            _UPDATE_FIELDS[key]: value
            for key, value in payload.model_dump(exclude_unset=True).items()
        }
        service = await get_container().get_tenancy_service()
        tenancy = await service.update_tenancy(ctx, tenancy_id, changes)
        return _to_response(tenancy, service.secret_hint(tenancy))
    except ADMIN_ERRORS as e:
        raise to_http_error(e)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error updating tenancy: {str(e)}"
        )


@router.delete("/admin/tenancies/{tenancy_id}", response_model=TenancyDeleteResponse)
async def delete_tenancy(tenancy_id: str, ctx: RequestContext = Depends(require_admin)):
    """Delete a tenancy and every SMTP domain routed to it."""
    try:
        service = await get_container().get_tenancy_service()
        deleted = await service.delete_tenancy(ctx, tenancy_id)
        return TenancyDeleteResponse(success=True, domainsDeleted=deleted)
    except ADMIN_ERRORS as e:
        raise to_http_error(e)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error deleting tenancy: {str(e)}"
        )


@router.post("/admin/tenancies/test", response_model=ConnectionTestResponse)
async def test_tenancy_connection(
    payload: ConnectionTestRequest,
    ctx: RequestContext = Depends(require_admin)
):
    """Test Graph credentials without saving them."""
    try:
        service = await get_container().get_tenancy_service()
        result = await service.test_connection(
            ctx,
            tenant_id=payload.tenantId,
            client_id=payload.clientId,
            client_secret=payload.clientSecret,
        )
        return ConnectionTestResponse(success=result.success, message=result.message)
    except ADMIN_ERRORS as e:
        raise to_http_error(e)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error testing tenancy: {str(e)}"
        )
