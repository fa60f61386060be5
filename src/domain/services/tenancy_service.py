"""Tenancy Service - administration of Office tenancies and SMTP domains."""

import logging
import uuid
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from src.domain.models.audit_models import AuditAction, RequestContext
from src.domain.models.errors import (
    DomainConflict,
    SmtpDomainNotFound,
    TenancyConflict,
    TenancyNotFound,
    TenancyValidationError,
)
from src.domain.models.graph_models import ConnectionTestResult, GraphCredentials
from src.domain.models.tenancy_models import (
    FLAG_FIELD_NAMES,
    OVERRIDABLE_FLAGS,
    TENANCY_FLAGS,
    OfficeTenancy,
    SmtpDomain,
)
from src.domain.ports.audit_repository import AuditLogRepository
from src.domain.ports.graph_directory import GraphDirectory
from src.domain.ports.tenancy_repository import TenancyRepository
from src.domain.services.feature_flags import OverrideValue, as_override, validate_overrides
from src.domain.services.validation import is_uuid, validate_domain_name
from src.services.secret_cipher import SecretCipher, is_masked, mask_secret

logger = logging.getLogger(__name__)

_TENANCY_UPDATABLE = ("name", "enabled") + TENANCY_FLAGS
_IMMUTABLE_TENANCY_FIELDS = {"tenant_id": "tenantId", "client_id": "clientId"}


class TenancyService:
    """Business logic for the tenancy/domain admin panel."""

    def __init__(
        self,
        repository: TenancyRepository,
        audit_repository: AuditLogRepository,
        cipher: SecretCipher,
        directory: Optional[GraphDirectory] = None
    ):
        """
        Initialize tenancy service.

        Args:
            repository: Tenancy/domain repository
            audit_repository: Audit log repository
            cipher: Encrypts client secrets at rest
            directory: Graph directory used for connection tests
        """
        self.repository = repository
        self.audit_repository = audit_repository
        self.cipher = cipher
        self.directory = directory

    # ============================================
    # TENANCIES
    # ============================================

    async def list_tenancies(
        self,
        ctx: RequestContext
    ) -> List[Tuple[OfficeTenancy, List[SmtpDomain]]]:
        """All tenancies with their domains, newest first."""
        tenancies = await self.repository.list_tenancies()
        domains = await self.repository.list_domains()
        by_tenancy: Dict[str, List[SmtpDomain]] = {}
        for domain in domains:
            by_tenancy.setdefault(domain.tenancy_id, []).append(domain)

        await self._audit(AuditAction.VIEW_TENANCIES, ctx)
        return [(t, by_tenancy.get(t.id, [])) for t in tenancies]

    async def get_tenancy(self, tenancy_id: str) -> Tuple[OfficeTenancy, List[SmtpDomain]]:
        tenancy = await self._require_tenancy(tenancy_id)
        domains = await self.repository.list_domains(tenancy_id=tenancy_id)
        return tenancy, domains

    def secret_hint(self, tenancy: OfficeTenancy) -> Optional[str]:
        """Masked form of a tenancy's client secret for display."""
        try:
            return mask_secret(self.cipher.decrypt(tenancy.client_secret))
        except ValueError:
            logger.warning(f"Client secret for tenancy {tenancy.id} cannot be decrypted")
            return None

    async def create_tenancy(
        self,
        ctx: RequestContext,
        name: str,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        enabled: bool = True,
        enable_presence: bool = True,
        enable_photos: bool = True,
        enable_out_of_office: bool = True,
        enable_local_groups: bool = False,
        enable_global_groups: bool = False,
        enable_group_send_check: bool = False
    ) -> OfficeTenancy:
        """
        Create a tenancy.

        Raises:
            TenancyValidationError: Missing fields or malformed IDs
            TenancyConflict: A tenancy with this tenant ID exists
        """
        errors: Dict[str, str] = {}
        if not name or not name.strip():
            errors["name"] = "Name is required"
        if not is_uuid(tenant_id):
            errors["tenantId"] = "Invalid tenantId format (must be a UUID)"
        if not is_uuid(client_id):
            errors["clientId"] = "Invalid clientId format (must be a UUID)"
        if not client_secret:
            errors["clientSecret"] = "Client secret is required"
        elif is_masked(client_secret):
            errors["clientSecret"] = "Provide the full client secret"
        if errors:
            raise TenancyValidationError(errors)

        if await self.repository.get_tenancy_by_tenant_id(tenant_id):
            raise TenancyConflict("Tenancy with this Tenant ID already exists")

        created = await self.repository.create_tenancy(
            OfficeTenancy(
                id=str(uuid.uuid4()),
                name=name.strip(),
                tenant_id=tenant_id,
                client_id=client_id,
                client_secret=self.cipher.encrypt(client_secret),
                enabled=enabled,
                enable_presence=enable_presence,
                enable_photos=enable_photos,
                enable_out_of_office=enable_out_of_office,
                enable_local_groups=enable_local_groups,
                enable_global_groups=enable_global_groups,
                enable_group_send_check=enable_group_send_check,
                created_by=ctx.admin_email,
            )
        )

        await self._audit(
            AuditAction.CREATE_TENANCY,
            ctx,
            metadata={"tenancyId": created.id, "name": created.name, "tenantId": created.tenant_id},
        )
        logger.info(f"Tenancy created: {created.name} ({created.tenant_id}) by {ctx.admin_email}")
        return created

    async def update_tenancy(
        self,
        ctx: RequestContext,
        tenancy_id: str,
        changes: Mapping[str, Any]
    ) -> OfficeTenancy:
        """
        Partially update a tenancy.

        ``tenant_id``/``client_id`` are ignored. ``client_secret`` is only
        replaced when a non-empty, non-masked value is supplied.

        Lowering a flag is rejected while any domain of the tenancy still
        enables it explicitly.

        Raises:
            TenancyNotFound, TenancyValidationError
        """
        existing = await self._require_tenancy(tenancy_id)

        for attr, field in _IMMUTABLE_TENANCY_FIELDS.items():
            value = changes.get(attr)
            if value is not None and value != getattr(existing, attr):
                logger.warning(f"Ignoring attempt to change {field} of tenancy {tenancy_id}")
        if "name" in changes and not (changes["name"] or "").strip():
            raise TenancyValidationError({"name": "Name is required"})

        update: Dict[str, Any] = {}
        for attr in _TENANCY_UPDATABLE:
            if attr in changes and changes[attr] is not None:
                value = changes[attr]
                update[attr] = value.strip() if attr == "name" else bool(value)

        secret = changes.get("client_secret")
        if secret and not is_masked(secret):
            update["client_secret"] = self.cipher.encrypt(secret)

        lowered = {flag: False for flag in OVERRIDABLE_FLAGS if update.get(flag) is False}
        if lowered:
            await self._check_domain_overrides(replace(existing, **lowered))

        updated = await self.repository.update_tenancy(tenancy_id, update) if update else existing
        if not updated:
            raise TenancyNotFound(f"Tenancy {tenancy_id} not found")

        await self._audit(
            AuditAction.UPDATE_TENANCY,
            ctx,
            metadata={"tenancyId": updated.id, "name": updated.name, "changes": sorted(update)},
        )
        return updated

    async def delete_tenancy(self, ctx: RequestContext, tenancy_id: str) -> int:
        """
        Delete a tenancy and its domains.

        Returns:
            Number of domains deleted with it
        """
        existing = await self._require_tenancy(tenancy_id)

        deleted = await self.repository.delete_tenancy(tenancy_id)
        if deleted is None:
            raise TenancyNotFound(f"Tenancy {tenancy_id} not found")

        await self._audit(
            AuditAction.DELETE_TENANCY,
            ctx,
            metadata={
                "tenancyId": existing.id,
                "name": existing.name,
                "tenantId": existing.tenant_id,
                "domainsDeleted": deleted,
            },
        )
        logger.info(f"Tenancy deleted: {existing.name} ({deleted} domains) by {ctx.admin_email}")
        return deleted

    async def test_connection(
        self,
        ctx: RequestContext,
        tenant_id: str,
        client_id: str,
        client_secret: str
    ) -> ConnectionTestResult:
        """
        Check Graph credentials without storing them.

        Raises:
            TenancyValidationError: Missing, malformed or masked credentials
        """
        errors: Dict[str, str] = {}
        if not is_uuid(tenant_id):
            errors["tenantId"] = "Invalid Tenant ID format (must be a UUID)"
        if not is_uuid(client_id):
            errors["clientId"] = "Invalid Client ID format (must be a UUID)"
        if not client_secret:
            errors["clientSecret"] = "Client secret is required"
        elif is_masked(client_secret):
            errors["clientSecret"] = (
                "Cannot test with masked Client Secret. Please provide the full secret."
            )
        if errors:
            raise TenancyValidationError(errors)

        if self.directory is None:
            return ConnectionTestResult(success=False, message="Graph directory is not configured")

        result = await self.directory.test_connection(
            GraphCredentials(tenant_id=tenant_id, client_id=client_id, client_secret=client_secret)
        )
        await self._audit(
            AuditAction.TEST_TENANCY_CONNECTION,
            ctx,
            metadata={"tenantId": tenant_id, "success": result.success},
        )
        return result

    # ============================================
    # SMTP DOMAINS
    # ============================================

    async def list_domains(
        self,
        ctx: RequestContext,
        tenancy_id: Optional[str] = None
    ) -> List[Tuple[SmtpDomain, Optional[OfficeTenancy]]]:
        """Domains with their tenancy, newest first."""
        if tenancy_id and not is_uuid(tenancy_id):
            domains: List[SmtpDomain] = []
        else:
            domains = await self.repository.list_domains(tenancy_id=tenancy_id)
        tenancies = {t.id: t for t in await self.repository.list_tenancies()}
        await self._audit(AuditAction.VIEW_DOMAINS, ctx)
        return [(d, tenancies.get(d.tenancy_id)) for d in domains]

    async def get_domain(self, domain_id: str) -> Tuple[SmtpDomain, Optional[OfficeTenancy]]:
        domain = await self._require_domain(domain_id)
        return domain,await self.repository.get_tenancy(domain.tenancy_id)

    async def create_domain(
        self,
        ctx: RequestContext,
        domain: str,
        tenancy_id: str,
        priority: int = 0,
        overrides: Optional[Mapping[str, OverrideValue]] = None
    ) -> SmtpDomain:
        """
        Create an SMTP domain under a tenancy.

        Every override is checked against the tenancy's ceiling before
        anything is stored.

        Raises:
            TenancyValidationError: Bad domain or an override the tenancy forbids
            TenancyNotFound: Unknown tenancy
            DomainConflict: Domain already routed
        """
        errors: Dict[str, str] = {}
        domain_error = validate_domain_name(domain)
        if domain_error:
            errors["domain"] = domain_error
        if not tenancy_id:
            errors["tenancyId"] = "Please select a tenant"
        if errors:
            raise TenancyValidationError(errors)

        tenancy = await self._require_tenancy(tenancy_id, "Tenancy not found")

        resolved = {flag: as_override((overrides or {}).get(flag)) for flag in OVERRIDABLE_FLAGS}
        override_errors = validate_overrides(tenancy, resolved)
        if override_errors:
            raise TenancyValidationError(override_errors)

        normalized = domain.strip().lower()
        if await self.repository.get_domain_by_name(normalized):
            raise DomainConflict("Domain already exists")

        created = await self.repository.create_domain(
            SmtpDomain(
                id=str(uuid.uuid4()),
                domain=normalized,
                tenancy_id=tenancy.id,
                priority=int(priority or 0),
                **resolved,
            )
        )

        await self._audit(
            AuditAction.CREATE_DOMAIN,
            ctx,
            metadata={
                "domainId": created.id,
                "domain": created.domain,
                "tenancyId": created.tenancy_id,
                "tenancyName": tenancy.name,
            },
        )
        return created

    async def update_domain(
        self,
        ctx: RequestContext,
        domain_id: str,
        changes: Mapping[str, Any]
    ) -> SmtpDomain:
        """
        Partially update an SMTP domain.

        Overrides present in ``changes`` (including None for inherit) replace
        the stored ones; the merged set is validated against the target
        tenancy, which may itself be changing.
        """
        existing = await self._require_domain(domain_id)

        update: Dict[str, Any] = {}

        new_name = changes.get("domain")
        if new_name is not None and new_name.strip().lower() != existing.domain:
            domain_error = validate_domain_name(new_name)
            if domain_error:
                raise TenancyValidationError({"domain": domain_error})
            normalized = new_name.strip().lower()
            clash = await self.repository.get_domain_by_name(normalized)
            if clash and clash.id != domain_id:
                raise DomainConflict("Domain already exists")
            update["domain"] = normalized

        tenancy_id = changes.get("tenancy_id") or existing.tenancy_id
        tenancy = await self._require_tenancy(tenancy_id, "Tenancy not found")
        if tenancy_id != existing.tenancy_id:
            update["tenancy_id"] = tenancy_id

        if changes.get("priority") is not None:
            update["priority"] = int(changes["priority"])

        merged = existing.overrides()
        for flag in OVERRIDABLE_FLAGS:
            if flag in changes:
                merged[flag] = as_override(changes[flag])
                if merged[flag] is not existing.override(flag):
                    update[flag] = merged[flag]

        override_errors = validate_overrides(tenancy, merged)
        if override_errors:
            raise TenancyValidationError(override_errors)

        updated = await self.repository.update_domain(domain_id, update) if update else existing
        if not updated:
            raise SmtpDomainNotFound(f"Domain {domain_id} not found")

        await self._audit(
            AuditAction.UPDATE_DOMAIN,
            ctx,
            metadata={
                "domainId": updated.id,
                "domain": updated.domain,
                "tenancyId": updated.tenancy_id,
                "changes": sorted(FLAG_FIELD_NAMES.get(k, k) for k in update),
            },
        )
        return updated

    async def delete_domain(self, ctx: RequestContext, domain_id: str) -> None:
        existing = await self._require_domain(domain_id)
        tenancy =await self.repository.get_tenancy(existing.tenancy_id)

        if not await self.repository.delete_domain(domain_id):
            raise SmtpDomainNotFound(f"Domain {domain_id} not found")

        await self._audit(
            AuditAction.DELETE_DOMAIN,
            ctx,
            metadata={
                "domainId": existing.id,
                "domain": existing.domain,
                "tenancyId": existing.tenancy_id,
                "tenancyName": tenancy.name if tenancy else None,
            },
        )

    async def reorder_domains(
        self,
        ctx: RequestContext,
        priorities: Sequence[Tuple[str, int]]
    ) -> int:
        """Bulk-update domain priorities. Unknown or malformed IDs are skipped."""
        updated = await self.repository.update_priorities(
            [(domain_id, priority) for domain_id, priority in priorities if is_uuid(domain_id)]
        )
        await self._audit(
            AuditAction.REORDER_SMTP_DOMAINS,
            ctx,
            metadata={
                "domainCount": len(priorities),
                "newOrder": [{"id": d, "priority": p} for d, p in priorities],
            },
        )
        return updated

    async def _require_tenancy(self, tenancy_id: str, message: Optional[str] = None) -> OfficeTenancy:
        # IDs are UUID columns; anything else cannot exist.
        tenancy = await self.repository.get_tenancy(tenancy_id) if is_uuid(tenancy_id) else None
        if not tenancy:
            raise TenancyNotFound(message or f"Tenancy {tenancy_id} not found")
        return tenancy

    async def _require_domain(self, domain_id: str) -> SmtpDomain:
        domain = await self.repository.get_domain(domain_id) if is_uuid(domain_id) else None
        if not domain:
            raise SmtpDomainNotFound(f"Domain {domain_id} not found")
        return domain

    async def _check_domain_overrides(self, tenancy: OfficeTenancy) -> None:
        """Reject tenancy flags that existing domain overrides would exceed."""
        conflicts: Dict[str, List[str]] = {}
        for domain in await self.repository.list_domains(tenancy_id=tenancy.id):
            for field in validate_overrides(tenancy, domain.overrides()):
                conflicts.setdefault(field, []).append(domain.domain)

        if conflicts:
            raise TenancyValidationError({
                field: (
                    f"{field} cannot be disabled while it is explicitly enabled for "
                    f"{', '.join(sorted(domains))}"
                )
                for field, domains in conflicts.items()
            })

    async def _audit(
        self,
        action: AuditAction,
        ctx: RequestContext,
        target_email: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        # Audit failures never fail the admin action.
        try:
            await self.audit_repository.append(
                action=action,
                admin_email=ctx.admin_email,
                target_email=target_email,
                ip_address=ctx.ip_address,
                user_agent=ctx.user_agent,
                metadata=metadata,
            )
        except Exception as e:
            logger.error(f"Failed to write audit log for {action.value}: {e}")
