"""Tests for tenancy and SMTP domain administration."""

from dataclasses import replace

import pytest

from src.domain.models.audit_models import AuditAction
from src.domain.models.errors import (
    DomainConflict,
    SmtpDomainNotFound,
    TenancyConflict,
    TenancyNotFound,
    TenancyValidationError,
)
from src.domain.models.graph_models import ConnectionTestResult
from src.domain.models.tenancy_models import FlagOverride
from src.domain.services.domain_router import SmtpDomainRouter
from src.domain.services.tenancy_service import TenancyService
from src.domain.services.validation import is_uuid
from tests.fakes import CLIENT_ID, TENANT_ID, FakeGraphDirectory, InMemoryTenancyRepository


class UuidColumnRepository(InMemoryTenancyRepository):
    """Rejects non-UUID ids the way the database driver does."""

    def _check(self, *ids):
        for value in ids:
            if value is not None and not is_uuid(value):
                raise TypeError(f"invalid UUID {value!r}")

    async def get_tenancy(self, tenancy_id):
        self._check(tenancy_id)
        return await super().get_tenancy(tenancy_id)

    async def get_domain(self, domain_id):
        self._check(domain_id)
        return await super().get_domain(domain_id)

    async def list_domains(self, tenancy_id=None):
        self._check(tenancy_id)
        return await super().list_domains(tenancy_id)

    async def update_priorities(self, priorities):
        self._check(*(domain_id for domain_id, _ in priorities))
        return await super().update_priorities(priorities)


@pytest.fixture
def directory():
    return FakeGraphDirectory()


@pytest.fixture
def tenancy_repository(clock):
    return UuidColumnRepository(clock)


@pytest.fixture
def service(tenancy_repository, audit_repository, cipher, directory):
    return TenancyService(tenancy_repository, audit_repository, cipher, directory)


async def create_contoso(service, ctx, **kwargs):
    return await service.create_tenancy(
        ctx,
        name=kwargs.pop("name", "Contoso"),
        tenant_id=kwargs.pop("tenant_id", TENANT_ID),
        client_id=CLIENT_ID,
        client_secret="super-secret-value-1234",
        **kwargs,
    )


# ============================================
# TENANCIES
# ============================================

@pytest.mark.asyncio
async def test_create_tenancy_defaults(service, admin_ctx, cipher, audit_repository):
    tenancy = await create_contoso(service, admin_ctx)

    assert tenancy.enabled is True
    assert tenancy.enable_presence is True
    assert tenancy.enable_photos is True
    assert tenancy.enable_out_of_office is True
    assert tenancy.enable_local_groups is False
    assert tenancy.enable_global_groups is False
    assert tenancy.enable_group_send_check is False
    assert tenancy.created_by == "admin@example.com"
    assert tenancy.client_secret != "super-secret-value-1234"
    assert cipher.decrypt(tenancy.client_secret) == "super-secret-value-1234"
    assert audit_repository.actions() == [AuditAction.CREATE_TENANCY]


@pytest.mark.asyncio
async def test_secret_hint_masks_secret(service, admin_ctx):
    tenancy = await create_contoso(service, admin_ctx)

    hint = service.secret_hint(tenancy)

    assert hint.endswith("1234")
    assert "super" not in hint


@pytest.mark.asyncio
async def test_create_tenancy_rejects_bad_ids(service, admin_ctx):
    with pytest.raises(TenancyValidationError) as exc_info:
        await service.create_tenancy(
            admin_ctx, name="X", tenant_id="nope", client_id="also-nope", client_secret="s"
        )

    assert set(exc_info.value.errors) == {"tenantId", "clientId"}


@pytest.mark.asyncio
async def test_create_tenancy_rejects_masked_secret(service, admin_ctx):
    with pytest.raises(TenancyValidationError) as exc_info:
        await service.create_tenancy(
            admin_ctx, name="X", tenant_id=TENANT_ID, client_id=CLIENT_ID, client_secret="••••1234"
        )

    assert "clientSecret" in exc_info.value.errors


@pytest.mark.asyncio
async def test_create_tenancy_duplicate_tenant_id(service, admin_ctx):
    await create_contoso(service, admin_ctx)

    with pytest.raises(TenancyConflict):
        await create_contoso(service, admin_ctx, name="Contoso again")


@pytest.mark.asyncio
async def test_update_tenancy_ignores_tenant_id(service, admin_ctx):
    tenancy = await create_contoso(service, admin_ctx)

    updated = await service.update_tenancy(
        admin_ctx,
        tenancy.id,
        {"name": "Contoso EU", "tenant_id": "99999999-2222-3333-4444-555555555555", "enable_photos": False},
    )

    assert updated.name == "Contoso EU"
    assert updated.tenant_id == TENANT_ID
    assert updated.enable_photos is False


@pytest.mark.asyncio
async def test_lowering_flag_rejected_while_domains_enable_it(service, admin_ctx, tenancy_repository):
    tenancy = await create_contoso(service, admin_ctx)
    await service.create_domain(admin_ctx, "contoso.com", tenancy.id, overrides={"enable_photos": True})
    await service.create_domain(admin_ctx, "contoso.org", tenancy.id, overrides={"enable_photos": True})
    await service.create_domain(admin_ctx, "contoso.net", tenancy.id)

    with pytest.raises(TenancyValidationError) as exc_info:
        await service.update_tenancy(admin_ctx, tenancy.id, {"enable_photos": False, "name": "Renamed"})

    message = exc_info.value.errors["enablePhotos"]
    assert "contoso.com, contoso.org" in message
    assert "contoso.net" not in message
    stored = tenancy_repository.tenancies[tenancy.id]
    assert stored.enable_photos is True
    assert stored.name == "Contoso"


@pytest.mark.asyncio
async def test_lowering_flag_allowed_when_domains_inherit_or_disable(service, admin_ctx):
    tenancy = await create_contoso(service, admin_ctx)
    await service.create_domain(admin_ctx, "contoso.com", tenancy.id)
    await service.create_domain(admin_ctx, "contoso.org", tenancy.id, overrides={"enable_photos": False})

    updated = await service.update_tenancy(admin_ctx, tenancy.id, {"enable_photos": False})

    assert updated.enable_photos is False


@pytest.mark.asyncio
async def test_lowered_flag_is_not_granted_by_router(service, admin_ctx, tenancy_repository):
    tenancy = await create_contoso(service, admin_ctx)
    await service.create_domain(admin_ctx, "contoso.com", tenancy.id, overrides={"enable_photos": True})

    with pytest.raises(TenancyValidationError):
        await service.update_tenancy(admin_ctx, tenancy.id, {"enable_photos": False})
    await service.update_domain(
        admin_ctx, (await tenancy_repository.get_domain_by_name("contoso.com")).id, {"enable_photos": None}
    )
    await service.update_tenancy(admin_ctx, tenancy.id, {"enable_photos": False})

    route = await SmtpDomainRouter(tenancy_repository).resolve_tenancy_for_domain("contoso.com")

    assert route.tenancy.enable_photos is False
    assert route.allows("enable_photos") is False


@pytest.mark.asyncio
async def test_update_tenancy_keeps_secret_when_masked(service, admin_ctx, cipher):
    tenancy = await create_contoso(service, admin_ctx)

    kept = await service.update_tenancy(admin_ctx, tenancy.id, {"client_secret": "••••1234"})
    assert kept.client_secret == tenancy.client_secret

    replaced = await service.update_tenancy(admin_ctx, tenancy.id, {"client_secret": "rotated-secret"})
    assert cipher.decrypt(replaced.client_secret) == "rotated-secret"


@pytest.mark.asyncio
async def test_update_tenancy_blank_name(service, admin_ctx):
    tenancy = await create_contoso(service, admin_ctx)

    with pytest.raises(TenancyValidationError):
        await service.update_tenancy(admin_ctx, tenancy.id, {"name": "  "})


@pytest.mark.asyncio
async def test_update_missing_tenancy(service, admin_ctx):
    with pytest.raises(TenancyNotFound):
        await service.update_tenancy(admin_ctx, "missing", {"name": "X"})


@pytest.mark.asyncio
async def test_delete_tenancy_reports_domain_count(service, admin_ctx, tenancy_repository, audit_repository):
    tenancy = await create_contoso(service, admin_ctx)
    await service.create_domain(admin_ctx, "contoso.com", tenancy.id)
    await service.create_domain(admin_ctx, "contoso.org", tenancy.id)

    deleted = await service.delete_tenancy(admin_ctx, tenancy.id)

    assert deleted == 2
    assert tenancy_repository.domains == {}
    assert audit_repository.entries[-1].action is AuditAction.DELETE_TENANCY
    assert audit_repository.entries[-1].metadata["domainsDeleted"] == 2


@pytest.mark.asyncio
async def test_delete_missing_tenancy(service, admin_ctx):
    with pytest.raises(TenancyNotFound):
        await service.delete_tenancy(admin_ctx, "missing")


@pytest.mark.asyncio
async def test_list_tenancies_groups_domains(service, admin_ctx):
    contoso = await create_contoso(service, admin_ctx)
    fabrikam = await create_contoso(
        service, admin_ctx, name="Fabrikam", tenant_id="22222222-2222-3333-4444-555555555555"
    )
    await service.create_domain(admin_ctx, "contoso.com", contoso.id)

    listed = await service.list_tenancies(admin_ctx)

    assert [t.name for t, _ in listed] == ["Fabrikam", "Contoso"]
    assert dict((t.id, [d.domain for d in ds]) for t, ds in listed) == {
        fabrikam.id: [],
        contoso.id: ["contoso.com"],
    }


@pytest.mark.asyncio
async def test_audit_failure_does_not_fail_action(service, admin_ctx, audit_repository):
    audit_repository.fail = True

    tenancy = await create_contoso(service, admin_ctx)

    assert tenancy.name == "Contoso"
    assert audit_repository.entries == []


@pytest.mark.asyncio
async def test_connection_test_uses_directory(service, admin_ctx, directory, audit_repository):
    result = await service.test_connection(admin_ctx, TENANT_ID, CLIENT_ID, "secret")

    assert result.success is True
    assert directory.credentials[0].client_secret == "secret"
    assert audit_repository.actions() == [AuditAction.TEST_TENANCY_CONNECTION]


@pytest.mark.asyncio
async def test_connection_test_reports_failure(tenancy_repository, audit_repository, cipher, admin_ctx):
    directory = FakeGraphDirectory(connection=ConnectionTestResult(False, "Authentication failed: bad secret"))
    service = TenancyService(tenancy_repository, audit_repository, cipher, directory)

    result = await service.test_connection(admin_ctx, TENANT_ID, CLIENT_ID, "secret")

    assert result.success is False
    assert result.message.startswith("Authentication failed")


@pytest.mark.asyncio
async def test_connection_test_rejects_masked_secret(service, admin_ctx, directory):
    with pytest.raises(TenancyValidationError) as exc_info:
        await service.test_connection(admin_ctx, TENANT_ID, CLIENT_ID, "••••abcd")

    assert "masked" in exc_info.value.errors["clientSecret"]
    assert directory.credentials == []


# ============================================
# SMTP DOMAINS
# ============================================

@pytest.mark.asyncio
async def test_create_domain_normalizes_and_inherits(service, admin_ctx):
    tenancy = await create_contoso(service, admin_ctx)

    domain = await service.create_domain(admin_ctx, "Contoso.COM", tenancy.id, priority=5)

    assert domain.domain == "contoso.com"
    assert domain.priority == 5
    assert all(o is FlagOverride.INHERIT for o in domain.overrides().values())


@pytest.mark.asyncio
async def test_create_domain_rejects_override_the_tenancy_forbids(service, admin_ctx, tenancy_repository):
    tenancy = await create_contoso(service, admin_ctx, enable_photos=False)

    with pytest.raises(TenancyValidationError) as exc_info:
        await service.create_domain(
            admin_ctx, "contoso.com", tenancy.id, overrides={"enable_photos": True}
        )

    assert "Contoso" in exc_info.value.errors["enablePhotos"]
    assert tenancy_repository.domains == {}


@pytest.mark.asyncio
async def test_create_domain_allows_disabling(service, admin_ctx):
    tenancy = await create_contoso(service, admin_ctx)

    domain = await service.create_domain(
        admin_ctx, "contoso.com", tenancy.id, overrides={"enable_presence": False}
    )

    assert domain.enable_presence is FlagOverride.DISABLED


@pytest.mark.asyncio
async def test_create_domain_with_at_sign(service, admin_ctx):
    tenancy = await create_contoso(service, admin_ctx)

    with pytest.raises(TenancyValidationError) as exc_info:
        await service.create_domain(admin_ctx, "@contoso.com", tenancy.id)

    assert "@" in exc_info.value.errors["domain"]


@pytest.mark.asyncio
async def test_create_domain_unknown_tenancy(service, admin_ctx):
    with pytest.raises(TenancyNotFound):
        await service.create_domain(admin_ctx, "contoso.com", "missing")


@pytest.mark.asyncio
async def test_create_duplicate_domain(service, admin_ctx):
    tenancy = await create_contoso(service, admin_ctx)
    await service.create_domain(admin_ctx, "contoso.com", tenancy.id)

    with pytest.raises(DomainConflict):
        await service.create_domain(admin_ctx, "CONTOSO.com", tenancy.id)


@pytest.mark.asyncio
async def test_update_domain_validates_merged_overrides(service, admin_ctx, tenancy_repository):
    tenancy = await create_contoso(service, admin_ctx, enable_local_groups=True)
    domain = await service.create_domain(
        admin_ctx, "contoso.com", tenancy.id, overrides={"enable_local_groups": True}
    )
    # Row written before the tenancy ceiling was enforced on flag changes.
    tenancy_repository.tenancies[tenancy.id] = replace(tenancy, enable_local_groups=False)

    with pytest.raises(TenancyValidationError) as exc_info:
        await service.update_domain(admin_ctx, domain.id, {"priority": 3})

    assert "enableLocalGroups" in exc_info.value.errors


@pytest.mark.asyncio
async def test_update_domain_back_to_inherit(service, admin_ctx):
    tenancy = await create_contoso(service, admin_ctx)
    domain = await service.create_domain(
        admin_ctx, "contoso.com", tenancy.id, overrides={"enable_presence": False}
    )

    updated = await service.update_domain(admin_ctx, domain.id, {"enable_presence": None})

    assert updated.enable_presence is FlagOverride.INHERIT


@pytest.mark.asyncio
async def test_update_domain_moves_to_stricter_tenancy(service, admin_ctx):
    contoso = await create_contoso(service, admin_ctx)
    strict = await create_contoso(
        service, admin_ctx, name="Strict", tenant_id="33333333-2222-3333-4444-555555555555", enable_photos=False
    )
    domain = await service.create_domain(
        admin_ctx, "contoso.com", contoso.id, overrides={"enable_photos": True}
    )

    with pytest.raises(TenancyValidationError) as exc_info:
        await service.update_domain(admin_ctx, domain.id, {"tenancy_id": strict.id})

    assert "Strict" in exc_info.value.errors["enablePhotos"]


@pytest.mark.asyncio
async def test_update_domain_rename_conflict(service, admin_ctx):
    tenancy = await create_contoso(service, admin_ctx)
    await service.create_domain(admin_ctx, "contoso.com", tenancy.id)
    other = await service.create_domain(admin_ctx, "contoso.org", tenancy.id)

    with pytest.raises(DomainConflict):
        await service.update_domain(admin_ctx, other.id, {"domain": "contoso.com"})


@pytest.mark.asyncio
async def test_delete_domain(service, admin_ctx, audit_repository):
    tenancy = await create_contoso(service, admin_ctx)
    domain = await service.create_domain(admin_ctx, "contoso.com", tenancy.id)

    await service.delete_domain(admin_ctx, domain.id)

    with pytest.raises(SmtpDomainNotFound):
        await service.get_domain(domain.id)
    assert audit_repository.entries[-1].metadata["tenancyName"] == "Contoso"


@pytest.mark.asyncio
async def test_reorder_domains(service, admin_ctx, tenancy_repository, audit_repository):
    tenancy = await create_contoso(service, admin_ctx)
    first = await service.create_domain(admin_ctx, "contoso.com", tenancy.id)
    second = await service.create_domain(admin_ctx, "contoso.org", tenancy.id)

    updated = await service.reorder_domains(admin_ctx, [(first.id, 1), (second.id, 9), ("missing", 4)])

    assert updated == 2
    assert tenancy_repository.domains[second.id].priority == 9
    assert audit_repository.entries[-1].action is AuditAction.REORDER_SMTP_DOMAINS
    assert audit_repository.entries[-1].metadata["domainCount"] == 3


# ============================================
# MALFORMED IDS
# ============================================

@pytest.mark.asyncio
async def test_malformed_tenancy_id_is_not_found(service, admin_ctx):
    with pytest.raises(TenancyNotFound):
        await service.get_tenancy("abc")
    with pytest.raises(TenancyNotFound):
        await service.update_tenancy(admin_ctx, "abc", {"name": "X"})
    with pytest.raises(TenancyNotFound):
        await service.delete_tenancy(admin_ctx, "abc")


@pytest.mark.asyncio
async def test_malformed_domain_id_is_not_found(service, admin_ctx):
    with pytest.raises(SmtpDomainNotFound):
        await service.get_domain("abc")
    with pytest.raises(SmtpDomainNotFound):
        await service.update_domain(admin_ctx, "abc", {"priority": 1})
    with pytest.raises(SmtpDomainNotFound):
        await service.delete_domain(admin_ctx, "abc")


@pytest.mark.asyncio
async def test_domain_with_malformed_tenancy_id(service, admin_ctx):
    tenancy = await create_contoso(service, admin_ctx)
    domain = await service.create_domain(admin_ctx, "contoso.com", tenancy.id)

    with pytest.raises(TenancyNotFound):
        await service.create_domain(admin_ctx, "contoso.org", "abc")
    with pytest.raises(TenancyNotFound):
        await service.update_domain(admin_ctx, domain.id, {"tenancy_id": "abc"})


@pytest.mark.asyncio
async def test_list_domains_for_malformed_tenancy_id(service, admin_ctx):
    tenancy = await create_contoso(service, admin_ctx)
    await service.create_domain(admin_ctx, "contoso.com", tenancy.id)

    assert await service.list_domains(admin_ctx, tenancy_id="abc") == []
