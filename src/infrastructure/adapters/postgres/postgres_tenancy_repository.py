"""PostgreSQL implementation of TenancyRepository."""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from asyncpg import Pool, Record, UniqueViolationError

from src.domain.models.errors import DomainConflict, TenancyConflict
from src.domain.models.tenancy_models import (
    OVERRIDABLE_FLAGS,
    TENANCY_FLAGS,
    FlagOverride,
    OfficeTenancy,
    SmtpDomain,
)
from src.domain.ports.tenancy_repository import TenancyRepository

TENANCY_COLUMNS = (
    "id, name, tenant_id, client_id, client_secret, enabled, "
    + ", ".join(TENANCY_FLAGS)
    + ", created_by, created_at, updated_at"
)
DOMAIN_COLUMNS = (
    "id, domain, tenancy_id, priority, "
    + ", ".join(OVERRIDABLE_FLAGS)
    + ", created_at, updated_at"
)

_TENANCY_WRITABLE = {"name", "client_secret", "enabled", *TENANCY_FLAGS}
_DOMAIN_WRITABLE = {"domain", "tenancy_id", "priority", *OVERRIDABLE_FLAGS}


def _tenancy_from_row(row: Record) -> OfficeTenancy:
    return OfficeTenancy(
        id=str(row['id']),
        name=row['name'],
        tenant_id=row['tenant_id'],
        client_id=row['client_id'],
        client_secret=row['client_secret'],
        enabled=row['enabled'],
        enable_presence=row['enable_presence'],
        enable_photos=row['enable_photos'],
        enable_out_of_office=row['enable_out_of_office'],
        enable_local_groups=row['enable_local_groups'],
        enable_global_groups=row['enable_global_groups'],
        enable_group_send_check=row['enable_group_send_check'],
        created_by=row['created_by'],
        created_at=row['created_at'],
        updated_at=row['updated_at']
    )


def _domain_from_row(row: Record) -> SmtpDomain:
    # Overrides are nullable booleans: NULL means inherit.
    return SmtpDomain(
        id=str(row['id']),
        domain=row['domain'],
        tenancy_id=str(row['tenancy_id']),
        priority=row['priority'],
        created_at=row['created_at'],
        updated_at=row['updated_at'],
        **{flag: FlagOverride.from_nullable(row[flag]) for flag in OVERRIDABLE_FLAGS}
    )


def _column_value(value: Any) -> Any:
    if isinstance(value, FlagOverride):
        return value.to_nullable()
    return value


class PostgresTenancyRepository(TenancyRepository):
    """PostgreSQL adapter for Office tenancies and SMTP domains."""

    def __init__(self, pool: Pool):
        """
        Initialize repository.

        Args:
            pool: AsyncPG connection pool
        """
        self.pool = pool

    # ============================================
    # TENANCIES
    # ============================================

    async def list_tenancies(self) -> List[OfficeTenancy]:
        query = f"""
            SELECT {TENANCY_COLUMNS}
            FROM office_tenancies
            ORDER BY created_at DESC
        """

        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query)
            return [_tenancy_from_row(row) for row in rows]

    async def get_tenancy(self, tenancy_id: str) -> Optional[OfficeTenancy]:
        query = f"SELECT {TENANCY_COLUMNS} FROM office_tenancies WHERE id = $1"

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(query, tenancy_id)
            return _tenancy_from_row(row) if row else None

    async def get_tenancy_by_tenant_id(self, tenant_id: str) -> Optional[OfficeTenancy]:
        query = f"SELECT {TENANCY_COLUMNS} FROM office_tenancies WHERE tenant_id = $1"

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(query, tenant_id)
            return _tenancy_from_row(row) if row else None

    async def create_tenancy(self, tenancy: OfficeTenancy) -> OfficeTenancy:
        """Insert tenancy."""
        query = f"""
            INSERT INTO office_tenancies (
                id, name, tenant_id, client_id, client_secret, enabled,
                {", ".join(TENANCY_FLAGS)}, created_by
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13)
            RETURNING {TENANCY_COLUMNS}
        """

        async with self.pool.acquire() as conn:
            try:
                row = await conn.fetchrow(
                    query,
                    tenancy.id,
                    tenancy.name,
                    tenancy.tenant_id,
                    tenancy.client_id,
                    tenancy.client_secret,
                    tenancy.enabled,
                    *(tenancy.flag(flag) for flag in TENANCY_FLAGS),
                    tenancy.created_by
                )
            except UniqueViolationError:
                raise TenancyConflict("Tenancy with this Tenant ID already exists")
            return _tenancy_from_row(row)

    async def update_tenancy(
        self,
        tenancy_id: str,
        changes: Dict[str, Any]
    ) -> Optional[OfficeTenancy]:
        """Update tenancy columns."""
        # Build dynamic UPDATE query
        updates = []
        params = []
        param_count = 1

        for column, value in changes.items():
            if column not in _TENANCY_WRITABLE:
                raise ValueError(f"Column {column} of office_tenancies is not writable")
            updates.append(f"{column} = ${param_count}")
            params.append(value)
            param_count += 1

        if not updates:
            return await self.get_tenancy(tenancy_id)

        updates.append("updated_at = NOW()")
        params.append(tenancy_id)

        query = f"""
            UPDATE office_tenancies
            SET {', '.join(updates)}
            WHERE id = ${param_count}
            RETURNING {TENANCY_COLUMNS}
        """

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(query, *params)
            return _tenancy_from_row(row) if row else None

    async def delete_tenancy(self, tenancy_id: str) -> Optional[int]:
        """Delete tenancy; smtp_domains rows go with it (ON DELETE CASCADE)."""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                domain_count = await conn.fetchval(
                    "SELECT COUNT(*) FROM smtp_domains WHERE tenancy_id = $1", tenancy_id
                )
                result = await conn.execute(
                    "DELETE FROM office_tenancies WHERE id = $1", tenancy_id
                )
                if result != "DELETE 1":
                    return None
                return domain_count

    # ============================================
    # SMTP DOMAINS
    # ============================================

    async def list_domains(self, tenancy_id: Optional[str] = None) -> List[SmtpDomain]:
        query = f"""
            SELECT {DOMAIN_COLUMNS}
            FROM smtp_domains
            WHERE $1::uuid IS NULL OR tenancy_id = $1::uuid
            ORDER BY created_at DESC
        """

        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, tenancy_id)
            return [_domain_from_row(row) for row in rows]

    async def get_domain(self, domain_id: str) -> Optional[SmtpDomain]:
        query = f"SELECT {DOMAIN_COLUMNS} FROM smtp_domains WHERE id = $1"

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(query, domain_id)
            return _domain_from_row(row) if row else None

    async def get_domain_by_name(self, domain: str) -> Optional[SmtpDomain]:
        query = f"SELECT {DOMAIN_COLUMNS} FROM smtp_domains WHERE domain = $1"

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(query, domain.lower())
            return _domain_from_row(row) if row else None

    async def find_domains_for(self, domain: str) -> List[SmtpDomain]:
        query = f"""
            SELECT {DOMAIN_COLUMNS}
            FROM smtp_domains
            WHERE domain = $1
            ORDER BY priority DESC, created_at ASC, id ASC
        """

        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, domain.lower())
            return [_domain_from_row(row) for row in rows]

    async def create_domain(self, domain: SmtpDomain) -> SmtpDomain:
        query = f"""
            INSERT INTO smtp_domains (
                id, domain, tenancy_id, priority, {", ".join(OVERRIDABLE_FLAGS)}
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
            RETURNING {DOMAIN_COLUMNS}
        """

        async with self.pool.acquire() as conn:
            try:
                row = await conn.fetchrow(
                    query,
                    domain.id,
                    domain.domain.lower(),
                    domain.tenancy_id,
                    domain.priority,
                    *(domain.override(flag).to_nullable() for flag in OVERRIDABLE_FLAGS)
                )
            except UniqueViolationError:
                raise DomainConflict("Domain already exists")
            return _domain_from_row(row)

    async def update_domain(
        self,
        domain_id: str,
        changes: Dict[str, Any]
    ) -> Optional[SmtpDomain]:
        updates = []
        params = []
        param_count = 1

        for column, value in changes.items():
            if column not in _DOMAIN_WRITABLE:
                raise ValueError(f"Column {column} of smtp_domains is not writable")
            updates.append(f"{column} = ${param_count}")
            params.append(_column_value(value))
            param_count += 1

        if not updates:
            return await self.get_domain(domain_id)

        updates.append("updated_at = NOW()")
        params.append(domain_id)

        query = f"""
            UPDATE smtp_domains
            SET {', '.join(updates)}
            WHERE id = ${param_count}
            RETURNING {DOMAIN_COLUMNS}
        """

        async with self.pool.acquire() as conn:
            try:
                row = await conn.fetchrow(query, *params)
            except UniqueViolationError:
                raise DomainConflict("Domain already exists")
            return _domain_from_row(row) if row else None

    async def delete_domain(self, domain_id: str) -> bool:
        query = "DELETE FROM smtp_domains WHERE id = $1"

        async with self.pool.acquire() as conn:
            result = await conn.execute(query, domain_id)
            return result == "DELETE 1"

    async def update_priorities(self, priorities: Sequence[Tuple[str, int]]) -> int:
        """Update priorities in one transaction."""
        query = "UPDATE smtp_domains SET priority = $1, updated_at = NOW() WHERE id = $2"
        updated = 0

        async with self.pool.acquire() as conn:
            async with conn.transaction():
                for domain_id, priority in priorities:
                    result = await conn.execute(query, priority, domain_id)
                    if result == "UPDATE 1":
                        updated += 1

        return updated
