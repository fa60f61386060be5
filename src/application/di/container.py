"""Dependency injection container for the application."""

import os
import logging
import asyncpg
from typing import Optional

from msgraph import GraphServiceClient

from src.domain.models.graph_models import GraphCredentials
from src.domain.ports import AuditLogRepository, GraphDirectory, PresenceCacheStore, TenancyRepository
from src.domain.services import (
    GroupSendService,
    OutOfOfficeService,
    PresenceService,
    SmtpDomainRouter,
    TenancyService,
)
from src.infrastructure.adapters.graph import (
    GraphOutOfOfficeProvider,
    GraphPresenceProvider,
    MsGraphDirectory,
    create_graph_client,
)
from src.infrastructure.adapters.postgres import PostgresAuditLogRepository, PostgresTenancyRepository
from src.infrastructure.adapters.redis import RedisPresenceCache, create_redis_client
from src.services.secret_cipher import SecretCipher

logger = logging.getLogger(__name__)


class Container:
    """
    Dependency injection container.

    Resources are created on first use and released by ``close``.
    """

    def __init__(self):
        """Initialize the container."""
        self._shared_db_pool: Optional[asyncpg.Pool] = None
        self._presence_cache: Optional[PresenceCacheStore] = None
        self._presence_cache_checked = False
        self._tenancy_repository: Optional[TenancyRepository] = None
        self._audit_repository: Optional[AuditLogRepository] = None
        self._graph_directory: Optional[GraphDirectory] = None
        self._secret_cipher: Optional[SecretCipher] = None
        self._graph_client: Optional[GraphServiceClient] = None
        self._graph_client_checked = False
        self._presence_service: Optional[PresenceService] = None
        self._out_of_office_service: Optional[OutOfOfficeService] = None
        self._domain_router: Optional[SmtpDomainRouter] = None
        self._tenancy_service: Optional[TenancyService] = None
        self._group_send_service: Optional[GroupSendService] = None

    async def _get_shared_db_pool(self) -> asyncpg.Pool:
        """
        Get or create the database pool shared by all repositories.

        Returns:
            AsyncPG pool instance
        """
        if self._shared_db_pool is None:
            db_host = os.getenv("DB_HOST", "localhost")
            db_port = int(os.getenv("DB_PORT", "5432"))
            db_name = os.getenv("DB_NAME", "people_picker")
            db_user = os.getenv("DB_USER", "postgres")
            db_password = os.getenv("DB_PASSWORD", "postgres")

            self._shared_db_pool = await asyncpg.create_pool(
                host=db_host,
                port=db_port,
                database=db_name,
                user=db_user,
                password=db_password,
                min_size=2,
                max_size=10,
                command_timeout=60,
            )
            logger.info(f"✅ Shared database pool initialized (min=2, max=10)")

        return self._shared_db_pool

    async def get_db_pool(self) -> asyncpg.Pool:
        """Public access to the shared database pool."""
        return await self._get_shared_db_pool()

    def get_presence_cache(self) -> Optional[PresenceCacheStore]:
        """
        Get the presence cache store.

        Returns:
            Redis-backed store, or None when REDIS_CONNECTION_STRING is unset
        """
        if not self._presence_cache_checked:
            self._presence_cache_checked = True
            redis_url = os.getenv("REDIS_CONNECTION_STRING")
            if redis_url:
                self._presence_cache = RedisPresenceCache(create_redis_client(redis_url))
                logger.info("✅ Redis presence cache initialized")
            else:
                logger.warning("⚠️ REDIS_CONNECTION_STRING not set, presence caching disabled")

        return self._presence_cache

    def get_secret_cipher(self) -> SecretCipher:
        if self._secret_cipher is None:
            self._secret_cipher = SecretCipher()
        return self._secret_cipher

    async def init_tenancy_repository(self) -> TenancyRepository:
        """
        Initialize and return the tenancy repository.

        Uses the shared database pool.
        """
        if self._tenancy_repository is None:
            pool = await self._get_shared_db_pool()
            self._tenancy_repository = PostgresTenancyRepository(pool)
            logger.info("✅ PostgresTenancyRepository initialized (shared pool)")

        return self._tenancy_repository

    async def init_audit_repository(self) -> AuditLogRepository:
        if self._audit_repository is None:
            pool = await self._get_shared_db_pool()
            self._audit_repository = PostgresAuditLogRepository(pool)
            logger.info("✅ PostgresAuditLogRepository initialized (shared pool)")

        return self._audit_repository

    def get_graph_directory(self) -> GraphDirectory:
        if self._graph_directory is None:
            self._graph_directory = MsGraphDirectory()
        return self._graph_directory

    def get_graph_client(self) -> Optional[GraphServiceClient]:
        """
        Get the application Graph client used for presence and out-of-office.

        Built from GRAPH_TENANT_ID, GRAPH_CLIENT_ID and GRAPH_CLIENT_SECRET;
        None when any of them is missing.
        """
        if not self._graph_client_checked:
            self._graph_client_checked = True
            tenant_id = os.getenv("GRAPH_TENANT_ID")
            client_id = os.getenv("GRAPH_CLIENT_ID")
            client_secret = os.getenv("GRAPH_CLIENT_SECRET")

            if tenant_id and client_id and client_secret:
                try:
                    self._graph_client = create_graph_client(
                        GraphCredentials(
                            tenant_id=tenant_id,
                            client_id=client_id,
                            client_secret=client_secret,
                        )
                    )
                    logger.info("✅ Microsoft Graph client initialized successfully")
                except Exception as e:
                    logger.error(f"❌ Error initializing Graph client: {e}")
            else:
                logger.warning("⚠️ Microsoft Graph credentials not configured")

        return self._graph_client

    def get_presence_service(self) -> PresenceService:
        if self._presence_service is None:
            self._presence_service = PresenceService(
                provider=GraphPresenceProvider(self.get_graph_client()),
                cache=self.get_presence_cache(),
            )
            logger.info("✅ PresenceService initialized")

        return self._presence_service

    def get_out_of_office_service(self) -> OutOfOfficeService:
        if self._out_of_office_service is None:
            self._out_of_office_service = OutOfOfficeService(
                provider=GraphOutOfOfficeProvider(self.get_graph_client()),
                cache=self.get_presence_cache(),
            )
            logger.info("✅ OutOfOfficeService initialized")

        return self._out_of_office_service

    async def get_domain_router(self) -> SmtpDomainRouter:
        if self._domain_router is None:
            self._domain_router = SmtpDomainRouter(await self.init_tenancy_repository())
            logger.info("✅ SmtpDomainRouter initialized")

        return self._domain_router

    async def get_tenancy_service(self) -> TenancyService:
        if self._tenancy_service is None:
            self._tenancy_service = TenancyService(
                repository=await self.init_tenancy_repository(),
                audit_repository=await self.init_audit_repository(),
                cipher=self.get_secret_cipher(),
                directory=self.get_graph_directory(),
            )
            logger.info("✅ TenancyService initialized")

        return self._tenancy_service

    async def get_group_send_service(self) -> GroupSendService:
        if self._group_send_service is None:
            self._group_send_service = GroupSendService(
                router=await self.get_domain_router(),
                directory=self.get_graph_directory(),
                cipher=self.get_secret_cipher(),
                audit_repository=await self.init_audit_repository(),
            )
            logger.info("✅ GroupSendService initialized")

        return self._group_send_service

    async def close(self):
        """Close all resources."""
        logger.info("🧹 Closing container resources...")

        if self._presence_cache:
            await self._presence_cache.close()
            logger.info("✅ Presence cache closed")

        # Close the shared pool LAST since all repositories use it
        if self._shared_db_pool:
            await self._shared_db_pool.close()
            logger.info("✅ Shared database pool closed")


_container: Optional[Container] = None


def get_container() -> Container:
    """
    Get the global container instance.

    Returns:
        Container instance
    """
    global _container
    if _container is None:
        _container = Container()
        logger.info("🚀 Container created")
    return _container


async def close_container():
    """Close the global container."""
    global _container
    if _container is not None:
        await _container.close()
        _container = None
        logger.info("✅ Container closed")
