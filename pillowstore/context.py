"""
Store Context

Builds and owns every persistence collaborator for one client process:
remote client, connectivity monitor, gateway, local cache, coordinator and
the per-entity services. It is passed down explicitly instead of living in
module globals.
"""

from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine

from pillowstore.config import Settings, get_settings
from pillowstore.database.connection import RemoteClient
from pillowstore.database.gateway import RemoteDataGateway
from pillowstore.services import (
    CatalogService,
    ChatHistoryService,
    MeasurementService,
    ProfileService,
)
from pillowstore.storage.local_cache import LocalCacheStore, create_local_store
from pillowstore.sync.connectivity import ConnectivityMonitor
from pillowstore.sync.coordinator import SyncCoordinator

logger = structlog.get_logger(__name__)


class StoreContext:
    """
    Wiring for the dual-store data layer.

    Example:
        context = await StoreContext.create()
        result = await context.catalog.list_products()
        await context.close()
    """

    def __init__(
        self,
        settings: Settings,
        client: RemoteClient,
        local: LocalCacheStore,
    ):
        self.settings = settings
        self.client = client
        self.local = local
        self.monitor = ConnectivityMonitor(client)
        self.gateway = RemoteDataGateway(client, self.monitor)
        self.coordinator = SyncCoordinator(self.monitor, self.gateway, local)

        self.catalog = CatalogService(self.coordinator)
        self.measurements = MeasurementService(self.coordinator)
        self.profiles = ProfileService(self.coordinator)
        self.chat_history = ChatHistoryService(self.coordinator)

    @classmethod
    async def create(
        cls,
        settings: Optional[Settings] = None,
        *,
        engine: Optional[AsyncEngine] = None,
        local: Optional[LocalCacheStore] = None,
    ) -> "StoreContext":
        """Connect the remote engine and open the local cache"""
        settings = settings or get_settings()
        client = RemoteClient(settings.remote, engine=engine)
        await client.connect()
        local = local if local is not None else create_local_store(settings.local_cache)

        logger.info(
            "Store context ready",
            environment=settings.app_env,
            remote_dialect=client.dialect,
            cache_backend=type(local).__name__,
        )
        return cls(settings, client, local)

    async def close(self) -> None:
        await self.client.close()
        self.local.close()
        logger.info("Store context closed")
