"""
Test Suite Configuration
"""
from decimal import Decimal
from typing import Any, Dict

import pytest

from pillowstore.config import LocalCacheSettings, RemoteSettings, Settings
from pillowstore.context import StoreContext
from pillowstore.database.connection import RemoteClient
from pillowstore.database.gateway import RemoteDataGateway
from pillowstore.database.models import Base
from pillowstore.storage.local_cache import SQLiteCacheStore
from pillowstore.sync.connectivity import ConnectivityMonitor
from pillowstore.sync.coordinator import SyncCoordinator


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
        remote=RemoteSettings(
            url="sqlite+aiosqlite:///:memory:",
            timeout_seconds=2.0,
            probe_interval_seconds=30.0,
        ),
        local_cache=LocalCacheSettings(backend="sqlite", path=":memory:"),
    )


@pytest.fixture
async def bare_client(test_settings):
    """Remote client whose database has no tables"""
    client = RemoteClient(test_settings.remote)
    await client.connect()

    yield client

    await client.close()


@pytest.fixture
async def remote_client(bare_client):
    """Remote client with the schema created"""
    async with bare_client.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return bare_client


@pytest.fixture
def local_store():
    store = SQLiteCacheStore(":memory:")
    yield store
    store.close()


@pytest.fixture
def monitor(remote_client) -> ConnectivityMonitor:
    return ConnectivityMonitor(remote_client)


@pytest.fixture
def gateway(remote_client, monitor) -> RemoteDataGateway:
    return RemoteDataGateway(remote_client, monitor)


@pytest.fixture
def coordinator(monitor, gateway, local_store) -> SyncCoordinator:
    return SyncCoordinator(monitor, gateway, local_store)


@pytest.fixture
def context(test_settings, remote_client, local_store) -> StoreContext:
    return StoreContext(test_settings, remote_client, local_store)


@pytest.fixture
def sample_product() -> Dict[str, Any]:
    return {
        "id": "1",
        "name": "Cloud Comfort Elite",
        "brand_id": "casper",
        "price": Decimal("129.99"),
        "rating": 4.8,
        "review_count": 1250,
        "features": ["Cooling technology", "Memory foam"],
        "firmness": "Medium",
        "sleep_positions": ["back", "side"],
        "stock": 45,
        "recommended": True,
    }


@pytest.fixture
def sample_brand() -> Dict[str, Any]:
    return {"id": "casper", "name": "Casper"}
