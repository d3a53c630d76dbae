"""
Remote Database Connection

Async SQLAlchemy engine for the remote data service, owned by an explicitly
constructed RemoteClient. Nothing here is a module-level singleton: the
client is built once by the application context and passed down, so tests
can hand in their own engine.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool

from pillowstore.config import RemoteSettings

logger = structlog.get_logger(__name__)


def _is_memory_url(url: str) -> bool:
    return url.startswith("sqlite") and (":memory:" in url or url.rstrip("/").endswith("sqlite+aiosqlite:"))


class RemoteClient:
    """
    Handle on the remote relational service.

    Example:
        client = RemoteClient(settings.remote)
        await client.connect()
        async with client.begin() as conn:
            await conn.execute(...)
        await client.close()
    """

    def __init__(self, settings: RemoteSettings, engine: Optional[AsyncEngine] = None):
        self.settings = settings
        self._engine = engine

    @property
    def timeout(self) -> float:
        return self.settings.timeout_seconds

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    async def connect(self) -> AsyncEngine:
        """
        Create the async engine.

        Does not touch the network; reachability is the connectivity
        monitor's job, and an unreachable service at startup must not
        prevent the client from serving from the local cache.
        """
        if self._engine is not None:
            return self._engine

        engine_config: Dict[str, Any] = {
            "echo": self.settings.echo,
            "pool_pre_ping": True,
        }
        # In-memory SQLite must share a single connection or every checkout
        # sees an empty database
        if _is_memory_url(self.settings.url):
            engine_config["poolclass"] = StaticPool
        else:
            engine_config["poolclass"] = NullPool

        self._engine = create_async_engine(self.settings.url, **engine_config)
        logger.info("Remote engine created", dialect=self._engine.dialect.name)
        return self._engine

    async def close(self) -> None:
        """Dispose of the engine and its connections"""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info("Remote engine disposed")

    @property
    def engine(self) -> AsyncEngine:
        """
        Get the database engine.

        Raises:
            RuntimeError: If connect() has not been called
        """
        if self._engine is None:
            raise RuntimeError("Remote client not connected. Call connect() first.")
        return self._engine

    @asynccontextmanager
    async def begin(self) -> AsyncGenerator[AsyncConnection, None]:
        """Connection inside a transaction; commits on exit, rolls back on error"""
        async with self.engine.begin() as conn:
            yield conn

    async def count(self, table: Any) -> int:
        """Zero-row count-only query, used as the health probe"""
        async with self.begin() as conn:
            result = await conn.execute(select(func.count()).select_from(table))
            return int(result.scalar() or 0)

    async def timed_count(self, table: Any) -> Dict[str, Any]:
        """Count probe with latency information"""
        start = time.perf_counter()
        rows = await self.count(table)
        latency_ms = (time.perf_counter() - start) * 1000
        return {"rows": rows, "latency_ms": round(latency_ms, 2)}
