"""
Local Cache Store

Durable, synchronous key-value store holding the last-known snapshot of
every entity the client has touched:

- Keys follow the ``{collection}:{id}`` convention
- Values are JSON snapshots of the entity
- ``put`` is an idempotent upsert by key
- Quota exhaustion raises StorageFull instead of dropping the write
- Corrupt snapshots raise DeserializationError on ``get``

Two backends: a per-client SQLite file (default) and Redis.
"""

import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple, Union

import structlog
from pydantic import BaseModel
from redis import Redis
from redis.exceptions import RedisError, ResponseError
from sqlalchemy import Column, DateTime, MetaData, String, Table, Text, create_engine, delete, func, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from pillowstore.config import LocalCacheSettings
from pillowstore.exceptions import DeserializationError, LocalCacheError, StorageFull

logger = structlog.get_logger(__name__)

Snapshot = Dict[str, Any]
Predicate = Callable[[Snapshot], bool]


def cache_key(collection: str, key: str) -> str:
    """Build a namespaced cache key"""
    return f"{collection}:{key}"


def serialize(entity: Union[BaseModel, Mapping[str, Any]]) -> str:
    """JSON snapshot of an entity"""
    if isinstance(entity, BaseModel):
        return entity.model_dump_json()
    return json.dumps(dict(entity), default=str)


class LocalCacheStore(ABC):
    """
    Backend-independent cache contract.

    Subclasses provide raw string storage; key building, serialization and
    error mapping live here.

    Example:
        store = SQLiteCacheStore("./data/cache.db")
        store.put("products", "1", product)
        snapshot = store.get("products", "1")
    """

    def get(self, collection: str, key: str) -> Optional[Snapshot]:
        """
        Get a cached snapshot.

        Returns:
            The snapshot, or None if never cached

        Raises:
            DeserializationError: The stored snapshot is corrupt
        """
        full_key = cache_key(collection, key)
        raw = self._read(full_key)
        if raw is None:
            return None
        return self._decode(full_key, raw, collection=collection, key=key)

    def put(self, collection: str, key: str, entity: Union[BaseModel, Mapping[str, Any]]) -> None:
        """
        Store a snapshot, overwriting any previous one for the same key.

        Raises:
            StorageFull: The quota would be exceeded; nothing was written
        """
        try:
            payload = serialize(entity)
        except (TypeError, ValueError) as e:
            raise LocalCacheError(
                f"Entity is not serializable: {e}", collection=collection, key=key
            ) from e
        self._write(cache_key(collection, key), collection, payload)

    def delete(self, collection: str, key: str) -> None:
        """Remove a snapshot (no-op when absent)"""
        self._remove(cache_key(collection, key))

    def list_by_collection(
        self,
        collection: str,
        predicate: Optional[Predicate] = None,
    ) -> List[Snapshot]:
        """
        Scan every snapshot of a collection.

        Corrupt snapshots are skipped. Each call re-scans the store.
        """
        items = []
        for full_key, raw in self._scan(collection):
            try:
                snapshot = self._decode(full_key, raw, collection=collection)
            except DeserializationError:
                logger.warning("Skipping corrupt cache entry", key=full_key)
                continue
            if predicate is None or predicate(snapshot):
                items.append(snapshot)
        return items

    def _decode(self, full_key: str, raw: str, **context: Any) -> Snapshot:
        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise DeserializationError(f"Corrupt cache entry '{full_key}': {e}", **context) from e
        if not isinstance(value, dict):
            raise DeserializationError(f"Cache entry '{full_key}' is not an object", **context)
        return value

    @abstractmethod
    def _read(self, full_key: str) -> Optional[str]:
        ...

    @abstractmethod
    def _write(self, full_key: str, collection: str, payload: str) -> None:
        ...

    @abstractmethod
    def _remove(self, full_key: str) -> None:
        ...

    @abstractmethod
    def _scan(self, collection: str) -> Iterator[Tuple[str, str]]:
        ...

    def close(self) -> None:
        """Release backend resources"""


# =============================================================================
# SQLITE BACKEND
# =============================================================================

_metadata = MetaData()

cache_entries = Table(
    "cache_entries",
    _metadata,
    Column("key", String(300), primary_key=True),
    Column("collection", String(100), nullable=False, index=True),
    Column("value", Text, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)


class SQLiteCacheStore(LocalCacheStore):
    """
    Cache backed by a local SQLite file.

    The quota counts the characters of every stored snapshot, mirroring the
    per-origin limit of browser storage. Every SQLAlchemy error surfaces as
    LocalCacheError, a full disk as StorageFull.
    """

    def __init__(self, path: str = ":memory:", quota_bytes: int = 5 * 1024 * 1024):
        self.path = path
        self.quota_bytes = quota_bytes

        if path == ":memory:":
            self._engine: Engine = create_engine(
                "sqlite://",
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            self._engine = create_engine(f"sqlite:///{path}")

        _metadata.create_all(self._engine)
        logger.info("Local cache opened", backend="sqlite", path=path, quota_bytes=quota_bytes)

    def _call(self, full_key: str, operation: Callable[[], Any]) -> Any:
        try:
            return operation()
        except OperationalError as e:
            if "full" in str(e.orig).lower():
                raise StorageFull(f"Local cache disk is full: {e.orig}", key=full_key) from e
            raise LocalCacheError(f"Local cache unavailable: {e.orig}", key=full_key) from e
        except SQLAlchemyError as e:
            raise LocalCacheError(f"Local cache error: {e}", key=full_key) from e

    def _read(self, full_key: str) -> Optional[str]:
        def read() -> Optional[str]:
            with self._engine.connect() as conn:
                return conn.execute(
                    select(cache_entries.c.value).where(cache_entries.c.key == full_key)
                ).scalar()

        return self._call(full_key, read)

    def _write(self, full_key: str, collection: str, payload: str) -> None:
        # Characters, matching what SQLite length() sums for TEXT
        size = len(payload)

        def write() -> None:
            with self._engine.begin() as conn:
                used = conn.execute(
                    select(func.coalesce(func.sum(func.length(cache_entries.c.value)), 0))
                    .where(cache_entries.c.key != full_key)
                ).scalar()
                if used + size > self.quota_bytes:
                    raise StorageFull(
                        f"Local cache quota exceeded ({used + size} > {self.quota_bytes} bytes)",
                        collection=collection,
                        key=full_key,
                    )

                stmt = insert(cache_entries).values(
                    key=full_key,
                    collection=collection,
                    value=payload,
                    updated_at=datetime.now(timezone.utc).replace(tzinfo=None),
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=["key"],
                    set_={"value": stmt.excluded.value, "updated_at": stmt.excluded.updated_at},
                )
                conn.execute(stmt)

        self._call(full_key, write)

    def _remove(self, full_key: str) -> None:
        def remove() -> None:
            with self._engine.begin() as conn:
                conn.execute(delete(cache_entries).where(cache_entries.c.key == full_key))

        self._call(full_key, remove)

    def _scan(self, collection: str) -> Iterator[Tuple[str, str]]:
        def scan() -> list:
            with self._engine.connect() as conn:
                return conn.execute(
                    select(cache_entries.c.key, cache_entries.c.value)
                    .where(cache_entries.c.collection == collection)
                    .order_by(cache_entries.c.key)
                ).all()

        for row in self._call(f"{collection}:*", scan):
            yield row.key, row.value

    def used_bytes(self) -> int:
        """Bytes currently used by snapshots"""
        def used() -> int:
            with self._engine.connect() as conn:
                return int(conn.execute(
                    select(func.coalesce(func.sum(func.length(cache_entries.c.value)), 0))
                ).scalar())

        return self._call("*", used)

    def close(self) -> None:
        self._engine.dispose()


# =============================================================================
# REDIS BACKEND
# =============================================================================

class RedisCacheStore(LocalCacheStore):
    """
    Cache backed by Redis.

    Redis has to run with persistence enabled for the cache to survive
    restarts. An OOM reply under ``maxmemory`` maps to StorageFull.
    """

    def __init__(self, client: Any):
        self._client = client

    @classmethod
    def from_url(cls, url: str, socket_timeout: int = 5) -> "RedisCacheStore":
        client = Redis.from_url(url, socket_timeout=socket_timeout, decode_responses=True)
        logger.info("Local cache opened", backend="redis")
        return cls(client)

    def _call(self, full_key: str, operation: Callable[[], Any]) -> Any:
        try:
            return operation()
        except ResponseError as e:
            if str(e).upper().startswith("OOM"):
                raise StorageFull(f"Redis cache is full: {e}", key=full_key) from e
            raise LocalCacheError(f"Redis cache error: {e}", key=full_key) from e
        except RedisError as e:
            raise LocalCacheError(f"Redis cache unavailable: {e}", key=full_key) from e

    def _read(self, full_key: str) -> Optional[str]:
        return self._call(full_key, lambda: self._client.get(full_key))

    def _write(self, full_key: str, collection: str, payload: str) -> None:
        self._call(full_key, lambda: self._client.set(full_key, payload))

    def _remove(self, full_key: str) -> None:
        self._call(full_key, lambda: self._client.delete(full_key))

    def _scan(self, collection: str) -> Iterator[Tuple[str, str]]:
        pattern = f"{collection}:*"
        keys = sorted(self._call(pattern, lambda: list(self._client.scan_iter(match=pattern))))
        if not keys:
            return
        values = self._call(pattern, lambda: self._client.mget(keys))
        for full_key, raw in zip(keys, values):
            if raw is not None:
                yield full_key, raw

    def close(self) -> None:
        self._client.close()


def create_local_store(settings: LocalCacheSettings) -> LocalCacheStore:
    """Build the configured cache backend"""
    if settings.backend == "redis":
        if not settings.redis_url:
            raise LocalCacheError("LOCAL_CACHE_REDIS_URL is required for the redis backend")
        return RedisCacheStore.from_url(settings.redis_url, settings.redis_socket_timeout)
    return SQLiteCacheStore(settings.path, settings.quota_bytes)
