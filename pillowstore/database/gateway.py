"""
Remote Data Gateway

CRUD against the remote data service for the fixed set of collections.
Every call fails fast when the connectivity monitor already knows the
service is unreachable or missing its schema, is bounded by the remote
timeout, and raises only the typed remote errors.
"""

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, Callable, List, Mapping, Optional, TypeVar, Union

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import Table, and_, delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection

from pillowstore.database.connection import RemoteClient
from pillowstore.database.errors import translate_remote_error
from pillowstore.database.models import TABLES
from pillowstore.domain.collections import CollectionSpec, get_collection
from pillowstore.domain.entities import Entity
from pillowstore.domain.health import ConnectivityStatus
from pillowstore.exceptions import RemoteUnavailable, SchemaMissing, ValidationError

if TYPE_CHECKING:
    from pillowstore.sync.connectivity import ConnectivityMonitor

logger = structlog.get_logger(__name__)

T = TypeVar("T")
CollectionRef = Union[str, CollectionSpec]

# Failures that mean "the remote did not answer properly"
_TRANSPORT_ERRORS = (SQLAlchemyError, OSError, ConnectionError, asyncio.TimeoutError)


def _resolve(collection: CollectionRef) -> CollectionSpec:
    return collection if isinstance(collection, CollectionSpec) else get_collection(collection)


class RemoteDataGateway:
    """
    Remote CRUD for every registered collection.

    Upserts resolve primary-key conflicts by overwriting (last write wins);
    there are no concurrency tokens.
    """

    def __init__(
        self,
        client: RemoteClient,
        monitor: Optional["ConnectivityMonitor"] = None,
        timeout: Optional[float] = None,
    ):
        self.client = client
        self.monitor = monitor
        self.timeout = timeout if timeout is not None else client.timeout

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def fetch_all(
        self,
        collection: CollectionRef,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[Entity]:
        """Fetch every entity matching the equality filters"""
        spec = _resolve(collection)
        filters = spec.check_filters(filters)
        table = self._table(spec)

        async def operation(conn: AsyncConnection) -> List[Entity]:
            query = select(table)
            if filters:
                query = query.where(and_(*[table.c[k] == _bind(v) for k, v in filters.items()]))
            if spec.order_by:
                column, descending = spec.order_by
                query = query.order_by(table.c[column].desc() if descending else table.c[column])
            result = await conn.execute(query)
            return [self._to_entity(spec, row._mapping) for row in result]

        return await self._run(spec, None, operation)

    async def fetch_one(self, collection: CollectionRef, key: str) -> Optional[Entity]:
        """Fetch one entity by key, None when absent"""
        spec = _resolve(collection)
        table = self._table(spec)

        async def operation(conn: AsyncConnection) -> Optional[Entity]:
            result = await conn.execute(select(table).where(table.c[spec.key_field] == key))
            row = result.first()
            return self._to_entity(spec, row._mapping) if row is not None else None

        return await self._run(spec, key, operation)

    async def upsert(
        self,
        collection: CollectionRef,
        entity: Union[BaseModel, Mapping[str, Any]],
    ) -> Entity:
        """Insert or overwrite an entity by key"""
        spec = _resolve(collection)
        validated = spec.validate(entity)
        key = spec.key_of(validated)
        table = self._table(spec)
        values = {k: v for k, v in validated.model_dump().items() if k in table.c}

        async def operation(conn: AsyncConnection) -> Entity:
            stmt = self._insert(table).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=[spec.key_field],
                set_={k: stmt.excluded[k] for k in values if k != spec.key_field},
            )
            await conn.execute(stmt)
            return validated

        result = await self._run(spec, key, operation)
        logger.debug("Remote upsert", collection=spec.name, key=key)
        return result

    async def update_fields(
        self,
        collection: CollectionRef,
        key: str,
        fields: Mapping[str, Any],
    ) -> bool:
        """
        Partial update of one entity.

        Returns:
            True if a row matched the key
        """
        spec = _resolve(collection)
        table = self._table(spec)
        unknown = set(fields) - set(table.c.keys())
        if unknown or spec.key_field in fields:
            raise ValidationError(
                f"Cannot update fields {sorted(unknown or {spec.key_field})} of '{spec.name}'",
                collection=spec.name,
                key=key,
            )
        values = {k: _bind(v) for k, v in fields.items()}

        async def operation(conn: AsyncConnection) -> bool:
            result = await conn.execute(
                update(table).where(table.c[spec.key_field] == key).values(**values)
            )
            return (result.rowcount or 0) > 0

        return await self._run(spec, key, operation)

    async def remove(self, collection: CollectionRef, key: str) -> None:
        """Delete one entity by key (administrative callers only)"""
        spec = _resolve(collection)
        table = self._table(spec)

        async def operation(conn: AsyncConnection) -> None:
            await conn.execute(delete(table).where(table.c[spec.key_field] == key))

        await self._run(spec, key, operation)
        logger.info("Remote entity removed", collection=spec.name, key=key)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _guard(self, spec: CollectionSpec, key: Optional[str]) -> None:
        """Fail fast on a known-bad verdict instead of paying for a timeout"""
        report = self.monitor.last_report if self.monitor is not None else None
        if report is None:
            return
        if report.status is ConnectivityStatus.SCHEMA_MISSING:
            raise SchemaMissing(report.message, collection=spec.name, key=key)
        if report.status is ConnectivityStatus.UNREACHABLE:
            raise RemoteUnavailable(report.message, collection=spec.name, key=key)

    async def _run(
        self,
        spec: CollectionSpec,
        key: Optional[str],
        operation: Callable[[AsyncConnection], Awaitable[T]],
    ) -> T:
        self._guard(spec, key)

        async def in_transaction() -> T:
            async with self.client.begin() as conn:
                return await operation(conn)

        try:
            return await asyncio.wait_for(in_transaction(), self.timeout)
        except _TRANSPORT_ERRORS as e:
            error = translate_remote_error(e, collection=spec.name, key=key)
            logger.warning(
                "Remote call failed",
                collection=spec.name,
                key=key,
                error_type=type(error).__name__,
                error=error.message,
            )
            raise error from e

    def _table(self, spec: CollectionSpec) -> Table:
        return TABLES[spec.name]

    def _insert(self, table: Table):
        dialect = self.client.dialect
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise RemoteUnavailable(f"Upsert is not supported on dialect '{dialect}'")
        return insert(table)

    def _to_entity(self, spec: CollectionSpec, row: Mapping[str, Any]) -> Entity:
        try:
            return spec.model.model_validate(dict(row))
        except PydanticValidationError as e:
            raise RemoteUnavailable(
                f"Malformed {spec.name} row from remote: {e.error_count()} error(s)",
                collection=spec.name,
                key=str(row.get(spec.key_field)),
            ) from e


def _bind(value: Any) -> Any:
    """Plain value for a bind parameter"""
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, list):
        return [_bind(v) for v in value]
    if isinstance(value, str) and hasattr(value, "value"):
        return value.value
    return value
