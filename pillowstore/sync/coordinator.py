"""
Sync Coordinator

Read-through and write-through orchestration across the remote data gateway
and the local cache store, driven by the connectivity monitor's verdict.

Per request:

    Idle -> Probing -> RemoteFirst  -> Reconciled
                    -> LocalFallback -> Degraded

Reads go remote first and populate the cache; on any remote failure they
serve the cached snapshot instead. Writes land in the cache first, always,
then go to the remote on a best-effort basis. A write the remote did not
accept leaves a pending marker in the cache. Nothing retries in the
background: the marker is consumed by the next read or write of that key,
or by an explicit reconcile() pass.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Generic,
    List,
    Mapping,
    Optional,
    Tuple,
    TypeVar,
    Union,
)

import structlog
from pydantic import BaseModel

from pillowstore.database.gateway import RemoteDataGateway
from pillowstore.domain.collections import (
    COLLECTIONS,
    MEASUREMENTS,
    PROFILES,
    CollectionSpec,
    get_collection,
)
from pillowstore.domain.entities import Entity, Measurement, SleepPosition, UserProfile
from pillowstore.domain.health import HealthReport
from pillowstore.domain.scoring import calculate_scores
from pillowstore.exceptions import (
    DeserializationError,
    LocalCacheError,
    RemoteUnavailable,
    SchemaMissing,
    ValidationError,
)
from pillowstore.storage.local_cache import LocalCacheStore
from pillowstore.sync.connectivity import ConnectivityMonitor

logger = structlog.get_logger(__name__)

T = TypeVar("T")
CollectionRef = Union[str, CollectionSpec]

# Reserved cache collection holding markers for writes the remote has not seen
PENDING_COLLECTION = "_pending"

_REMOTE_ERRORS = (RemoteUnavailable, SchemaMissing)


class SyncOutcome(str, Enum):
    """Terminal state of one sync operation"""
    RECONCILED = "reconciled"  # remote participated successfully
    DEGRADED = "degraded"  # only the local cache participated


@dataclass
class SyncResult(Generic[T]):
    """
    Value returned by every coordinator operation.

    Attributes:
        value: Entity, list of entities or None
        outcome: RECONCILED or DEGRADED
        verdict: Connectivity verdict after the operation
        message: Diagnostic for banners (degraded reason, local cache error)
    """
    value: T
    outcome: SyncOutcome
    verdict: Optional[HealthReport] = None
    message: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.outcome is SyncOutcome.DEGRADED

    @classmethod
    def combine(cls, value: Any, *results: "SyncResult[Any]") -> "SyncResult[Any]":
        """Result derived from several operations; degraded if any of them was"""
        degraded = [r for r in results if r.degraded]
        last = results[-1] if results else None
        return cls(
            value,
            SyncOutcome.DEGRADED if degraded else SyncOutcome.RECONCILED,
            last.verdict if last else None,
            message=next((r.message for r in degraded or results if r.message), None),
        )


@dataclass
class ReconcileReport:
    """Result of an explicit reconciliation pass"""
    pushed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    verdict: Optional[HealthReport] = None
    error: Optional[str] = None

    @property
    def complete(self) -> bool:
        return not self.failed and not self.skipped and self.error is None


def _resolve(collection: CollectionRef) -> CollectionSpec:
    return collection if isinstance(collection, CollectionSpec) else get_collection(collection)


def _marker_key(spec: CollectionSpec, key: str) -> str:
    return f"{spec.name}:{key}"


def _marker_fields(marker: Mapping[str, Any]) -> Optional[List[str]]:
    """Fields a partial marker covers; None means the whole entity is pending"""
    fields = marker.get("fields")
    if isinstance(fields, list) and all(isinstance(f, str) for f in fields):
        return fields
    return None


class SyncCoordinator:
    """
    Generic dual-store persistence for every registered collection.

    Example:
        coordinator = SyncCoordinator(monitor, gateway, local_store)
        result = await coordinator.read("products", "1")
        if result.degraded:
            show_banner(result.verdict.message)
    """

    def __init__(
        self,
        monitor: ConnectivityMonitor,
        gateway: RemoteDataGateway,
        local: LocalCacheStore,
    ):
        self.monitor = monitor
        self.gateway = gateway
        self.local = local

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def read(self, collection: CollectionRef, key: str) -> SyncResult[Optional[Entity]]:
        """
        Read one entity, remote first with cache fallback.

        Never raises remote or cache errors: a failed remote read returns the
        cached snapshot (or None) with a DEGRADED outcome.
        """
        spec = _resolve(collection)
        report = await self.monitor.current()

        if report.is_connected:
            try:
                # A partial push leaves the remote as the only complete copy
                if self._is_pending(spec, key):
                    await self._push_pending(spec, key)
                remote = await self.gateway.fetch_one(spec, key)
            except _REMOTE_ERRORS as e:
                report = self.monitor.record_failure(e)
            else:
                if remote is not None:
                    self._populate(spec, key, remote)
                return SyncResult(remote, SyncOutcome.RECONCILED, report)

        logger.info("Serving read from local cache", collection=spec.name, key=key, status=report.status.value)
        return SyncResult(
            self._local_entity(spec, key),
            SyncOutcome.DEGRADED,
            report,
            message=report.message,
        )

    async def read_all(
        self,
        collection: CollectionRef,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> SyncResult[List[Entity]]:
        """
        Read every entity matching equality filters, remote first.

        Raises:
            ValidationError: A filter names a field the collection cannot be filtered by
        """
        spec = _resolve(collection)
        filters = spec.check_filters(filters)
        report = await self.monitor.current()

        if report.is_connected:
            try:
                for key in self.pending_keys(spec):
                    entity = self._local_entity(spec, key)
                    if entity is None or spec.matches(entity.model_dump(mode="json"), filters):
                        await self._push_pending(spec, key)
                items = await self.gateway.fetch_all(spec, filters)
            except _REMOTE_ERRORS as e:
                report = self.monitor.record_failure(e)
            else:
                for item in items:
                    self._populate(spec, spec.key_of(item), item)
                return SyncResult(items, SyncOutcome.RECONCILED, report)

        logger.info("Serving list from local cache", collection=spec.name, filters=filters, status=report.status.value)
        return SyncResult(
            self._local_entities(spec, filters),
            SyncOutcome.DEGRADED,
            report,
            message=report.message,
        )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def write(
        self,
        collection: CollectionRef,
        entity: Union[BaseModel, Mapping[str, Any]],
    ) -> SyncResult[Entity]:
        """
        Write one entity: cache first, then best-effort remote upsert.

        Replaying the same write is idempotent in both stores.

        Raises:
            ValidationError: The entity is malformed (neither store touched)
            LocalCacheError: Neither the cache nor the remote accepted the write
        """
        spec = _resolve(collection)
        validated = spec.validate(entity)
        key = spec.key_of(validated)

        async def push() -> None:
            await self.gateway.upsert(spec, validated)

        return await self._write_through(spec, key, validated, push)

    async def update_profile(
        self,
        user_id: str,
        fields: Mapping[str, Any],
    ) -> SyncResult[UserProfile]:
        """
        Merge fields into a user profile.

        The remote receives a partial update of just these fields, plus any
        fields earlier offline updates left pending. The whole merged profile
        is upserted only when the remote has no row for the user, or when a
        full write of the profile is still pending.
        """
        spec = PROFILES
        fields = dict(fields)
        if fields.pop("id", user_id) != user_id:
            raise ValidationError("Profile id cannot be changed", collection=spec.name, key=user_id)
        unknown = set(fields) - set(UserProfile.model_fields)
        if unknown:
            raise ValidationError(
                f"Unknown profile fields {sorted(unknown)}",
                collection=spec.name,
                key=user_id,
            )

        base = self._local_entity(spec, user_id)
        if base is None:
            # Nothing cached: merge into the remote copy when there is one
            base = (await self.read(spec, user_id)).value or UserProfile(id=user_id)
        now = datetime.now(timezone.utc)
        merged = spec.validate({**base.model_dump(), **fields, "id": user_id, "updated_at": now})
        dumped = merged.model_dump()
        changed = {name: dumped[name] for name in list(fields) + ["updated_at"]}

        marker = self._pending_marker(spec, user_id)
        if marker is not None and _marker_fields(marker) is None:
            pending_fields: Optional[List[str]] = None
        else:
            pending_fields = sorted(set(changed) | set(_marker_fields(marker or {}) or []))

        async def push() -> None:
            if pending_fields is None:
                await self.gateway.upsert(spec, merged)
            else:
                await self._update_or_upsert(spec, merged, pending_fields)

        return await self._write_through(spec, user_id, merged, push, pending_fields)

    async def save_measurement(
        self,
        user_id: str,
        neck_length: float,
        neck_width: float,
        sleep_position: Union[SleepPosition, str],
        *,
        measurement_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> SyncResult[Measurement]:
        """
        Score and persist a measurement, then copy the scores onto the profile.

        The outcome is DEGRADED if either the measurement or the profile
        write only reached the local cache.
        """
        payload: Dict[str, Any] = {
            "user_id": user_id,
            "neck_length": neck_length,
            "neck_width": neck_width,
            "sleep_position": sleep_position,
        }
        if measurement_id is not None:
            payload["id"] = measurement_id
        if created_at is not None:
            payload["created_at"] = created_at
        draft = MEASUREMENTS.validate(payload)

        scores = calculate_scores(draft.neck_length, draft.neck_width, draft.sleep_position)
        measurement = draft.model_copy(update=scores.as_dict())

        saved = await self.write(MEASUREMENTS, measurement)
        profile = await self.update_profile(user_id, scores.as_dict())

        degraded = saved.degraded or profile.degraded
        logger.info(
            "Measurement saved",
            user_id=user_id,
            measurement_id=measurement.id,
            degraded=degraded,
            **scores.as_dict(),
        )
        return SyncResult(
            saved.value,
            SyncOutcome.DEGRADED if degraded else SyncOutcome.RECONCILED,
            profile.verdict,
            message=saved.message or profile.message,
        )

    # -------------------------------------------------------------------------
    # Reconciliation
    # -------------------------------------------------------------------------

    def pending_keys(self, collection: Optional[CollectionRef] = None) -> List[str]:
        """Keys with local writes the remote has not accepted yet"""
        name = _resolve(collection).name if collection is not None else None
        try:
            markers = self._markers(name)
        except LocalCacheError as e:
            logger.warning("Pending markers unreadable", collection=name, error=e.message)
            return []
        if name is not None:
            return [key for _, key in markers]
        return [_marker_key(spec, key) for spec, key in markers]

    async def reconcile(self, collection: Optional[CollectionRef] = None) -> ReconcileReport:
        """
        Push every pending local write to the remote once.

        Markers are cleared for writes the remote accepts; the rest stay for
        the next pass. An unreadable cache ends the pass with ``error`` set.
        """
        report = ReconcileReport(verdict=await self.monitor.current())
        name = _resolve(collection).name if collection is not None else None
        try:
            markers = self._markers(name)
        except LocalCacheError as e:
            logger.error("Pending markers unreadable", collection=name, error=e.message)
            report.error = e.message
            return report

        for spec, key in markers:
            label = _marker_key(spec, key)

            if not report.verdict.is_connected:
                report.skipped.append(label)
                continue
            try:
                pushed = await self._push_pending(spec, key)
            except _REMOTE_ERRORS as e:
                report.verdict = self.monitor.record_failure(e)
                report.failed.append(label)
                continue
            if pushed is not None:
                report.pushed.append(label)

        logger.info(
            "Reconciliation pass finished",
            pushed=len(report.pushed),
            failed=len(report.failed),
            skipped=len(report.skipped),
        )
        return report

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _write_through(
        self,
        spec: CollectionSpec,
        key: str,
        entity: Entity,
        push: Callable[[], Awaitable[None]],
        pending_fields: Optional[List[str]] = None,
    ) -> SyncResult[Any]:
        # The local write completes before the remote attempt starts
        local_error: Optional[LocalCacheError] = None
        try:
            self.local.put(spec.name, key, entity)
        except LocalCacheError as e:
            local_error = e
            logger.error("Local cache write failed", collection=spec.name, key=key, error=e.message)

        report = await self.monitor.current()
        if report.is_connected:
            try:
                await push()
            except _REMOTE_ERRORS as e:
                report = self.monitor.record_failure(e)
            else:
                self._clear_pending(spec, key)
                return SyncResult(
                    entity,
                    SyncOutcome.RECONCILED,
                    report,
                    message=local_error.message if local_error else None,
                )

        if local_error is not None:
            # Neither store has the write
            raise local_error

        self._mark_pending(spec, key, report, pending_fields)
        logger.warning(
            "Write kept local only",
            collection=spec.name,
            key=key,
            status=report.status.value,
            reason=report.message,
        )
        return SyncResult(entity, SyncOutcome.DEGRADED, report, message=report.message)

    async def _push_pending(self, spec: CollectionSpec, key: str) -> Optional[Entity]:
        """
        Push the cached value of a pending key and clear its marker.

        A partial marker pushes only the fields it names, so remote fields
        the client never wrote are left alone.
        """
        entity = self._local_entity(spec, key)
        if entity is None:
            self._clear_pending(spec, key)
            return None
        fields = _marker_fields(self._pending_marker(spec, key) or {})
        if fields is None:
            await self.gateway.upsert(spec, entity)
        else:
            await self._update_or_upsert(spec, entity, fields)
        self._clear_pending(spec, key)
        logger.info("Pending write reconciled", collection=spec.name, key=key, fields=fields)
        return entity

    async def _update_or_upsert(self, spec: CollectionSpec, entity: Entity, fields: List[str]) -> None:
        """Update the named fields; insert the whole entity when the remote has no row"""
        dumped = entity.model_dump()
        key = spec.key_of(entity)
        matched = await self.gateway.update_fields(spec, key, {name: dumped[name] for name in fields})
        if not matched:
            await self.gateway.upsert(spec, entity)

    def _populate(self, spec: CollectionSpec, key: str, entity: Entity) -> None:
        try:
            self.local.put(spec.name, key, entity)
        except LocalCacheError as e:
            logger.warning("Cache population failed", collection=spec.name, key=key, error=e.message)

    def _local_entity(self, spec: CollectionSpec, key: str) -> Optional[Entity]:
        try:
            snapshot = self.local.get(spec.name, key)
        except LocalCacheError as e:
            # Corrupt or unreadable snapshots count as never cached
            logger.warning("Local snapshot unusable", collection=spec.name, key=key, error=e.message)
            return None
        if snapshot is None:
            return None
        try:
            return spec.validate(snapshot)
        except ValidationError:
            logger.warning("Local snapshot failed validation", collection=spec.name, key=key)
            return None

    def _local_entities(self, spec: CollectionSpec, filters: Mapping[str, Any]) -> List[Entity]:
        try:
            snapshots = self.local.list_by_collection(
                spec.name, lambda snapshot: spec.matches(snapshot, filters)
            )
        except LocalCacheError as e:
            logger.warning("Local scan failed", collection=spec.name, error=e.message)
            return []

        entities = []
        for snapshot in snapshots:
            try:
                entities.append(spec.validate(snapshot))
            except ValidationError:
                logger.warning("Skipping invalid local snapshot", collection=spec.name)
        return spec.sort(entities)

    def _pending_marker(self, spec: CollectionSpec, key: str) -> Optional[Dict[str, Any]]:
        try:
            return self.local.get(PENDING_COLLECTION, _marker_key(spec, key))
        except DeserializationError:
            # Undecodable marker: the whole entity counts as pending
            return {}
        except LocalCacheError as e:
            logger.warning("Pending marker unreadable", collection=spec.name, key=key, error=e.message)
            return None

    def _is_pending(self, spec: CollectionSpec, key: str) -> bool:
        return self._pending_marker(spec, key) is not None

    def _markers(self, name: Optional[str]) -> List[Tuple[CollectionSpec, str]]:
        """
        Pending (collection, key) pairs, optionally for one collection.

        Malformed markers are logged and skipped.

        Raises:
            LocalCacheError: The marker collection cannot be scanned
        """
        markers = []
        for marker in self.local.list_by_collection(PENDING_COLLECTION):
            collection, key = marker.get("collection"), marker.get("key")
            fields = marker.get("fields")
            if (
                not isinstance(key, str)
                or not isinstance(collection, str)
                or collection not in COLLECTIONS
                or (fields is not None and _marker_fields(marker) is None)
            ):
                logger.warning("Skipping malformed pending marker", marker=marker)
                continue
            if name is None or collection == name:
                markers.append((COLLECTIONS[collection], key))
        return markers

    def _mark_pending(
        self,
        spec: CollectionSpec,
        key: str,
        report: HealthReport,
        fields: Optional[List[str]] = None,
    ) -> None:
        marker: Dict[str, Any] = {
            "collection": spec.name,
            "key": key,
            "reason": report.status.value,
            "marked_at": datetime.now(timezone.utc).isoformat(),
        }
        if fields is not None:
            marker["fields"] = fields
        try:
            self.local.put(PENDING_COLLECTION, _marker_key(spec, key), marker)
        except LocalCacheError as e:
            logger.error("Pending marker not stored", collection=spec.name, key=key, error=e.message)

    def _clear_pending(self, spec: CollectionSpec, key: str) -> None:
        try:
            self.local.delete(PENDING_COLLECTION, _marker_key(spec, key))
        except LocalCacheError as e:
            logger.warning("Pending marker not cleared", collection=spec.name, key=key, error=e.message)
