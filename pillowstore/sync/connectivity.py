"""
Connectivity Monitor

Decides whether the remote data service is reachable and whether its schema
exists. The verdict is cached and refreshed at most once per probe interval,
so every sync operation can consult it without flooding the service.
"""

import asyncio
import time
from typing import Optional

import structlog

from pillowstore.database.connection import RemoteClient
from pillowstore.database.errors import translate_remote_error
from pillowstore.database.models import TABLES
from pillowstore.domain.health import ConnectivityStatus, HealthReport
from pillowstore.exceptions import PillowStoreError, SchemaMissing

logger = structlog.get_logger(__name__)

__all__ = ["ConnectivityMonitor", "ConnectivityStatus", "HealthReport"]


class ConnectivityMonitor:
    """
    Cached connectivity verdict for the remote data service.

    The probe is a count-only query against the probe collection (profiles
    by default). A missing relation is reported as SCHEMA_MISSING, which is
    fixed by schema initialization rather than by retrying.

    Example:
        monitor = ConnectivityMonitor(client)
        report = await monitor.current()
        if report.is_connected:
            ...
    """

    def __init__(
        self,
        client: RemoteClient,
        probe_interval: Optional[float] = None,
        probe_collection: Optional[str] = None,
        clock=time.monotonic,
    ):
        self.client = client
        self.probe_interval = (
            probe_interval if probe_interval is not None else client.settings.probe_interval_seconds
        )
        self.probe_collection = probe_collection or client.settings.probe_collection
        self._clock = clock
        self._report: Optional[HealthReport] = None
        self._reported_at: Optional[float] = None
        self._invalidated = False
        self._lock = asyncio.Lock()

    @property
    def last_report(self) -> Optional[HealthReport]:
        """Last verdict without probing (None before the first probe or after invalidation)"""
        if self._invalidated:
            return None
        return self._report

    async def check_health(self) -> HealthReport:
        """
        Probe the remote service now and cache the verdict.

        Returns:
            HealthReport: CONNECTED, UNREACHABLE or SCHEMA_MISSING
        """
        table = TABLES[self.probe_collection]
        try:
            probe = await asyncio.wait_for(self.client.timed_count(table), self.client.timeout)
        except Exception as e:
            # Every failure mode of the probe is a verdict, never an error
            error = translate_remote_error(e, collection=self.probe_collection)
            report = self._report_for(error)
        else:
            report = HealthReport(
                status=ConnectivityStatus.CONNECTED,
                message="Connected to remote data service",
                latency_ms=probe["latency_ms"],
            )

        self._store(report)
        logger.info(
            "Connectivity probed",
            status=report.status.value,
            message=report.message,
            latency_ms=report.latency_ms,
        )
        return report

    async def current(self) -> HealthReport:
        """Cached verdict, re-probing when stale or invalidated"""
        if self._is_fresh():
            return self._report

        async with self._lock:
            # Another caller may have probed while we waited
            if self._is_fresh():
                return self._report
            return await self.check_health()

    def mark_online(self) -> None:
        """Host went online: drop the cached verdict so the next operation re-probes"""
        self._invalidated = True
        logger.info("Host online; connectivity verdict invalidated")

    def mark_offline(self) -> None:
        """Host went offline: record UNREACHABLE without probing"""
        self._store(HealthReport(
            status=ConnectivityStatus.UNREACHABLE,
            message="Client is offline",
        ))
        logger.info("Host offline; remote marked unreachable")

    def record_failure(self, error: PillowStoreError) -> HealthReport:
        """Downgrade the cached verdict after a mid-flight remote failure"""
        report = self._report_for(error)
        self._store(report)
        logger.warning(
            "Remote failure recorded",
            status=report.status.value,
            message=report.message,
            collection=error.collection,
        )
        return report

    def _report_for(self, error: PillowStoreError) -> HealthReport:
        if isinstance(error, SchemaMissing):
            return HealthReport(
                status=ConnectivityStatus.SCHEMA_MISSING,
                message="Database tables not set up. Please initialize the database.",
            )
        return HealthReport(
            status=ConnectivityStatus.UNREACHABLE,
            message=error.message or "Failed to reach remote data service",
        )

    def _store(self, report: HealthReport) -> None:
        self._report = report
        self._reported_at = self._clock()
        self._invalidated = False

    def _is_fresh(self) -> bool:
        if self._report is None or self._invalidated or self._reported_at is None:
            return False
        return (self._clock() - self._reported_at) < self.probe_interval
