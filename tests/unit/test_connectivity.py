"""
Unit Tests - Connectivity Monitor
"""
import asyncio

import pytest

from pillowstore.exceptions import RemoteUnavailable, SchemaMissing
from pillowstore.sync.connectivity import ConnectivityMonitor, ConnectivityStatus


@pytest.fixture
def probe_calls(remote_client, monkeypatch):
    """Count health probes reaching the remote client"""
    calls = []
    original = remote_client.timed_count

    async def counting(table):
        calls.append(table.name)
        return await original(table)

    monkeypatch.setattr(remote_client, "timed_count", counting)
    return calls


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestCheckHealth:
    """Tests for the probe verdicts"""

    async def test_connected(self, remote_client):
        report = await ConnectivityMonitor(remote_client).check_health()

        assert report.status is ConnectivityStatus.CONNECTED
        assert report.is_connected
        assert report.latency_ms is not None

    async def test_schema_missing(self, bare_client):
        report = await ConnectivityMonitor(bare_client).check_health()

        assert report.status is ConnectivityStatus.SCHEMA_MISSING
        assert report.message == "Database tables not set up. Please initialize the database."

    async def test_unreachable_on_transport_error(self, remote_client, monkeypatch):
        async def refused(table):
            raise OSError("Connection refused")

        monkeypatch.setattr(remote_client, "timed_count", refused)

        report = await ConnectivityMonitor(remote_client).check_health()

        assert report.status is ConnectivityStatus.UNREACHABLE
        assert "Connection refused" in report.message

    async def test_unreachable_on_timeout(self, remote_client, monkeypatch):
        async def hang(table):
            await asyncio.sleep(5)

        monkeypatch.setattr(remote_client, "timed_count", hang)
        monkeypatch.setattr(remote_client.settings, "timeout_seconds", 0.05)

        report = await ConnectivityMonitor(remote_client).check_health()

        assert report.status is ConnectivityStatus.UNREACHABLE
        assert report.message == "Remote call timed out"


class TestVerdictCache:
    """Tests for verdict caching and host transitions"""

    async def test_verdict_reused_within_interval(self, remote_client, probe_calls):
        clock = FakeClock()
        monitor = ConnectivityMonitor(remote_client, probe_interval=30, clock=clock)

        await monitor.current()
        clock.now += 10
        await monitor.current()

        assert probe_calls == ["profiles"]

    async def test_stale_verdict_reprobed(self, remote_client, probe_calls):
        clock = FakeClock()
        monitor = ConnectivityMonitor(remote_client, probe_interval=30, clock=clock)

        await monitor.current()
        clock.now += 31
        await monitor.current()

        assert len(probe_calls) == 2

    async def test_concurrent_callers_share_one_probe(self, remote_client, probe_calls):
        monitor = ConnectivityMonitor(remote_client, probe_interval=30)

        reports = await asyncio.gather(*[monitor.current() for _ in range(5)])

        assert len(probe_calls) == 1
        assert all(r.is_connected for r in reports)

    async def test_mark_offline_skips_probe(self, remote_client, probe_calls):
        monitor = ConnectivityMonitor(remote_client)
        monitor.mark_offline()

        report = await monitor.current()

        assert report.status is ConnectivityStatus.UNREACHABLE
        assert report.message == "Client is offline"
        assert probe_calls == []

    async def test_mark_online_forces_reprobe(self, remote_client, probe_calls):
        monitor = ConnectivityMonitor(remote_client)
        monitor.mark_offline()
        monitor.mark_online()

        assert monitor.last_report is None
        report = await monitor.current()

        assert report.is_connected
        assert len(probe_calls) == 1

    async def test_record_failure_downgrades_verdict(self, remote_client):
        monitor = ConnectivityMonitor(remote_client)
        await monitor.current()

        report = monitor.record_failure(SchemaMissing("relation missing", collection="products"))

        assert report.status is ConnectivityStatus.SCHEMA_MISSING
        assert monitor.last_report is report

        report = monitor.record_failure(RemoteUnavailable("server error"))
        assert report.status is ConnectivityStatus.UNREACHABLE
        assert report.message == "server error"
