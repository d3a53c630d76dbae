"""
Unit Tests - Sync Coordinator
"""
from unittest.mock import AsyncMock

import pytest

from pillowstore.database.gateway import RemoteDataGateway
from pillowstore.domain.collections import MEASUREMENTS
from pillowstore.domain.entities import Brand, Product
from pillowstore.exceptions import RemoteUnavailable, StorageFull, ValidationError
from pillowstore.storage.local_cache import SQLiteCacheStore, cache_entries
from pillowstore.sync.connectivity import ConnectivityMonitor, ConnectivityStatus
from pillowstore.sync.coordinator import PENDING_COLLECTION, SyncCoordinator, SyncOutcome


class TestRead:
    """Tests for remote-first reads with cache fallback"""

    async def test_connected_read_populates_cache(self, coordinator, gateway, local_store, sample_brand):
        await gateway.upsert("brands", sample_brand)

        result = await coordinator.read("brands", "casper")

        assert result.outcome is SyncOutcome.RECONCILED
        assert result.verdict.status is ConnectivityStatus.CONNECTED
        assert isinstance(result.value, Brand)
        assert local_store.get("brands", "casper")["name"] == "Casper"

    async def test_offline_read_serves_cache(self, coordinator, monitor, local_store, sample_brand):
        local_store.put("brands", "casper", sample_brand)
        monitor.mark_offline()

        result = await coordinator.read("brands", "casper")

        assert result.degraded
        assert result.value.name == "Casper"
        assert result.message == "Client is offline"

    async def test_offline_read_of_uncached_key(self, coordinator, monitor):
        monitor.mark_offline()

        result = await coordinator.read("brands", "casper")

        assert result.degraded
        assert result.value is None

    async def test_mid_flight_failure_falls_back(self, coordinator, gateway, monitor, local_store, sample_brand, monkeypatch):
        local_store.put("brands", "casper", sample_brand)
        monkeypatch.setattr(
            gateway,
            "fetch_one",
            AsyncMock(side_effect=RemoteUnavailable("server error", collection="brands")),
        )

        result = await coordinator.read("brands", "casper")

        assert result.degraded
        assert result.value.id == "casper"
        assert monitor.last_report.status is ConnectivityStatus.UNREACHABLE

    async def test_schema_missing_read_never_raises(self, bare_client, local_store, sample_brand):
        monitor = ConnectivityMonitor(bare_client)
        coordinator = SyncCoordinator(monitor, RemoteDataGateway(bare_client, monitor), local_store)
        local_store.put("brands", "casper", sample_brand)

        result = await coordinator.read("brands", "casper")

        assert result.degraded
        assert result.verdict.status is ConnectivityStatus.SCHEMA_MISSING
        assert result.value.name == "Casper"

    async def test_corrupt_snapshot_counts_as_missing(self, coordinator, monitor, local_store):
        local_store.put("brands", "casper", {"id": "casper"})  # no name, fails validation
        monitor.mark_offline()

        result = await coordinator.read("brands", "casper")

        assert result.value is None

    async def test_read_all_offline_applies_filters_and_order(self, coordinator, monitor):
        for measurement_id, user_id, created_at in [
            ("m1", "u1", "2024-01-01T00:00:00+00:00"),
            ("m2", "u1", "2024-03-01T00:00:00+00:00"),
            ("m3", "u2", "2024-02-01T00:00:00+00:00"),
        ]:
            coordinator.local.put("measurements", measurement_id, {
                "id": measurement_id,
                "user_id": user_id,
                "neck_length": 5,
                "neck_width": 7,
                "sleep_position": "back",
                "created_at": created_at,
            })
        monitor.mark_offline()

        result = await coordinator.read_all(MEASUREMENTS, {"user_id": "u1"})

        assert result.degraded
        assert [m.id for m in result.value] == ["m2", "m1"]

    async def test_read_all_rejects_unknown_filter(self, coordinator):
        with pytest.raises(ValidationError):
            await coordinator.read_all("reviews", {"rating": 5})


class TestWrite:
    """Tests for local-first writes"""

    async def test_connected_write(self, coordinator, gateway, local_store, sample_product):
        result = await coordinator.write("products", sample_product)

        assert result.outcome is SyncOutcome.RECONCILED
        assert isinstance(result.value, Product)
        assert local_store.get("products", "1")["name"] == "Cloud Comfort Elite"
        assert (await gateway.fetch_one("products", "1")).name == "Cloud Comfort Elite"
        assert coordinator.pending_keys() == []

    async def test_offline_write_is_degraded_and_pending(self, coordinator, gateway, monitor, local_store, sample_brand):
        monitor.mark_offline()

        result = await coordinator.write("brands", sample_brand)

        assert result.degraded
        assert local_store.get("brands", "casper")["name"] == "Casper"
        assert coordinator.pending_keys("brands") == ["casper"]

        monitor.mark_online()
        assert await gateway.fetch_one("brands", "casper") is None

    async def test_replayed_write_is_idempotent(self, coordinator, gateway, local_store, sample_product):
        await coordinator.write("products", sample_product)
        await coordinator.write("products", sample_product)

        assert len(await gateway.fetch_all("products")) == 1
        assert len(local_store.list_by_collection("products")) == 1

    async def test_invalid_write_touches_nothing(self, coordinator, gateway, local_store, sample_product):
        with pytest.raises(ValidationError):
            await coordinator.write("products", {**sample_product, "stock": -1})

        assert local_store.get("products", "1") is None
        assert await gateway.fetch_one("products", "1") is None

    async def test_storage_full_still_writes_remote(self, monitor, gateway, sample_brand):
        coordinator = SyncCoordinator(monitor, gateway, SQLiteCacheStore(":memory:", quota_bytes=10))

        result = await coordinator.write("brands", sample_brand)

        assert result.outcome is SyncOutcome.RECONCILED
        assert "quota" in result.message
        assert (await gateway.fetch_one("brands", "casper")).name == "Casper"

    async def test_storage_full_and_offline_raises(self, monitor, gateway, sample_brand):
        coordinator = SyncCoordinator(monitor, gateway, SQLiteCacheStore(":memory:", quota_bytes=10))
        monitor.mark_offline()

        with pytest.raises(StorageFull):
            await coordinator.write("brands", sample_brand)


class TestReconciliation:
    """Tests for pending markers and explicit reconcile passes"""

    async def test_reconcile_after_degraded_write(self, coordinator, gateway, monitor, sample_brand):
        monitor.mark_offline()
        await coordinator.write("brands", sample_brand)
        monitor.mark_online()

        report = await coordinator.reconcile()

        assert report.pushed == ["brands:casper"]
        assert report.complete
        assert (await gateway.fetch_one("brands", "casper")).name == "Casper"
        assert coordinator.pending_keys() == []

    async def test_reconcile_while_offline_skips(self, coordinator, monitor, sample_brand):
        monitor.mark_offline()
        await coordinator.write("brands", sample_brand)

        report = await coordinator.reconcile()

        assert report.skipped == ["brands:casper"]
        assert not report.complete
        assert coordinator.pending_keys("brands") == ["casper"]

    async def test_reconcile_keeps_marker_on_failure(self, coordinator, gateway, monitor, sample_brand, monkeypatch):
        monitor.mark_offline()
        await coordinator.write("brands", sample_brand)
        monitor.mark_online()
        monkeypatch.setattr(gateway, "upsert", AsyncMock(side_effect=RemoteUnavailable("server error")))

        report = await coordinator.reconcile()

        assert report.failed == ["brands:casper"]
        assert coordinator.pending_keys("brands") == ["casper"]

    async def test_reconcile_by_collection(self, coordinator, monitor, sample_brand, sample_product):
        monitor.mark_offline()
        await coordinator.write("brands", sample_brand)
        await coordinator.write("products", sample_product)
        monitor.mark_online()

        report = await coordinator.reconcile("products")

        assert report.pushed == ["products:1"]
        assert coordinator.pending_keys() == ["brands:casper"]

    async def test_connected_read_pushes_pending_value(self, coordinator, gateway, monitor, sample_product):
        await coordinator.write("products", sample_product)
        monitor.mark_offline()
        await coordinator.write("products", {**sample_product, "stock": 3})
        monitor.mark_online()

        result = await coordinator.read("products", "1")

        assert result.outcome is SyncOutcome.RECONCILED
        assert result.value.stock == 3
        assert (await gateway.fetch_one("products", "1")).stock == 3
        assert coordinator.pending_keys() == []

    async def test_connected_read_all_pushes_pending(self, coordinator, gateway, monitor, sample_brand):
        monitor.mark_offline()
        await coordinator.write("brands", sample_brand)
        monitor.mark_online()

        result = await coordinator.read_all("brands")

        assert [b.id for b in result.value] == ["casper"]
        assert coordinator.pending_keys() == []


class TestMeasurementPath:
    """Tests for scored measurement writes"""

    async def test_save_measurement_connected(self, coordinator, gateway, local_store):
        result = await coordinator.save_measurement("u1", 5, 7, "back", measurement_id="m1")

        assert result.outcome is SyncOutcome.RECONCILED
        assert (result.value.sleep_score, result.value.comfort_score, result.value.posture_score) == (98, 85, 97)

        stored = await gateway.fetch_one("measurements", "m1")
        assert stored.sleep_score == 98
        profile = await gateway.fetch_one("profiles", "u1")
        assert (profile.sleep_score, profile.comfort_score, profile.posture_score) == (98, 85, 97)
        assert local_store.get("profiles", "u1")["posture_score"] == 97

    async def test_save_measurement_offline_then_reconcile(self, coordinator, gateway, monitor, local_store):
        monitor.mark_offline()

        result = await coordinator.save_measurement("u1", 3, 9, "stomach", measurement_id="m1")

        assert result.degraded
        assert local_store.get("profiles", "u1")["sleep_score"] == 54
        assert coordinator.pending_keys() == ["measurements:m1", "profiles:u1"]

        monitor.mark_online()
        report = await coordinator.reconcile()

        assert report.complete
        profile = await gateway.fetch_one("profiles", "u1")
        assert (profile.sleep_score, profile.comfort_score, profile.posture_score) == (54, 60, 57)

    async def test_invalid_measurement_stores_nothing(self, coordinator, local_store):
        with pytest.raises(ValidationError):
            await coordinator.save_measurement("u1", 50, 7, "back")

        assert local_store.list_by_collection("measurements") == []
        assert local_store.get("profiles", "u1") is None

    async def test_scores_only_touch_score_fields(self, coordinator, gateway):
        await gateway.upsert("profiles", {"id": "u1", "name": "Ada", "phone": "555"})

        await coordinator.save_measurement("u1", 5, 7, "side")

        profile = await gateway.fetch_one("profiles", "u1")
        assert profile.name == "Ada"
        assert profile.phone == "555"
        assert profile.comfort_score == 90


class TestProfileUpdate:
    async def test_merge_with_cached_profile(self, coordinator, gateway):
        await gateway.upsert("profiles", {"id": "u1", "name": "Ada"})
        await coordinator.read("profiles", "u1")

        result = await coordinator.update_profile("u1", {"phone": "555"})

        assert result.value.name == "Ada"
        assert result.value.phone == "555"
        assert result.value.updated_at is not None
        remote = await gateway.fetch_one("profiles", "u1")
        assert (remote.name, remote.phone) == ("Ada", "555")

    async def test_id_cannot_change(self, coordinator):
        with pytest.raises(ValidationError):
            await coordinator.update_profile("u1", {"id": "u2"})

    async def test_invalid_field_value(self, coordinator):
        with pytest.raises(ValidationError):
            await coordinator.update_profile("u1", {"sleep_score": 150})

    async def test_unknown_field_rejected(self, coordinator, local_store):
        with pytest.raises(ValidationError):
            await coordinator.update_profile("u1", {"favourite_colour": "blue"})

        assert local_store.get("profiles", "u1") is None


class TestOfflineProfileScores:
    """Offline score write-backs onto profiles the client never cached"""

    @pytest.fixture
    async def remote_profile(self, gateway):
        await gateway.upsert("profiles", {"id": "u1", "name": "Ada", "email": "ada@example.com", "phone": "555"})

    async def test_reconcile_keeps_remote_fields(self, coordinator, gateway, monitor, remote_profile):
        monitor.mark_offline()
        await coordinator.save_measurement("u1", 5, 7, "back")
        monitor.mark_online()

        report = await coordinator.reconcile()

        assert report.complete
        profile = await gateway.fetch_one("profiles", "u1")
        assert (profile.name, profile.email, profile.phone) == ("Ada", "ada@example.com", "555")
        assert (profile.sleep_score, profile.comfort_score, profile.posture_score) == (98, 85, 97)

    async def test_connected_read_returns_merged_remote(self, coordinator, gateway, monitor, local_store, remote_profile):
        monitor.mark_offline()
        await coordinator.save_measurement("u1", 5, 7, "back")
        monitor.mark_online()

        result = await coordinator.read("profiles", "u1")

        assert result.outcome is SyncOutcome.RECONCILED
        assert (result.value.name, result.value.sleep_score) == ("Ada", 98)
        assert local_store.get("profiles", "u1")["email"] == "ada@example.com"
        assert (await gateway.fetch_one("profiles", "u1")).name == "Ada"

    async def test_offline_updates_accumulate_fields(self, coordinator, gateway, monitor, local_store, remote_profile):
        monitor.mark_offline()
        await coordinator.update_profile("u1", {"name": "Bo"})
        await coordinator.save_measurement("u1", 3, 9, "stomach")

        marker = local_store.get(PENDING_COLLECTION, "profiles:u1")
        assert {"name", "sleep_score", "updated_at"} <= set(marker["fields"])

        monitor.mark_online()
        await coordinator.reconcile()

        profile = await gateway.fetch_one("profiles", "u1")
        assert (profile.name, profile.phone, profile.sleep_score) == ("Bo", "555", 54)

    async def test_full_profile_write_stays_full(self, coordinator, gateway, monitor, local_store, remote_profile):
        monitor.mark_offline()
        await coordinator.write("profiles", {"id": "u1", "name": "Cy"})
        await coordinator.update_profile("u1", {"phone": "777"})

        assert "fields" not in local_store.get(PENDING_COLLECTION, "profiles:u1")

        monitor.mark_online()
        await coordinator.reconcile()

        profile = await gateway.fetch_one("profiles", "u1")
        assert (profile.name, profile.email, profile.phone) == ("Cy", None, "777")


class TestBrokenLocalCache:
    """The fallback path with an unusable local cache"""

    @pytest.fixture
    def broken_cache(self, local_store):
        cache_entries.drop(local_store._engine)
        return local_store

    async def test_offline_read_is_degraded_none(self, coordinator, monitor, broken_cache):
        monitor.mark_offline()

        result = await coordinator.read("brands", "casper")
        listing = await coordinator.read_all("brands")

        assert result.degraded
        assert result.value is None
        assert listing.degraded
        assert listing.value == []

    async def test_connected_read_still_served(self, coordinator, gateway, broken_cache, sample_brand):
        await gateway.upsert("brands", sample_brand)

        result = await coordinator.read("brands", "casper")

        assert result.outcome is SyncOutcome.RECONCILED
        assert result.value.name == "Casper"

    async def test_pending_keys_empty(self, coordinator, broken_cache):
        assert coordinator.pending_keys() == []

    async def test_reconcile_reports_error(self, coordinator, broken_cache):
        report = await coordinator.reconcile()

        assert report.error is not None
        assert not report.complete
        assert report.pushed == []


class TestMalformedMarkers:
    async def test_malformed_markers_are_skipped(self, coordinator, gateway, monitor, local_store, sample_brand):
        monitor.mark_offline()
        await coordinator.write("brands", sample_brand)
        local_store.put(PENDING_COLLECTION, "junk", {"reason": "unreachable"})
        local_store.put(PENDING_COLLECTION, "ghosts:1", {"collection": "ghosts", "key": "1"})
        local_store.put(PENDING_COLLECTION, "profiles:u9", {"collection": "profiles", "key": "u9", "fields": "name"})
        monitor.mark_online()

        assert coordinator.pending_keys() == ["brands:casper"]

        report = await coordinator.reconcile()

        assert report.pushed == ["brands:casper"]
        assert report.complete
        assert (await gateway.fetch_one("brands", "casper")).name == "Casper"
