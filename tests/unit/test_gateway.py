"""
Unit Tests - Remote Data Gateway
"""
import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from pillowstore.database.gateway import RemoteDataGateway
from pillowstore.database.models import TABLES
from pillowstore.domain.collections import MEASUREMENTS
from pillowstore.exceptions import RemoteUnavailable, SchemaMissing, ValidationError


def _measurement(id_: str, user_id: str, days_ago: int) -> dict:
    return {
        "id": id_,
        "user_id": user_id,
        "neck_length": 5,
        "neck_width": 7,
        "sleep_position": "back",
        "created_at": datetime.now(timezone.utc) - timedelta(days=days_ago),
    }


class TestCrud:
    """Tests for CRUD against an in-memory database"""

    async def test_upsert_and_fetch_one(self, gateway, sample_product):
        await gateway.upsert("products", sample_product)

        product = await gateway.fetch_one("products", "1")

        assert product.name == "Cloud Comfort Elite"
        assert product.price == Decimal("129.99")
        assert product.sleep_positions == ["back", "side"]

    async def test_fetch_one_missing(self, gateway):
        assert await gateway.fetch_one("products", "404") is None

    async def test_upsert_is_idempotent(self, gateway, sample_product):
        await gateway.upsert("products", sample_product)
        await gateway.upsert("products", sample_product)

        products = await gateway.fetch_all("products")

        assert len(products) == 1

    async def test_upsert_last_write_wins(self, gateway, sample_product):
        await gateway.upsert("products", sample_product)
        await gateway.upsert("products", {**sample_product, "stock": 3})

        assert (await gateway.fetch_one("products", "1")).stock == 3

    async def test_invalid_entity_rejected_before_remote(self, gateway, sample_product):
        with pytest.raises(ValidationError):
            await gateway.upsert("products", {**sample_product, "price": -5})

        assert await gateway.fetch_all("products") == []

    async def test_fetch_all_with_filter(self, gateway, sample_product):
        await gateway.upsert("products", sample_product)
        await gateway.upsert("products", {**sample_product, "id": "2", "brand_id": "purple"})

        products = await gateway.fetch_all("products", {"brand_id": "purple"})

        assert [p.id for p in products] == ["2"]

    async def test_unknown_filter_rejected(self, gateway):
        with pytest.raises(ValidationError):
            await gateway.fetch_all("products", {"price": 10})

    async def test_measurements_newest_first(self, gateway):
        await gateway.upsert(MEASUREMENTS, _measurement("old", "u1", 3))
        await gateway.upsert(MEASUREMENTS, _measurement("new", "u1", 0))
        await gateway.upsert(MEASUREMENTS, _measurement("other", "u2", 1))

        items = await gateway.fetch_all(MEASUREMENTS, {"user_id": "u1"})

        assert [m.id for m in items] == ["new", "old"]

    async def test_update_fields(self, gateway):
        await gateway.upsert("profiles", {"id": "u1", "name": "Ada"})

        matched = await gateway.update_fields("profiles", "u1", {"sleep_score": 88})
        missing = await gateway.update_fields("profiles", "u2", {"sleep_score": 88})

        profile = await gateway.fetch_one("profiles", "u1")
        assert matched is True
        assert missing is False
        assert profile.sleep_score == 88
        assert profile.name == "Ada"

    async def test_update_fields_rejects_unknown_and_key(self, gateway):
        with pytest.raises(ValidationError):
            await gateway.update_fields("profiles", "u1", {"favourite_colour": "blue"})
        with pytest.raises(ValidationError):
            await gateway.update_fields("profiles", "u1", {"id": "u2"})

    async def test_remove(self, gateway, sample_brand):
        await gateway.upsert("brands", sample_brand)
        await gateway.remove("brands", "casper")

        assert await gateway.fetch_one("brands", "casper") is None

    async def test_chat_history_roundtrip(self, gateway):
        messages = [{"role": "user", "text": "Which pillow?"}, {"role": "bot", "text": "Try medium."}]
        await gateway.upsert("chat_history", {"user_id": "u1", "messages": messages})

        history = await gateway.fetch_one("chat_history", "u1")

        assert history.messages == messages


class TestFailures:
    """Tests for error normalization and fail-fast"""

    async def test_missing_table_is_schema_missing(self, bare_client):
        gateway = RemoteDataGateway(bare_client)

        with pytest.raises(SchemaMissing) as exc_info:
            await gateway.fetch_all("products")

        assert not isinstance(exc_info.value, RemoteUnavailable)
        assert exc_info.value.collection == "products"

    async def test_fail_fast_when_offline(self, gateway, monitor, remote_client, monkeypatch):
        begin = MagicMock()
        monkeypatch.setattr(remote_client, "begin", begin)
        monitor.mark_offline()

        with pytest.raises(RemoteUnavailable):
            await gateway.fetch_one("products", "1")

        begin.assert_not_called()

    async def test_fail_fast_on_schema_missing_verdict(self, bare_client):
        from pillowstore.sync.connectivity import ConnectivityMonitor

        monitor = ConnectivityMonitor(bare_client)
        await monitor.current()
        gateway = RemoteDataGateway(bare_client, monitor)

        with pytest.raises(SchemaMissing):
            await gateway.upsert("brands", {"id": "casper", "name": "Casper"})

    async def test_timeout_is_remote_unavailable(self, gateway, remote_client, monkeypatch):
        @asynccontextmanager
        async def slow_begin():
            await asyncio.sleep(5)
            yield None

        monkeypatch.setattr(remote_client, "begin", slow_begin)
        gateway.timeout = 0.05

        with pytest.raises(RemoteUnavailable, match="timed out"):
            await gateway.fetch_all("brands")

    async def test_malformed_row_is_remote_unavailable(self, gateway, remote_client):
        async with remote_client.begin() as conn:
            await conn.execute(TABLES["reviews"].insert().values(
                id="r1",
                product_id="1",
                rating=9,
                created_at=datetime.now(timezone.utc),
            ))

        with pytest.raises(RemoteUnavailable):
            await gateway.fetch_one("reviews", "r1")
