"""
Unit Tests - Services and Catalog Seeding
"""
import pytest

from pillowstore.domain.entities import RoutineTask
from pillowstore.exceptions import ValidationError
from pillowstore.ingestion.seed_catalog import (
    BRAND_TEMPLATES,
    PRODUCT_TEMPLATES,
    REVIEW_TEMPLATES,
    seed_catalog,
)


@pytest.fixture
async def seeded(context):
    await seed_catalog(context)
    return context


class TestSeeding:
    async def test_seed_reaches_remote(self, context):
        degraded = await seed_catalog(context)

        assert degraded == {"brands": 0, "products": 0, "reviews": 0}
        assert len(await context.gateway.fetch_all("products")) == len(PRODUCT_TEMPLATES)

    async def test_seed_offline_is_reconcilable(self, context):
        context.monitor.mark_offline()

        degraded = await seed_catalog(context)

        assert degraded["products"] == len(PRODUCT_TEMPLATES)
        context.monitor.mark_online()
        report = await context.coordinator.reconcile()
        assert len(report.pushed) == len(BRAND_TEMPLATES) + len(PRODUCT_TEMPLATES) + len(REVIEW_TEMPLATES)


class TestCatalogService:
    async def test_brand_counts_are_derived(self, seeded):
        result = await seeded.catalog.list_brands()

        counts = {b.id: b.product_count for b in result.value}
        assert counts == {"casper": 2, "purple": 1, "tempur": 1}

    async def test_related_products_prefer_same_brand(self, seeded):
        result = await seeded.catalog.related_products("1", limit=2)

        ids = [p.id for p in result.value]
        assert "1" not in ids
        assert ids[0] == "3"
        assert len(ids) == 2

    async def test_list_products_by_brand(self, seeded):
        result = await seeded.catalog.list_products(brand_id="casper")

        assert sorted(p.id for p in result.value) == ["1", "3"]

    async def test_recommended_products(self, seeded):
        result = await seeded.catalog.recommended_products(5, 7, "side")

        assert result.value["profile"]["firmness"] == "Firm"
        ids = [p.id for p in result.value["products"]]
        # Firmness match first, then side-sleeper products
        assert ids[0] == "4"
        assert set(ids[1:]) == {"1", "2"}

    async def test_recommended_rejects_unknown_position(self, seeded):
        with pytest.raises(ValidationError):
            await seeded.catalog.recommended_products(5, 7, "hammock")

    async def test_add_review(self, seeded):
        result = await seeded.catalog.add_review({"product_id": "2", "rating": 5, "title": "Cool"})

        assert result.value.id
        reviews = await seeded.catalog.list_reviews("2")
        assert [r.title for r in reviews.value] == ["Cool"]

    async def test_review_for_unknown_product(self, seeded):
        with pytest.raises(ValidationError, match="does not exist"):
            await seeded.catalog.add_review({"product_id": "999", "rating": 4})

    async def test_offline_catalog_served_from_cache(self, seeded):
        seeded.monitor.mark_offline()

        result = await seeded.catalog.list_products()

        assert result.degraded
        assert len(result.value) == len(PRODUCT_TEMPLATES)


class TestMeasurementService:
    async def test_history_and_latest(self, context):
        first = await context.measurements.save("u1", 5, 7, "back")
        second = await context.measurements.save("u1", 3, 9, "stomach")

        history = await context.measurements.history("u1")
        latest = await context.measurements.latest("u1")

        assert [m.id for m in history.value] == [second.value.id, first.value.id]
        assert latest.value.sleep_score == 54

    async def test_latest_without_measurements(self, context):
        assert (await context.measurements.latest("nobody")).value is None

    async def test_preview_stores_nothing(self, context):
        assert context.measurements.preview(5, 7, "back") == 95
        assert context.local.list_by_collection("measurements") == []


class TestProfileAndChat:
    async def test_routine_tasks_replaced(self, context):
        tasks = [RoutineTask(id="t1", title="Stretch"), {"id": "t2", "title": "Read", "completed": True}]

        result = await context.profiles.update_routine_tasks("u1", tasks)

        assert [t.id for t in result.value.routine_tasks] == ["t1", "t2"]
        remote = await context.gateway.fetch_one("profiles", "u1")
        assert remote.routine_tasks[1].completed is True

    async def test_chat_history_roundtrip(self, context):
        messages = [{"role": "user", "text": "Hi"}]

        await context.chat_history.save("u1", messages)
        result = await context.chat_history.load("u1")

        assert result.value.messages == messages
