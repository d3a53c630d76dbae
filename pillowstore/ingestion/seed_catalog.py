"""
Catalog Seeding

Loads the template brands, products and reviews through the sync
coordinator, so seeding works (into the local cache) even when the remote
service is down and is reconciled later.

Usage:
    python -m pillowstore.ingestion.seed_catalog
"""

import asyncio
from decimal import Decimal
from typing import Any, Dict, List

import structlog

from pillowstore.config.logging import configure_logging
from pillowstore.context import StoreContext
from pillowstore.domain.collections import BRANDS, PRODUCTS, REVIEWS, CollectionSpec

logger = structlog.get_logger(__name__)

_IMAGE = "https://images.unsplash.com/{}?auto=format&fit=crop&w=600&q=80"

BRAND_TEMPLATES: List[Dict[str, Any]] = [
    {"id": "casper", "name": "Casper", "logo": _IMAGE.format("photo-1571566882372-1598d88abd90")},
    {"id": "purple", "name": "Purple", "logo": _IMAGE.format("photo-1555424221-250de2a343ad")},
    {"id": "tempur", "name": "Tempur-Pedic", "logo": None},
]

PRODUCT_TEMPLATES: List[Dict[str, Any]] = [
    {
        "id": "1",
        "name": "Cloud Comfort Elite",
        "brand_id": "casper",
        "price": Decimal("129.99"),
        "rating": 4.8,
        "review_count": 1250,
        "recommended": True,
        "firmness": "Medium",
        "image": _IMAGE.format("photo-1631006387899-06240b7f6414"),
        "features": ["Cooling technology", "Adjustable height", "Memory foam"],
        "description": "Adaptive memory foam core with a cooling gel-infused cover.",
        "stock": 45,
        "sales": 230,
        "sleep_positions": ["back", "side"],
    },
    {
        "id": "2",
        "name": "Purple Harmony",
        "brand_id": "purple",
        "price": Decimal("159.99"),
        "rating": 4.9,
        "review_count": 890,
        "recommended": True,
        "firmness": "Medium-firm",
        "image": _IMAGE.format("photo-1591389703635-e15a07609a0f"),
        "features": ["Grid technology", "Temperature neutral", "No pressure points"],
        "description": "Responsive grid design for support and breathability.",
        "stock": 12,
        "sales": 185,
        "sleep_positions": ["side", "back"],
    },
    {
        "id": "3",
        "name": "Slim Sleeper",
        "brand_id": "casper",
        "price": Decimal("69.99"),
        "rating": 4.4,
        "review_count": 310,
        "firmness": "Soft",
        "features": ["Low loft", "Down alternative"],
        "description": "Thin, soft pillow for stomach sleepers.",
        "stock": 80,
        "sales": 95,
        "sleep_positions": ["stomach"],
    },
    {
        "id": "4",
        "name": "Side Support Pro",
        "brand_id": "tempur",
        "price": Decimal("189.00"),
        "rating": 4.7,
        "review_count": 540,
        "firmness": "Firm",
        "features": ["High loft", "Dense memory foam", "Ergonomic contour"],
        "description": "High-loft contour pillow that fills the gap for side sleepers.",
        "stock": 30,
        "sales": 140,
        "sleep_positions": ["side"],
    },
]

REVIEW_TEMPLATES: List[Dict[str, Any]] = [
    {
        "id": "1",
        "product_id": "1",
        "author": "Emily R.",
        "rating": 5,
        "title": "Best sleep in years!",
        "comment": "Finally gave me the support I needed, and the cooling really works.",
        "helpful_count": 124,
        "verified": True,
    },
    {
        "id": "2",
        "product_id": "1",
        "author": "Michael T.",
        "rating": 4,
        "title": "Great support, slightly too firm",
        "comment": "My neck pain has improved, though it is a bit firm for me.",
        "helpful_count": 87,
        "verified": True,
    },
]


async def seed_collection(context: StoreContext, spec: CollectionSpec, records: List[Dict[str, Any]]) -> int:
    """Write template records; returns how many only reached the local cache"""
    degraded = 0
    for record in records:
        result = await context.coordinator.write(spec, record)
        degraded += int(result.degraded)
    logger.info(f"Seeded {len(records)} records into {spec.name}", degraded=degraded)
    return degraded


async def seed_catalog(context: StoreContext) -> Dict[str, int]:
    """Seed brands, products and reviews, in dependency order"""
    return {
        BRANDS.name: await seed_collection(context, BRANDS, BRAND_TEMPLATES),
        PRODUCTS.name: await seed_collection(context, PRODUCTS, PRODUCT_TEMPLATES),
        REVIEWS.name: await seed_collection(context, REVIEWS, REVIEW_TEMPLATES),
    }


async def main():
    configure_logging()
    logger.info("Starting catalog seeding...")
    context = await StoreContext.create()

    try:
        degraded = await seed_catalog(context)
        if any(degraded.values()):
            logger.warning("Some records are only in the local cache; run a reconcile later", **degraded)
        else:
            logger.info("Catalog seeding completed successfully!")
    finally:
        await context.close()


if __name__ == "__main__":
    asyncio.run(main())
