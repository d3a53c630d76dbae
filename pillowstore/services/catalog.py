"""
Catalog Service

Products, brands and reviews on top of the sync coordinator.
"""

from typing import Any, Dict, List, Mapping, Optional, Union

import structlog

from pillowstore.domain.collections import BRANDS, PRODUCTS, REVIEWS
from pillowstore.domain.entities import (
    Brand,
    Product,
    ProductStatus,
    Review,
    SleepPosition,
    new_id,
)
from pillowstore.domain.scoring import PillowProfile, recommend_pillow_profile
from pillowstore.exceptions import ValidationError
from pillowstore.sync.coordinator import SyncCoordinator, SyncResult

logger = structlog.get_logger(__name__)


class CatalogService:
    """
    Catalog reads and writes.

    Example:
        catalog = CatalogService(coordinator)
        result = await catalog.list_products(brand_id="casper")
    """

    def __init__(self, coordinator: SyncCoordinator):
        self.coordinator = coordinator

    # -------------------------------------------------------------------------
    # Products
    # -------------------------------------------------------------------------

    async def list_products(
        self,
        brand_id: Optional[str] = None,
        status: Optional[Union[ProductStatus, str]] = None,
    ) -> SyncResult[List[Product]]:
        filters: Dict[str, Any] = {}
        if brand_id is not None:
            filters["brand_id"] = brand_id
        if status is not None:
            filters["status"] = status
        return await self.coordinator.read_all(PRODUCTS, filters)

    async def get_product(self, product_id: str) -> SyncResult[Optional[Product]]:
        return await self.coordinator.read(PRODUCTS, product_id)

    async def save_product(self, product: Union[Product, Mapping[str, Any]]) -> SyncResult[Product]:
        return await self.coordinator.write(PRODUCTS, product)

    async def related_products(self, product_id: str, limit: int = 3) -> SyncResult[List[Product]]:
        """Other products, same brand first"""
        current = await self.coordinator.read(PRODUCTS, product_id)
        everything = await self.coordinator.read_all(PRODUCTS)

        others = [p for p in everything.value if p.id != product_id]
        if current.value is not None:
            brand_id = current.value.brand_id
            others.sort(key=lambda p: p.brand_id != brand_id)
        return SyncResult.combine(others[:limit], current, everything)

    async def recommended_products(
        self,
        neck_length: float,
        neck_width: float,
        sleep_position: Union[SleepPosition, str],
        limit: int = 4,
    ) -> SyncResult[Dict[str, Any]]:
        """
        Suggest a pillow profile and the active products that fit it.

        A product fits when its firmness matches the suggestion or it lists
        the sleeper's position. Curated picks and better ratings rank first.
        """
        try:
            position = SleepPosition(sleep_position).value
        except ValueError as e:
            raise ValidationError(f"Unknown sleep position '{sleep_position}'") from e
        profile = recommend_pillow_profile(neck_length, neck_width, position)
        active = await self.list_products(status=ProductStatus.ACTIVE)

        def fits(product: Product) -> bool:
            return product.firmness == profile.firmness.value or position in product.sleep_positions

        matches = sorted(
            (p for p in active.value if fits(p)),
            key=lambda p: (not p.firmness == profile.firmness.value, not p.recommended, -p.rating),
        )
        logger.debug(
            "Recommended products",
            loft=profile.loft,
            firmness=profile.firmness.value,
            matches=len(matches),
        )
        return SyncResult.combine(
            {"profile": _profile_dict(profile), "products": matches[:limit]},
            active,
        )

    # -------------------------------------------------------------------------
    # Brands
    # -------------------------------------------------------------------------

    async def list_brands(self) -> SyncResult[List[Brand]]:
        """Brands with product counts derived from the catalog"""
        brands = await self.coordinator.read_all(BRANDS)
        products = await self.coordinator.read_all(PRODUCTS)

        counts: Dict[str, int] = {}
        for product in products.value:
            counts[product.brand_id] = counts.get(product.brand_id, 0) + 1
        derived = [
            brand.model_copy(update={"product_count": counts.get(brand.id, 0)})
            for brand in brands.value
        ]
        return SyncResult.combine(derived, brands, products)

    async def get_brand(self, brand_id: str) -> SyncResult[Optional[Brand]]:
        return await self.coordinator.read(BRANDS, brand_id)

    async def save_brand(self, brand: Union[Brand, Mapping[str, Any]]) -> SyncResult[Brand]:
        return await self.coordinator.write(BRANDS, brand)

    # -------------------------------------------------------------------------
    # Reviews
    # -------------------------------------------------------------------------

    async def list_reviews(self, product_id: str) -> SyncResult[List[Review]]:
        return await self.coordinator.read_all(REVIEWS, {"product_id": product_id})

    async def add_review(self, review: Union[Review, Mapping[str, Any]]) -> SyncResult[Review]:
        """
        Add a review to an existing product.

        Raises:
            ValidationError: The review is malformed or its product is unknown
        """
        payload = review.model_dump() if isinstance(review, Review) else dict(review)
        payload.setdefault("id", new_id())
        validated = REVIEWS.validate(payload)

        product = await self.coordinator.read(PRODUCTS, validated.product_id)
        if product.value is None:
            raise ValidationError(
                f"Product '{validated.product_id}' does not exist",
                collection=REVIEWS.name,
                key=validated.id,
            )
        saved = await self.coordinator.write(REVIEWS, validated)
        return SyncResult.combine(saved.value, product, saved)


def _profile_dict(profile: PillowProfile) -> Dict[str, str]:
    return {
        "loft": profile.loft,
        "firmness": profile.firmness.value,
        "height": profile.height,
        "material": profile.material,
    }
