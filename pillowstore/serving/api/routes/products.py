"""
Products API Endpoints

Product catalog, related products, reviews and measurement-based
recommendations.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Response
from pydantic import BaseModel

from pillowstore.context import StoreContext
from pillowstore.domain.entities import Product, ProductStatus, Review, SleepPosition
from pillowstore.serving.api.dependencies import apply_sync, get_context, require

router = APIRouter()


class ProductListResponse(BaseModel):
    """Product list"""
    items: List[Product]
    total: int


class ReviewListResponse(BaseModel):
    """Reviews of one product"""
    items: List[Review]
    total: int


class RecommendationResponse(BaseModel):
    """Suggested pillow profile and matching products"""
    profile: Dict[str, str]
    products: List[Product]


@router.get("", response_model=ProductListResponse)
async def list_products(
    response: Response,
    brand_id: Optional[str] = None,
    status: Optional[ProductStatus] = None,
    context: StoreContext = Depends(get_context),
) -> Any:
    """List products, optionally by brand and status."""
    items = apply_sync(response, await context.catalog.list_products(brand_id=brand_id, status=status))
    return ProductListResponse(items=items, total=len(items))


@router.get("/recommended", response_model=RecommendationResponse)
async def recommended_products(
    response: Response,
    neck_length: float = Query(..., ge=2, le=10),
    neck_width: float = Query(..., ge=2, le=20),
    sleep_position: SleepPosition = Query(...),
    limit: int = Query(4, ge=1, le=20),
    context: StoreContext = Depends(get_context),
) -> Any:
    """Products fitting the pillow profile suggested for a measurement."""
    result = await context.catalog.recommended_products(neck_length, neck_width, sleep_position, limit)
    return apply_sync(response, result)


@router.get("/{product_id}", response_model=Product)
async def get_product(
    product_id: str,
    response: Response,
    context: StoreContext = Depends(get_context),
) -> Any:
    return require(await context.catalog.get_product(product_id), response, "Product")


@router.put("/{product_id}", response_model=Product)
async def save_product(
    product_id: str,
    response: Response,
    payload: Dict[str, Any] = Body(...),
    context: StoreContext = Depends(get_context),
) -> Any:
    """Create or replace a product."""
    result = await context.catalog.save_product({**payload, "id": product_id})
    return apply_sync(response, result)


@router.get("/{product_id}/related", response_model=ProductListResponse)
async def related_products(
    product_id: str,
    response: Response,
    limit: int = Query(3, ge=1, le=20),
    context: StoreContext = Depends(get_context),
) -> Any:
    items = apply_sync(response, await context.catalog.related_products(product_id, limit))
    return ProductListResponse(items=items, total=len(items))


@router.get("/{product_id}/reviews", response_model=ReviewListResponse)
async def list_reviews(
    product_id: str,
    response: Response,
    context: StoreContext = Depends(get_context),
) -> Any:
    items = apply_sync(response, await context.catalog.list_reviews(product_id))
    return ReviewListResponse(items=items, total=len(items))


@router.post("/{product_id}/reviews", response_model=Review, status_code=201)
async def add_review(
    product_id: str,
    response: Response,
    payload: Dict[str, Any] = Body(...),
    context: StoreContext = Depends(get_context),
) -> Any:
    """Add a review; the product has to exist."""
    result = await context.catalog.add_review({**payload, "product_id": product_id})
    return apply_sync(response, result)
