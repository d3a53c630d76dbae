"""
Brands API Endpoints
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, Response
from pydantic import BaseModel

from pillowstore.context import StoreContext
from pillowstore.domain.entities import Brand
from pillowstore.serving.api.dependencies import apply_sync, get_context, require

router = APIRouter()


class BrandListResponse(BaseModel):
    items: List[Brand]
    total: int


@router.get("", response_model=BrandListResponse)
async def list_brands(response: Response, context: StoreContext = Depends(get_context)) -> Any:
    """Brands with product counts derived from the catalog."""
    items = apply_sync(response, await context.catalog.list_brands())
    return BrandListResponse(items=items, total=len(items))


@router.get("/{brand_id}", response_model=Brand)
async def get_brand(brand_id: str, response: Response, context: StoreContext = Depends(get_context)) -> Any:
    return require(await context.catalog.get_brand(brand_id), response, "Brand")


@router.put("/{brand_id}", response_model=Brand)
async def save_brand(
    brand_id: str,
    response: Response,
    payload: Dict[str, Any] = Body(...),
    context: StoreContext = Depends(get_context),
) -> Any:
    result = await context.catalog.save_brand({**payload, "id": brand_id})
    return apply_sync(response, result)
