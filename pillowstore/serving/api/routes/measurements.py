"""
Measurements API Endpoints

Scored measurement submissions, history and the guest preview score.
"""

from typing import Any, List

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, Field

from pillowstore.context import StoreContext
from pillowstore.domain.entities import Measurement, SleepPosition
from pillowstore.serving.api.dependencies import apply_sync, get_context, require

router = APIRouter()


class MeasurementInput(BaseModel):
    """Neck measurement in inches"""
    neck_length: float = Field(ge=2, le=10)
    neck_width: float = Field(ge=2, le=20)
    sleep_position: SleepPosition


class MeasurementRequest(MeasurementInput):
    user_id: str = Field(min_length=1)


class MeasurementListResponse(BaseModel):
    items: List[Measurement]
    total: int


class PreviewResponse(BaseModel):
    score: int


@router.post("", response_model=Measurement, status_code=201)
async def save_measurement(
    request: MeasurementRequest,
    response: Response,
    context: StoreContext = Depends(get_context),
) -> Any:
    """
    Score and store a measurement.

    The scores are copied onto the user's profile as well.
    """
    result = await context.measurements.save(
        request.user_id,
        request.neck_length,
        request.neck_width,
        request.sleep_position,
    )
    return apply_sync(response, result)


@router.get("", response_model=MeasurementListResponse)
async def measurement_history(
    response: Response,
    user_id: str = Query(..., min_length=1),
    context: StoreContext = Depends(get_context),
) -> Any:
    """Measurements of a user, newest first."""
    items = apply_sync(response, await context.measurements.history(user_id))
    return MeasurementListResponse(items=items, total=len(items))


@router.get("/latest", response_model=Measurement)
async def latest_measurement(
    response: Response,
    user_id: str = Query(..., min_length=1),
    context: StoreContext = Depends(get_context),
) -> Any:
    return require(await context.measurements.latest(user_id), response, "Measurement")


@router.post("/preview", response_model=PreviewResponse)
async def preview_score(request: MeasurementInput, context: StoreContext = Depends(get_context)) -> Any:
    """Guest preview score. Nothing is stored."""
    return PreviewResponse(
        score=context.measurements.preview(request.neck_length, request.neck_width, request.sleep_position)
    )
