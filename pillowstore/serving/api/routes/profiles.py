"""
Profiles API Endpoints
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, Response

from pillowstore.context import StoreContext
from pillowstore.domain.entities import RoutineTask, UserProfile
from pillowstore.serving.api.dependencies import apply_sync, get_context, require

router = APIRouter()


@router.get("/{user_id}", response_model=UserProfile)
async def get_profile(user_id: str, response: Response, context: StoreContext = Depends(get_context)) -> Any:
    return require(await context.profiles.get(user_id), response, "Profile")


@router.patch("/{user_id}", response_model=UserProfile)
async def update_profile(
    user_id: str,
    response: Response,
    fields: Dict[str, Any] = Body(...),
    context: StoreContext = Depends(get_context),
) -> Any:
    """Merge the given fields into the profile."""
    return apply_sync(response, await context.profiles.update(user_id, fields))


@router.put("/{user_id}/routine-tasks", response_model=UserProfile)
async def replace_routine_tasks(
    user_id: str,
    response: Response,
    tasks: List[RoutineTask] = Body(...),
    context: StoreContext = Depends(get_context),
) -> Any:
    return apply_sync(response, await context.profiles.update_routine_tasks(user_id, tasks))
