"""
Chat History API Endpoints
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field

from pillowstore.context import StoreContext
from pillowstore.domain.entities import ChatHistory
from pillowstore.serving.api.dependencies import apply_sync, get_context, require

router = APIRouter()


class ChatHistoryRequest(BaseModel):
    messages: List[Dict[str, Any]] = Field(default_factory=list)


@router.get("/{user_id}", response_model=ChatHistory)
async def load_chat_history(user_id: str, response: Response, context: StoreContext = Depends(get_context)) -> Any:
    return require(await context.chat_history.load(user_id), response, "Chat history")


@router.put("/{user_id}", response_model=ChatHistory)
async def save_chat_history(
    user_id: str,
    request: ChatHistoryRequest,
    response: Response,
    context: StoreContext = Depends(get_context),
) -> Any:
    """Replace the stored transcript."""
    return apply_sync(response, await context.chat_history.save(user_id, request.messages))
