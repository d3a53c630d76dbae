"""
Chat History Service

Persists chat transcripts only; producing replies is someone else's job.
"""

from typing import Any, Dict, List, Optional

from pillowstore.domain.collections import CHAT_HISTORY
from pillowstore.domain.entities import ChatHistory, utcnow
from pillowstore.sync.coordinator import SyncCoordinator, SyncResult


class ChatHistoryService:
    def __init__(self, coordinator: SyncCoordinator):
        self.coordinator = coordinator

    async def load(self, user_id: str) -> SyncResult[Optional[ChatHistory]]:
        return await self.coordinator.read(CHAT_HISTORY, user_id)

    async def save(self, user_id: str, messages: List[Dict[str, Any]]) -> SyncResult[ChatHistory]:
        history = {"user_id": user_id, "messages": messages, "updated_at": utcnow()}
        return await self.coordinator.write(CHAT_HISTORY, history)
