"""
Profile Service
"""

from typing import Any, Iterable, Mapping, Optional, Union

from pillowstore.domain.collections import PROFILES
from pillowstore.domain.entities import RoutineTask, UserProfile
from pillowstore.sync.coordinator import SyncCoordinator, SyncResult


class ProfileService:
    """User profile reads and partial updates"""

    def __init__(self, coordinator: SyncCoordinator):
        self.coordinator = coordinator

    async def get(self, user_id: str) -> SyncResult[Optional[UserProfile]]:
        return await self.coordinator.read(PROFILES, user_id)

    async def update(self, user_id: str, fields: Mapping[str, Any]) -> SyncResult[UserProfile]:
        return await self.coordinator.update_profile(user_id, fields)

    async def update_routine_tasks(
        self,
        user_id: str,
        tasks: Iterable[Union[RoutineTask, Mapping[str, Any]]],
    ) -> SyncResult[UserProfile]:
        """Replace the whole routine task list"""
        routine = [
            task.model_dump() if isinstance(task, RoutineTask) else dict(task)
            for task in tasks
        ]
        return await self.coordinator.update_profile(user_id, {"routine_tasks": routine})
