"""
Measurement Service
"""

from typing import List, Optional, Union

from pillowstore.domain.collections import MEASUREMENTS
from pillowstore.domain.entities import Measurement, SleepPosition
from pillowstore.domain.scoring import calculate_preview_score
from pillowstore.sync.coordinator import SyncCoordinator, SyncResult


class MeasurementService:
    """Scored measurements and measurement history per user"""

    def __init__(self, coordinator: SyncCoordinator):
        self.coordinator = coordinator

    async def save(
        self,
        user_id: str,
        neck_length: float,
        neck_width: float,
        sleep_position: Union[SleepPosition, str],
    ) -> SyncResult[Measurement]:
        return await self.coordinator.save_measurement(user_id, neck_length, neck_width, sleep_position)

    async def history(self, user_id: str) -> SyncResult[List[Measurement]]:
        """All measurements of a user, newest first"""
        return await self.coordinator.read_all(MEASUREMENTS, {"user_id": user_id})

    async def latest(self, user_id: str) -> SyncResult[Optional[Measurement]]:
        result = await self.history(user_id)
        return SyncResult.combine(result.value[0] if result.value else None, result)

    @staticmethod
    def preview(
        neck_length: float,
        neck_width: float,
        sleep_position: Union[SleepPosition, str],
    ) -> int:
        """Guest preview score; nothing is stored"""
        return calculate_preview_score(neck_length, neck_width, sleep_position)
