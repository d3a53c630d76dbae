"""
Connectivity Verdicts

Shared by the connectivity monitor, which produces them, and the remote
gateway, which fails fast on them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class ConnectivityStatus(str, Enum):
    """Remote service verdict"""
    CONNECTED = "connected"
    UNREACHABLE = "unreachable"
    SCHEMA_MISSING = "schema_missing"


@dataclass(frozen=True)
class HealthReport:
    """One connectivity verdict with its diagnostic message"""
    status: ConnectivityStatus
    message: str
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    latency_ms: Optional[float] = None

    @property
    def is_connected(self) -> bool:
        return self.status is ConnectivityStatus.CONNECTED
