"""
Services Module
"""
from .catalog import CatalogService
from .chat import ChatHistoryService
from .measurements import MeasurementService
from .profiles import ProfileService

__all__ = [
    "CatalogService",
    "ChatHistoryService",
    "MeasurementService",
    "ProfileService",
]
