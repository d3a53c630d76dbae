"""
Domain Module
"""
from .collections import COLLECTIONS, CollectionSpec, get_collection
from .entities import (
    Brand,
    ChatHistory,
    Firmness,
    Measurement,
    Product,
    ProductStatus,
    Review,
    RoutineTask,
    SleepPosition,
    UserProfile,
)
from .scoring import FitnessScores, calculate_preview_score, calculate_scores

__all__ = [
    "COLLECTIONS",
    "CollectionSpec",
    "get_collection",
    "Brand",
    "ChatHistory",
    "Firmness",
    "Measurement",
    "Product",
    "ProductStatus",
    "Review",
    "RoutineTask",
    "SleepPosition",
    "UserProfile",
    "FitnessScores",
    "calculate_scores",
    "calculate_preview_score",
]
