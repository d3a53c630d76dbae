"""
Entity Models

Pydantic models for every persisted collection. Field constraints are the
validation rules applied before an entity reaches either store.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


# =============================================================================
# ENUMERATIONS
# =============================================================================

class SleepPosition(str, Enum):
    """Sleep position enumeration"""
    BACK = "back"
    SIDE = "side"
    STOMACH = "stomach"


class Firmness(str, Enum):
    """Pillow firmness enumeration"""
    SOFT = "Soft"
    MEDIUM_SOFT = "Medium-soft"
    MEDIUM = "Medium"
    MEDIUM_FIRM = "Medium-firm"
    FIRM = "Firm"


class ProductStatus(str, Enum):
    """Catalog status enumeration"""
    ACTIVE = "active"
    DRAFT = "draft"
    OUT_OF_STOCK = "out_of_stock"


class Entity(BaseModel):
    """Base class for persisted entities"""

    # Enum members are stored as their plain values so dumps bind cleanly
    # to String columns and JSON snapshots alike.
    model_config = ConfigDict(use_enum_values=True, validate_assignment=True, extra="ignore")


# =============================================================================
# CATALOG
# =============================================================================

class Product(Entity):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    brand_id: str = Field(min_length=1)
    price: Decimal = Field(ge=0, decimal_places=2)
    rating: float = Field(default=0.0, ge=0, le=5)
    review_count: int = Field(default=0, ge=0)
    features: List[str] = Field(default_factory=list)
    firmness: Optional[Firmness] = None
    sleep_positions: List[SleepPosition] = Field(default_factory=list)
    stock: int = Field(default=100, ge=0)
    status: ProductStatus = ProductStatus.ACTIVE
    description: Optional[str] = None
    image: Optional[str] = None
    sales: int = Field(default=0, ge=0)
    recommended: bool = False

    @field_validator("sleep_positions")
    @classmethod
    def dedupe_positions(cls, v: List[Any]) -> List[Any]:
        """Sleep positions are a set; keep first occurrence order"""
        seen = []
        for position in v:
            if position not in seen:
                seen.append(position)
        return seen


class Brand(Entity):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    logo: Optional[str] = None
    # Derived from the catalog, not authoritative
    product_count: int = Field(default=0, ge=0)


class Review(Entity):
    id: str = Field(min_length=1)
    product_id: str = Field(min_length=1)
    rating: int = Field(ge=1, le=5)
    helpful_count: int = Field(default=0, ge=0)
    verified: bool = False
    author: Optional[str] = None
    title: Optional[str] = None
    comment: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# MEASUREMENTS & PROFILES
# =============================================================================

class Measurement(Entity):
    """
    A single neck measurement submission.

    Created once and never mutated; a newer measurement supersedes it.
    """
    id: str = Field(default_factory=new_id, min_length=1)
    user_id: str = Field(min_length=1)
    neck_length: float = Field(ge=2, le=10)  # inches
    neck_width: float = Field(ge=2, le=20)  # inches
    sleep_position: SleepPosition
    created_at: datetime = Field(default_factory=utcnow)
    sleep_score: Optional[int] = Field(default=None, ge=0, le=100)
    comfort_score: Optional[int] = Field(default=None, ge=0, le=100)
    posture_score: Optional[int] = Field(default=None, ge=0, le=100)


class RoutineTask(BaseModel):
    id: str = Field(min_length=1)
    title: str
    completed: bool = False


class UserProfile(Entity):
    id: str = Field(min_length=1)
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    photo_url: Optional[str] = None
    sleep_position: Optional[SleepPosition] = None
    sleep_time: Optional[str] = None
    wake_time: Optional[str] = None
    notifications: bool = True

    # Denormalized from the latest measurement
    sleep_score: int = Field(default=0, ge=0, le=100)
    comfort_score: int = Field(default=0, ge=0, le=100)
    posture_score: int = Field(default=0, ge=0, le=100)

    routine_tasks: List[RoutineTask] = Field(default_factory=list)
    updated_at: Optional[datetime] = None


class ChatHistory(Entity):
    """Chat transcript persisted as one JSON blob per user"""
    user_id: str = Field(min_length=1)
    messages: List[Dict[str, Any]] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=utcnow)
