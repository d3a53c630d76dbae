"""
Database Models - Remote Collections

One table per persisted collection. Column names mirror the entity model
fields in pillowstore.domain.entities so rows validate straight into
entities.

Tables:
- profiles: user profiles with denormalized latest scores
- measurements: neck measurements with derived scores
- products, brands, reviews: the pillow catalog
- chat_history: one JSON message list per user

No foreign keys are declared; all entities are referenced by key only and the
persistence layer never cascades.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


class ProfileRecord(Base):
    """User profile, keyed by the authentication user id"""
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(200))
    email: Mapped[Optional[str]] = mapped_column(String(320))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    address: Mapped[Optional[str]] = mapped_column(Text)
    photo_url: Mapped[Optional[str]] = mapped_column(Text)
    sleep_position: Mapped[Optional[str]] = mapped_column(String(20))
    sleep_time: Mapped[Optional[str]] = mapped_column(String(20))
    wake_time: Mapped[Optional[str]] = mapped_column(String(20))
    notifications: Mapped[bool] = mapped_column(Boolean, default=True)

    sleep_score: Mapped[int] = mapped_column(Integer, default=0)
    comfort_score: Mapped[int] = mapped_column(Integer, default=0)
    posture_score: Mapped[int] = mapped_column(Integer, default=0)

    routine_tasks: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class MeasurementRecord(Base):
    """Neck measurement submission (immutable once written)"""
    __tablename__ = "measurements"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    neck_length: Mapped[float] = mapped_column(Float, nullable=False)
    neck_width: Mapped[float] = mapped_column(Float, nullable=False)
    sleep_position: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    sleep_score: Mapped[Optional[int]] = mapped_column(Integer)
    comfort_score: Mapped[Optional[int]] = mapped_column(Integer)
    posture_score: Mapped[Optional[int]] = mapped_column(Integer)

    __table_args__ = (
        Index("ix_measurements_user_created", "user_id", "created_at"),
    )


class ProductRecord(Base):
    """Catalog product"""
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    brand_id: Mapped[str] = mapped_column(String(64), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    rating: Mapped[float] = mapped_column(Float, default=0.0)
    review_count: Mapped[int] = mapped_column(Integer, default=0)
    features: Mapped[List[str]] = mapped_column(JSON, default=list)
    firmness: Mapped[Optional[str]] = mapped_column(String(20))
    sleep_positions: Mapped[List[str]] = mapped_column(JSON, default=list)
    stock: Mapped[int] = mapped_column(Integer, default=100)
    status: Mapped[str] = mapped_column(String(20), default="active")
    description: Mapped[Optional[str]] = mapped_column(Text)
    image: Mapped[Optional[str]] = mapped_column(Text)
    sales: Mapped[int] = mapped_column(Integer, default=0)
    recommended: Mapped[bool] = mapped_column(Boolean, default=False)

    __table_args__ = (
        Index("ix_products_brand", "brand_id"),
        Index("ix_products_status", "status"),
    )


class BrandRecord(Base):
    """Catalog brand"""
    __tablename__ = "brands"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    logo: Mapped[Optional[str]] = mapped_column(Text)
    product_count: Mapped[int] = mapped_column(Integer, default=0)


class ReviewRecord(Base):
    """Product review"""
    __tablename__ = "reviews"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    product_id: Mapped[str] = mapped_column(String(64), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    helpful_count: Mapped[int] = mapped_column(Integer, default=0)
    verified: Mapped[bool] = mapped_column(Boolean, default=False)
    author: Mapped[Optional[str]] = mapped_column(String(200))
    title: Mapped[Optional[str]] = mapped_column(String(300))
    comment: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_reviews_product", "product_id"),
    )


class ChatHistoryRecord(Base):
    """Chat transcript blob, one row per user"""
    __tablename__ = "chat_history"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    messages: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# Collection name -> table; the key column is the table's primary key
TABLES = {
    model.__tablename__: model.__table__
    for model in (
        ProfileRecord,
        MeasurementRecord,
        ProductRecord,
        BrandRecord,
        ReviewRecord,
        ChatHistoryRecord,
    )
}
