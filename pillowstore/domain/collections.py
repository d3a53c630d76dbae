"""
Collection Registry

Binds every persisted collection to its entity model, key field, filterable
fields and default ordering. The gateway, the local cache and the sync
coordinator are all parameterized by these specs instead of carrying
per-entity code.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Type, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from pillowstore.domain.entities import (
    Brand,
    ChatHistory,
    Entity,
    Measurement,
    Product,
    Review,
    UserProfile,
)
from pillowstore.exceptions import ValidationError


@dataclass(frozen=True)
class CollectionSpec:
    """Static description of one collection"""
    name: str
    model: Type[Entity]
    key_field: str = "id"
    filter_fields: FrozenSet[str] = field(default_factory=frozenset)
    order_by: Optional[Tuple[str, bool]] = None  # (field, descending)

    def key_of(self, entity: Union[BaseModel, Mapping[str, Any]]) -> str:
        """Extract the primary key of an entity or snapshot"""
        if isinstance(entity, BaseModel):
            value = getattr(entity, self.key_field)
        else:
            value = entity.get(self.key_field)
        if value is None or value == "":
            raise ValidationError(
                f"{self.name} entity is missing key field '{self.key_field}'",
                collection=self.name,
            )
        return str(value)

    def validate(self, payload: Union[BaseModel, Mapping[str, Any]]) -> Entity:
        """
        Validate a payload into this collection's model.

        Raises:
            ValidationError: payload violates the model's constraints
        """
        if isinstance(payload, self.model):
            data: Any = payload.model_dump()
        elif isinstance(payload, BaseModel):
            data = payload.model_dump()
        else:
            data = dict(payload)

        try:
            return self.model.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid {self.name} entity: {e.error_count()} error(s)",
                errors=e.errors(include_url=False),
                collection=self.name,
                key=str(data.get(self.key_field)) if isinstance(data, dict) else None,
            ) from e

    def check_filters(self, filters: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """Reject filters on fields this collection cannot be filtered by"""
        filters = dict(filters or {})
        unknown = set(filters) - set(self.filter_fields)
        if unknown:
            raise ValidationError(
                f"Collection '{self.name}' cannot be filtered by {sorted(unknown)}",
                collection=self.name,
            )
        return filters

    def matches(self, snapshot: Mapping[str, Any], filters: Mapping[str, Any]) -> bool:
        """Equality match of a cached snapshot against filters"""
        return all(_plain(snapshot.get(k)) == _plain(v) for k, v in filters.items())

    def sort(self, items: list) -> list:
        """Apply the default ordering to models or snapshots"""
        if not self.order_by:
            return items
        field_name, descending = self.order_by

        def sort_key(item: Any) -> str:
            value = item.get(field_name) if isinstance(item, Mapping) else getattr(item, field_name)
            return str(_plain(value) or "")

        return sorted(items, key=sort_key, reverse=descending)


def _plain(value: Any) -> Any:
    """Normalize enums and datetimes so cached JSON compares with live values"""
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if hasattr(value, "value") and isinstance(value, str):
        return value.value
    return value


PROFILES = CollectionSpec(name="profiles", model=UserProfile)
MEASUREMENTS = CollectionSpec(
    name="measurements",
    model=Measurement,
    filter_fields=frozenset({"user_id"}),
    order_by=("created_at", True),
)
PRODUCTS = CollectionSpec(
    name="products",
    model=Product,
    filter_fields=frozenset({"brand_id", "status"}),
)
BRANDS = CollectionSpec(name="brands", model=Brand)
REVIEWS = CollectionSpec(
    name="reviews",
    model=Review,
    filter_fields=frozenset({"product_id"}),
    order_by=("created_at", True),
)
CHAT_HISTORY = CollectionSpec(name="chat_history", model=ChatHistory, key_field="user_id")

COLLECTIONS: Dict[str, CollectionSpec] = {
    spec.name: spec
    for spec in (PROFILES, MEASUREMENTS, PRODUCTS, BRANDS, REVIEWS, CHAT_HISTORY)
}


def get_collection(name: str) -> CollectionSpec:
    """Look up a collection spec by name"""
    try:
        return COLLECTIONS[name]
    except KeyError:
        raise ValidationError(f"Unknown collection '{name}'", collection=name) from None
