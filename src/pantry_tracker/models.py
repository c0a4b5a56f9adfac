"""Core data models for Pantry Tracker."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, computed_field, field_validator

from .item_normalizer import normalize_key

DEFAULT_ICON = "shippingbox"
DEFAULT_COLOR_HEX = "#3B82F6"


class ShoppingSource(str, Enum):
    """Why an entry landed on the shopping list."""

    EXPIRED_CLEANUP = "expired_cleanup"
    DEPLETED = "depleted"
    MANUAL = "manual"


class ShoppingStatus(str, Enum):
    """Shopping list entry status."""

    TO_BUY = "to_buy"
    PURCHASED = "purchased"


class BannerKind(str, Enum):
    """Expiration banners shown above the places list."""

    EXPIRED = "expired"
    EXPIRING_SOON = "expiring_soon"


class FoodItem(BaseModel):
    """A tracked quantity of food inside a place."""

    id: UUID = Field(default_factory=uuid4)
    name: str
    quantity: int = Field(default=1, ge=0)
    notes: str | None = None
    expiration_date: date | None = None


class Place(BaseModel):
    """A named storage location owning food items."""

    id: UUID = Field(default_factory=uuid4)
    name: str
    icon_name: str = DEFAULT_ICON
    color_hex: str = DEFAULT_COLOR_HEX
    items: list[FoodItem] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("place name must not be blank")
        return value

    @field_validator("items")
    @classmethod
    def _unique_item_ids(cls, items: list[FoodItem]) -> list[FoodItem]:
        seen: set[UUID] = set()
        for item in items:
            if item.id in seen:
                raise ValueError(f"duplicate item id in place: {item.id}")
            seen.add(item.id)
        return items

    def item(self, item_id: UUID) -> FoodItem | None:
        """Find an owned item by id."""
        for item in self.items:
            if item.id == item_id:
                return item
        return None


class ShoppingListItem(BaseModel):
    """An entry on the shopping list."""

    id: UUID = Field(default_factory=uuid4)
    name: str
    desired_quantity: int = Field(default=1, ge=1)
    notes: str | None = None
    source: ShoppingSource = ShoppingSource.MANUAL
    status: ShoppingStatus = ShoppingStatus.TO_BUY
    linked_food_item_id: UUID | None = None
    last_place_id: UUID | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def normalized_key(self) -> str:
        """Merge/dedupe key derived from the name."""
        return normalize_key(self.name)


class WidgetSnapshot(BaseModel):
    """Aggregate counts published for the home-screen summary."""

    total_items: int = 0
    expiring_soon: int = 0
    expired: int = 0
    updated_at: datetime = Field(default_factory=datetime.now)


class ExpirationRow(BaseModel):
    """A flattened item row for the expired / expiring-soon screens."""

    id: UUID
    place_id: UUID
    place_name: str
    place_icon: str
    name: str
    quantity: int
    expiration_date: date | None = None
    days_until_expiry: int | None = None
