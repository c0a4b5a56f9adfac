"""Effect descriptions returned by reducers.

Reducers never perform I/O. They describe it with these values and the
EffectRunner carries them out, feeding any result back as a new action.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from .models import Place, ShoppingListItem, ShoppingSource


@dataclass(frozen=True)
class LoadPlaces:
    """Load every place; answers LoadSucceeded or LoadFailed."""


@dataclass(frozen=True)
class ReplaceAllPlaces:
    """Persist the full collection, then publish the summary snapshot."""

    places: tuple[Place, ...]


@dataclass(frozen=True)
class PublishSnapshot:
    """Recompute and publish the summary snapshot without writing places."""

    places: tuple[Place, ...]


@dataclass(frozen=True)
class ScheduleReminder:
    """Add or replace the pending reminder with this id."""

    id: str
    title: str
    body: str
    fire_at: datetime


@dataclass(frozen=True)
class CancelReminders:
    ids: tuple[str, ...]


@dataclass(frozen=True)
class RequestAuthorization:
    """Ask for notification permission; answers NotificationPermissionResponse."""


@dataclass(frozen=True)
class LoadShoppingList:
    """Load the shopping list; answers Loaded or LoadFailed."""


@dataclass(frozen=True)
class MergeShoppingItem:
    """Merge-or-create an entry, then reload the list."""

    name: str
    quantity: int
    source: ShoppingSource = ShoppingSource.MANUAL
    linked_food_item_id: UUID | None = None
    place_id: UUID | None = None


@dataclass(frozen=True)
class UpdateShoppingItem:
    item: ShoppingListItem


@dataclass(frozen=True)
class DeleteShoppingItems:
    ids: tuple[UUID, ...]


@dataclass(frozen=True)
class MarkShoppingItemsPurchased:
    ids: tuple[UUID, ...]
    purchased: bool


Effect = (
    LoadPlaces
    | ReplaceAllPlaces
    | PublishSnapshot
    | ScheduleReminder
    | CancelReminders
    | RequestAuthorization
    | LoadShoppingList
    | MergeShoppingItem
    | UpdateShoppingItem
    | DeleteShoppingItems
    | MarkShoppingItemsPurchased
)


@dataclass
class Reduction:
    """What a reducer hands back besides the mutated state.

    ``delegate`` is the outbound message a child reducer sends to its
    parent, if any.
    """

    effects: list[Effect] = field(default_factory=list)
    delegate: Any = None

    def extend(self, effects: list[Effect]) -> "Reduction":
        self.effects.extend(effects)
        return self
