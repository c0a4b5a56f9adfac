"""State machine for a single place and its food items."""

import logging
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from .effects import CancelReminders, Reduction
from .environment import BindingAction, Environment, apply_binding
from .expiration import DEFAULT_SOON_DAYS, is_expired, is_expiring_soon
from .models import FoodItem, Place
from .reminders import ReminderKind, reminder_ids_for_items

logger = logging.getLogger(__name__)


class PlaceState(Place):
    """A place plus the transient UI state of its screen."""

    search_query: str = ""
    is_adding_item: bool = False
    new_item_name: str = ""
    new_item_qty: int = 1
    new_item_notes: str = ""
    new_item_expiry: date | None = None

    @classmethod
    def from_place(cls, place: Place) -> "PlaceState":
        return cls(
            id=place.id,
            name=place.name,
            icon_name=place.icon_name,
            color_hex=place.color_hex,
            items=[i.model_copy() for i in place.items],
        )

    def to_place(self) -> Place:
        """Detached domain copy without UI fields, for persistence."""
        return Place(
            id=self.id,
            name=self.name,
            icon_name=self.icon_name,
            color_hex=self.color_hex,
            items=[i.model_copy() for i in self.items],
        )

    def expired_count(self, today: date | None = None) -> int:
        return sum(1 for i in self.items if is_expired(i.expiration_date, today))

    def expiring_soon_count(self, within: int = DEFAULT_SOON_DAYS, today: date | None = None) -> int:
        return sum(1 for i in self.items if is_expiring_soon(i.expiration_date, within, today))

    def filtered_items(self) -> list[FoodItem]:
        """Items whose name contains the search query, case-insensitively."""
        query = self.search_query.strip().lower()
        if not query:
            return list(self.items)
        return [i for i in self.items if query in i.name.lower()]

    def reset_add_item_form(self) -> None:
        self.is_adding_item = False
        self.new_item_name = ""
        self.new_item_qty = 1
        self.new_item_notes = ""
        self.new_item_expiry = None


# --- Actions ---


@dataclass(frozen=True)
class AddItemButtonTapped:
    pass


@dataclass(frozen=True)
class AddItemCancelled:
    pass


@dataclass(frozen=True)
class ConfirmAddItem:
    pass


@dataclass(frozen=True)
class SetItemExpiry:
    item_id: UUID
    expiration_date: date | None


@dataclass(frozen=True)
class DeleteItems:
    """Delete the items at these positions of ``items``."""

    offsets: tuple[int, ...]


@dataclass(frozen=True)
class QuantityChanged:
    item_id: UUID
    quantity: int


PlaceAction = (
    BindingAction
    | AddItemButtonTapped
    | AddItemCancelled
    | ConfirmAddItem
    | SetItemExpiry
    | DeleteItems
    | QuantityChanged
)


@dataclass(frozen=True)
class PlaceUpdated:
    """Delegate: the place changed; the parent integrates and persists it."""

    state: PlaceState


class PlaceReducer:
    """Reduces place actions.

    Every mutation answers with a PlaceUpdated delegate carrying a detached
    copy of the state; that is the only way the parent hears about it.
    """

    BINDABLE = frozenset(
        {"search_query", "new_item_name", "new_item_qty", "new_item_notes", "new_item_expiry"}
    )

    def __init__(self, env: Environment | None = None):
        self.env = env or Environment()

    def reduce(self, state: PlaceState, action: PlaceAction) -> Reduction:
        match action:
            case BindingAction():
                apply_binding(state, action, self.BINDABLE)
                return Reduction()
            case AddItemButtonTapped():
                state.is_adding_item = True
                return Reduction()
            case AddItemCancelled():
                state.reset_add_item_form()
                return Reduction()
            case ConfirmAddItem():
                return self._confirm_add_item(state)
            case SetItemExpiry(item_id=item_id, expiration_date=expiration_date):
                return self._set_item_expiry(state, item_id, expiration_date)
            case DeleteItems(offsets=offsets):
                return self._delete_items(state, offsets)
            case QuantityChanged(item_id=item_id, quantity=quantity):
                item = state.item(item_id)
                if item is None:
                    return Reduction()
                item.quantity = max(0, quantity)
                return self._updated(state)
            case _:
                raise TypeError(f"Unknown place action: {action!r}")

    def _updated(self, state: PlaceState) -> Reduction:
        return Reduction(delegate=PlaceUpdated(state.model_copy(deep=True)))

    def _confirm_add_item(self, state: PlaceState) -> Reduction:
        name = state.new_item_name.strip()
        if not name:
            return Reduction()

        item = FoodItem(
            id=self.env.uuid(),
            name=name,
            quantity=max(0, state.new_item_qty),
            notes=state.new_item_notes.strip() or None,
            expiration_date=state.new_item_expiry,
        )
        state.items.append(item)
        state.reset_add_item_form()

        reduction = self._updated(state)
        if item.expiration_date is not None:
            # The parent reschedules every item of the place, day-of included
            reduction.extend(
                self.env.reminder_policy.plan(
                    item, self.env.now(), kinds=[ReminderKind.PRE_EXPIRY]
                )
            )
        return reduction

    def _set_item_expiry(
        self, state: PlaceState, item_id: UUID, expiration_date: date | None
    ) -> Reduction:
        item = state.item(item_id)
        if item is None:
            return Reduction()
        item.expiration_date = expiration_date

        # Without a date plan() cancels both reminders
        return self._updated(state).extend(
            self.env.reminder_policy.plan(item, self.env.now())
        )

    def _delete_items(self, state: PlaceState, offsets: tuple[int, ...]) -> Reduction:
        # Resolve positions to ids before mutating so later offsets stay valid
        doomed = {state.items[i].id for i in offsets if 0 <= i < len(state.items)}
        if not doomed:
            return Reduction()

        removed = [i for i in state.items if i.id in doomed]
        state.items = [i for i in state.items if i.id not in doomed]
        logger.debug("Deleted %d item(s) from %s", len(removed), state.name)

        reduction = self._updated(state)
        cancel_ids = reminder_ids_for_items(removed)
        if cancel_ids:
            reduction.effects.append(CancelReminders(tuple(cancel_ids)))
        return reduction
