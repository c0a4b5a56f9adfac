"""State machine for the shopping list screen."""

from dataclasses import dataclass, field
from uuid import UUID

from .data_store import sort_shopping_list
from .effects import (
    DeleteShoppingItems,
    LoadShoppingList,
    MarkShoppingItemsPurchased,
    MergeShoppingItem,
    Reduction,
    UpdateShoppingItem,
)
from .environment import Environment
from .item_normalizer import display_name
from .models import ShoppingListItem, ShoppingSource, ShoppingStatus


@dataclass
class AddSheet:
    name: str = ""
    qty: int = 1


@dataclass
class ShoppingListState:
    items: list[ShoppingListItem] = field(default_factory=list)
    is_loading: bool = False
    error: str | None = None
    add_sheet: AddSheet | None = None

    def item(self, item_id: UUID) -> ShoppingListItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def to_buy(self) -> list[ShoppingListItem]:
        return [i for i in self.items if i.status == ShoppingStatus.TO_BUY]


# --- Actions ---


@dataclass(frozen=True)
class LoadRequested:
    pass


@dataclass(frozen=True)
class Loaded:
    items: tuple[ShoppingListItem, ...]


@dataclass(frozen=True)
class LoadFailed:
    message: str


@dataclass(frozen=True)
class AddButtonTapped:
    pass


@dataclass(frozen=True)
class AddSheetCancelled:
    pass


@dataclass(frozen=True)
class AddSheetConfirmed:
    name: str
    qty: int = 1


@dataclass(frozen=True)
class MergeOrCreate:
    name: str
    qty: int = 1
    source: ShoppingSource = ShoppingSource.MANUAL
    linked_food_item_id: UUID | None = None
    place_id: UUID | None = None


@dataclass(frozen=True)
class SetQuantity:
    item_id: UUID
    qty: int


@dataclass(frozen=True)
class Delete:
    ids: tuple[UUID, ...]


@dataclass(frozen=True)
class MarkPurchased:
    ids: tuple[UUID, ...]
    purchased: bool = True


ShoppingListAction = (
    LoadRequested
    | Loaded
    | LoadFailed
    | AddButtonTapped
    | AddSheetCancelled
    | AddSheetConfirmed
    | MergeOrCreate
    | SetQuantity
    | Delete
    | MarkPurchased
)


class ShoppingListReducer:
    """Reduces shopping list actions.

    Edits are optimistic: memory changes first and the write runs as an
    effect whose failure is only logged.
    """

    def __init__(self, env: Environment | None = None):
        self.env = env or Environment()

    def reduce(self, state: ShoppingListState, action: ShoppingListAction) -> Reduction:
        match action:
            case LoadRequested():
                if state.is_loading:
                    return Reduction()
                state.is_loading = True
                state.error = None
                return Reduction([LoadShoppingList()])

            case Loaded(items=items):
                state.is_loading = False
                state.error = None
                state.items = sort_shopping_list(list(items))
                return Reduction()

            case LoadFailed(message=message):
                state.is_loading = False
                state.error = message
                return Reduction()

            case AddButtonTapped():
                state.add_sheet = AddSheet()
                return Reduction()

            case AddSheetCancelled():
                state.add_sheet = None
                return Reduction()

            case AddSheetConfirmed(name=name, qty=qty):
                state.add_sheet = None
                return self._merge(MergeOrCreate(name=name, qty=qty))

            case MergeOrCreate():
                return self._merge(action)

            case SetQuantity(item_id=item_id, qty=qty):
                item = state.item(item_id)
                if item is None:
                    return Reduction()
                item.desired_quantity = max(1, qty)
                item.updated_at = self.env.now()
                return Reduction([UpdateShoppingItem(item.model_copy())])

            case Delete(ids=ids):
                doomed = set(ids)
                state.items = [i for i in state.items if i.id not in doomed]
                return Reduction([DeleteShoppingItems(tuple(ids))])

            case MarkPurchased(ids=ids, purchased=purchased):
                status = ShoppingStatus.PURCHASED if purchased else ShoppingStatus.TO_BUY
                now = self.env.now()
                for item in state.items:
                    if item.id in ids:
                        item.status = status
                        item.updated_at = now
                return Reduction([MarkShoppingItemsPurchased(tuple(ids), purchased)])

            case _:
                raise TypeError(f"Unknown shopping list action: {action!r}")

    def _merge(self, action: MergeOrCreate) -> Reduction:
        name = display_name(action.name)
        if not name:
            return Reduction()
        # The runner reloads the list once the merge has landed
        return Reduction(
            [
                MergeShoppingItem(
                    name=name,
                    quantity=action.qty,
                    source=action.source,
                    linked_food_item_id=action.linked_food_item_id,
                    place_id=action.place_id,
                )
            ]
        )
