"""Navigation stack and the expiration screen."""

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from uuid import UUID

from .effects import Reduction
from .expiration import ExpirationKind
from .models import ExpirationRow
from .place_reducer import PlaceState


@dataclass
class ExpirationScreenState:
    """Rows of the expired or expiring-soon list."""

    kind: ExpirationKind
    rows: list[ExpirationRow] = field(default_factory=list)


@dataclass(frozen=True)
class RowTapped:
    row: ExpirationRow


@dataclass(frozen=True)
class CloseTapped:
    pass


@dataclass(frozen=True)
class CleanupAllTapped:
    pass


ExpirationAction = RowTapped | CloseTapped | CleanupAllTapped


# Delegates sent to the parent


@dataclass(frozen=True)
class CleanupExpired:
    pass


@dataclass(frozen=True)
class CloseRequested:
    pass


@dataclass(frozen=True)
class OpenPlaceRequested:
    place_id: UUID


def reduce_expiration(state: ExpirationScreenState, action: ExpirationAction) -> Reduction:
    """The screen owns no data; every action is forwarded to the parent."""
    match action:
        case CleanupAllTapped():
            return Reduction(delegate=CleanupExpired())
        case CloseTapped():
            return Reduction(delegate=CloseRequested())
        case RowTapped(row=row):
            return Reduction(delegate=OpenPlaceRequested(row.place_id))
        case _:
            raise TypeError(f"Unknown expiration action: {action!r}")


Destination = PlaceState | ExpirationScreenState


@dataclass
class PathElement:
    id: int
    state: Destination


class NavigationStack:
    """Ordered stack of destination states addressed by stable element ids."""

    def __init__(self) -> None:
        self._elements: list[PathElement] = []
        self._next_id = 0

    def __iter__(self) -> Iterator[PathElement]:
        return iter(self._elements)

    def __len__(self) -> int:
        return len(self._elements)

    @property
    def top(self) -> PathElement | None:
        return self._elements[-1] if self._elements else None

    def push(self, state: Destination) -> int:
        element_id = self._next_id
        self._next_id += 1
        self._elements.append(PathElement(element_id, state))
        return element_id

    def pop_from(self, element_id: int) -> None:
        """Pop the element and everything pushed after it."""
        for index, element in enumerate(self._elements):
            if element.id == element_id:
                del self._elements[index:]
                return

    def clear(self) -> None:
        self._elements.clear()

    def element(self, element_id: int) -> PathElement | None:
        for element in self._elements:
            if element.id == element_id:
                return element
        return None

    def remove_where(self, predicate: Callable[[Destination], bool]) -> None:
        self._elements = [e for e in self._elements if not predicate(e.state)]

    def place_screens(self) -> list[PlaceState]:
        return [e.state for e in self._elements if isinstance(e.state, PlaceState)]
