"""Data persistence for Pantry Tracker.

This module provides data persistence with support for JSON (default) or SQLite backends.
Use create_data_store() to get the appropriate backend based on configuration.
"""

import json
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Protocol
from uuid import UUID

from .item_normalizer import display_name, normalize_key
from .models import Place, ShoppingListItem, ShoppingSource, ShoppingStatus

FORMAT_VERSION = "1.0"


class BackendType(str, Enum):
    """Data storage backend types."""

    JSON = "json"
    SQLITE = "sqlite"


class PersistenceError(Exception):
    """Raised when durable storage cannot be read or written."""


class DataStoreProtocol(Protocol):
    """Protocol defining the data store interface."""

    def load_places(self) -> list[Place]: ...
    def replace_all_places(self, places: list[Place]) -> None: ...
    def load_shopping_list(self) -> list[ShoppingListItem]: ...
    def merge_or_create_shopping_item(
        self,
        name: str,
        quantity: int,
        source: ShoppingSource = ShoppingSource.MANUAL,
        linked_food_item_id: UUID | None = None,
        place_id: UUID | None = None,
    ) -> ShoppingListItem: ...
    def update_shopping_item(self, item: ShoppingListItem) -> None: ...
    def delete_shopping_items(self, ids: Iterable[UUID]) -> None: ...
    def mark_purchased(self, ids: Iterable[UUID], purchased: bool) -> None: ...


class JSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for our data types."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, date):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


@contextmanager
def storage_errors(action: str) -> Iterator[None]:
    """Translate I/O, decoding and validation failures into PersistenceError."""
    try:
        yield
    except PersistenceError:
        raise
    except (OSError, ValueError) as e:
        raise PersistenceError(f"Failed to {action}: {e}") from e


def sort_shopping_list(items: list[ShoppingListItem]) -> list[ShoppingListItem]:
    """Newest created first, then name ascending."""
    by_name = sorted(items, key=lambda i: i.name.lower())
    return sorted(by_name, key=lambda i: i.created_at, reverse=True)


def apply_merge(
    items: list[ShoppingListItem],
    name: str,
    quantity: int,
    source: ShoppingSource,
    linked_food_item_id: UUID | None,
    place_id: UUID | None,
    now: datetime,
) -> tuple[ShoppingListItem, bool]:
    """Merge into an existing to-buy entry or create a new one.

    Returns the resulting entry and whether it was newly created. The
    existing entry keeps its first linkage; quantity always accumulates.
    """
    key = normalize_key(name)
    bump = max(1, quantity)

    for existing in items:
        if existing.normalized_key == key and existing.status == ShoppingStatus.TO_BUY:
            existing.desired_quantity = max(1, existing.desired_quantity + bump)
            existing.updated_at = now
            if existing.linked_food_item_id is None:
                existing.linked_food_item_id = linked_food_item_id
            if existing.last_place_id is None:
                existing.last_place_id = place_id
            return existing, False

    item = ShoppingListItem(
        name=display_name(name),
        desired_quantity=bump,
        source=source,
        status=ShoppingStatus.TO_BUY,
        linked_food_item_id=linked_food_item_id,
        last_place_id=place_id,
        created_at=now,
        updated_at=now,
    )
    items.append(item)
    return item, True


class DataStore:
    """Manages JSON file persistence for pantry data."""

    def __init__(self, data_dir: Path | None = None):
        """Initialize data store.

        Args:
            data_dir: Directory for data files. Defaults to ./data
        """
        self.data_dir = data_dir or Path.cwd() / "data"
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _places_path(self) -> Path:
        """Path to places file."""
        return self.data_dir / "places.json"

    def _shopping_list_path(self) -> Path:
        """Path to shopping list file."""
        return self.data_dir / "shopping_list.json"

    def _read(self, path: Path, key: str) -> list[dict[str, Any]]:
        if not path.exists():
            return []
        with open(path) as f:
            data = json.load(f)
        return data.get(key, [])

    def _write(self, path: Path, key: str, records: list[dict[str, Any]]) -> None:
        """Write the whole file atomically via a temp file and rename."""
        payload = {
            "version": FORMAT_VERSION,
            "last_updated": datetime.now(),
            key: records,
        }
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with open(tmp_path, "w") as f:
            json.dump(payload, f, cls=JSONEncoder, indent=2)
        tmp_path.replace(path)

    # --- Places Operations ---

    def load_places(self) -> list[Place]:
        """Load all places with their items.

        Returns:
            List of places, empty if nothing was saved yet
        """
        with storage_errors("load places"):
            return [Place.model_validate(p) for p in self._read(self._places_path(), "places")]

    def replace_all_places(self, places: list[Place]) -> None:
        """Replace every stored place with the given collection.

        Args:
            places: Complete collection to persist
        """
        with storage_errors("save places"):
            self._write(
                self._places_path(),
                "places",
                [p.model_dump(mode="json") for p in places],
            )

    # --- Shopping List Operations ---

    def _load_shopping_items(self) -> list[ShoppingListItem]:
        return [
            ShoppingListItem.model_validate(i)
            for i in self._read(self._shopping_list_path(), "items")
        ]

    def _save_shopping_items(self, items: list[ShoppingListItem]) -> None:
        self._write(
            self._shopping_list_path(),
            "items",
            [i.model_dump(mode="json", exclude={"normalized_key"}) for i in items],
        )

    def load_shopping_list(self) -> list[ShoppingListItem]:
        """Load the shopping list, newest first.

        Returns:
            List of shopping list entries
        """
        with storage_errors("load shopping list"):
            return sort_shopping_list(self._load_shopping_items())

    def merge_or_create_shopping_item(
        self,
        name: str,
        quantity: int,
        source: ShoppingSource = ShoppingSource.MANUAL,
        linked_food_item_id: UUID | None = None,
        place_id: UUID | None = None,
    ) -> ShoppingListItem:
        """Bump a matching to-buy entry or create a new one.

        Args:
            name: Item name; matched on its normalized key
            quantity: Amount to add (at least 1 is added)
            source: What produced the request
            linked_food_item_id: Optional inventory item reference
            place_id: Optional place the item came from

        Returns:
            The merged or created entry

        Raises:
            ValueError: If the name is blank
        """
        if not name.strip():
            raise ValueError("Shopping item name must not be blank")

        with storage_errors("save shopping list"):
            items = self._load_shopping_items()
            item, _ = apply_merge(
                items, name, quantity, source, linked_food_item_id, place_id, datetime.now()
            )
            self._save_shopping_items(items)
            return item

    def update_shopping_item(self, item: ShoppingListItem) -> None:
        """Overwrite the editable fields of a stored entry. Unknown ids are ignored."""
        with storage_errors("save shopping list"):
            items = self._load_shopping_items()
            for i, existing in enumerate(items):
                if existing.id == item.id:
                    items[i] = item.model_copy(
                        update={
                            "desired_quantity": max(1, item.desired_quantity),
                            "created_at": existing.created_at,
                            "updated_at": datetime.now(),
                        }
                    )
                    self._save_shopping_items(items)
                    return

    def delete_shopping_items(self, ids: Iterable[UUID]) -> None:
        """Delete entries by id."""
        doomed = set(ids)
        if not doomed:
            return
        with storage_errors("save shopping list"):
            items = self._load_shopping_items()
            self._save_shopping_items([i for i in items if i.id not in doomed])

    def mark_purchased(self, ids: Iterable[UUID], purchased: bool) -> None:
        """Flip the status of the given entries."""
        targets = set(ids)
        if not targets:
            return
        status = ShoppingStatus.PURCHASED if purchased else ShoppingStatus.TO_BUY
        now = datetime.now()
        with storage_errors("save shopping list"):
            items = self._load_shopping_items()
            changed = False
            for item in items:
                if item.id in targets:
                    item.status = status
                    item.updated_at = now
                    changed = True
            if changed:
                self._save_shopping_items(items)


def create_data_store(
    backend: BackendType = BackendType.JSON,
    data_dir: Path | None = None,
    db_path: Path | None = None,
) -> DataStoreProtocol:
    """Create a data store with the specified backend.

    Args:
        backend: Which backend to use (json or sqlite)
        data_dir: Directory for data files (used by JSON backend, also used
                  as base path for SQLite if db_path not specified)
        db_path: Path to SQLite database file (only used by SQLite backend)

    Returns:
        A DataStore or SQLiteStore instance

    Example:
        # Use JSON backend (default)
        store = create_data_store()

        # Use SQLite with custom path
        store = create_data_store(
            BackendType.SQLITE,
            db_path=Path("./my_data/pantry.db")
        )
    """
    if backend == BackendType.SQLITE:
        from .sqlite_store import SQLiteStore

        if db_path is None and data_dir is not None:
            db_path = data_dir / "pantry.db"

        return SQLiteStore(db_path=db_path)
    else:
        return DataStore(data_dir=data_dir)
