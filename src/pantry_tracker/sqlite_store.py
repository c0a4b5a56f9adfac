"""SQLite-based data persistence for Pantry Tracker.

This module provides SQLite database storage as an alternative to JSON files.
It implements the same interface as DataStore for seamless switching.
"""

import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from uuid import UUID

from .data_store import PersistenceError, apply_merge, sort_shopping_list, storage_errors
from .models import (
    FoodItem,
    Place,
    ShoppingListItem,
    ShoppingSource,
    ShoppingStatus,
)


class SQLiteStore:
    """Manages SQLite database persistence for pantry data."""

    SCHEMA_VERSION = 1

    def __init__(self, db_path: Path | None = None):
        """Initialize SQLite store.

        Args:
            db_path: Path to the SQLite database file. Defaults to ./data/pantry.db
        """
        if db_path is None:
            db_path = Path.cwd() / "data" / "pantry.db"
        self.db_path = db_path
        self._ensure_directories()
        self._init_database()

    def _ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get a database connection; one transaction per use."""
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open database {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(f"Database error: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_database(self) -> None:
        """Initialize database schema if not exists."""
        with self._get_connection() as conn:
            conn.executescript("""
                -- Schema version tracking
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                );

                -- Places
                CREATE TABLE IF NOT EXISTS places (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    icon_name TEXT NOT NULL DEFAULT 'shippingbox',
                    color_hex TEXT NOT NULL DEFAULT '#3B82F6'
                );

                -- Food items, owned by exactly one place
                CREATE TABLE IF NOT EXISTS food_items (
                    id TEXT PRIMARY KEY,
                    place_id TEXT NOT NULL REFERENCES places(id) ON DELETE CASCADE,
                    position INTEGER NOT NULL DEFAULT 0,
                    name TEXT NOT NULL,
                    quantity INTEGER NOT NULL DEFAULT 1,
                    notes TEXT,
                    expiration_date TEXT
                );

                CREATE INDEX IF NOT EXISTS idx_food_items_place
                    ON food_items(place_id, position);

                -- Shopping list
                CREATE TABLE IF NOT EXISTS shopping_list (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    normalized_key TEXT NOT NULL,
                    desired_quantity INTEGER NOT NULL DEFAULT 1,
                    notes TEXT,
                    source TEXT NOT NULL DEFAULT 'manual',
                    status TEXT NOT NULL DEFAULT 'to_buy',
                    linked_food_item_id TEXT,
                    last_place_id TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_shopping_list_key
                    ON shopping_list(normalized_key);

                -- Record schema version
                INSERT OR IGNORE INTO schema_version (version) VALUES (1);
            """)

    # --- Places Operations ---

    def load_places(self) -> list[Place]:
        """Load all places with their items.

        Returns:
            List of places ordered by name
        """
        with self._get_connection() as conn, storage_errors("load places"):
            place_rows = conn.execute("SELECT * FROM places ORDER BY name").fetchall()
            item_rows = conn.execute(
                "SELECT * FROM food_items ORDER BY place_id, position"
            ).fetchall()

            items_by_place: dict[str, list[FoodItem]] = {}
            for row in item_rows:
                items_by_place.setdefault(row["place_id"], []).append(
                    FoodItem(
                        id=UUID(row["id"]),
                        name=row["name"],
                        quantity=row["quantity"],
                        notes=row["notes"],
                        expiration_date=date.fromisoformat(row["expiration_date"])
                        if row["expiration_date"]
                        else None,
                    )
                )

            return [
                Place(
                    id=UUID(row["id"]),
                    name=row["name"],
                    icon_name=row["icon_name"],
                    color_hex=row["color_hex"],
                    items=items_by_place.get(row["id"], []),
                )
                for row in place_rows
            ]

    def replace_all_places(self, places: list[Place]) -> None:
        """Replace every stored place in a single transaction.

        Args:
            places: Complete collection to persist
        """
        with self._get_connection() as conn:
            # Items go with their places through the cascade
            conn.execute("DELETE FROM places")

            for place in places:
                conn.execute(
                    "INSERT INTO places (id, name, icon_name, color_hex) VALUES (?, ?, ?, ?)",
                    (str(place.id), place.name, place.icon_name, place.color_hex),
                )
                for position, item in enumerate(place.items):
                    conn.execute(
                        """
                        INSERT INTO food_items
                        (id, place_id, position, name, quantity, notes, expiration_date)
                        VALUES (?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            str(item.id),
                            str(place.id),
                            position,
                            item.name,
                            item.quantity,
                            item.notes,
                            item.expiration_date.isoformat() if item.expiration_date else None,
                        ),
                    )

    # --- Shopping List Operations ---

    def _row_to_shopping_item(self, row: sqlite3.Row) -> ShoppingListItem:
        return ShoppingListItem(
            id=UUID(row["id"]),
            name=row["name"],
            desired_quantity=row["desired_quantity"],
            notes=row["notes"],
            source=ShoppingSource(row["source"]),
            status=ShoppingStatus(row["status"]),
            linked_food_item_id=UUID(row["linked_food_item_id"])
            if row["linked_food_item_id"]
            else None,
            last_place_id=UUID(row["last_place_id"]) if row["last_place_id"] else None,
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _upsert_shopping_item(self, conn: sqlite3.Connection, item: ShoppingListItem) -> None:
        conn.execute(
            """
            INSERT OR REPLACE INTO shopping_list
            (id, name, normalized_key, desired_quantity, notes, source, status,
             linked_food_item_id, last_place_id, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(item.id),
                item.name,
                item.normalized_key,
                item.desired_quantity,
                item.notes,
                item.source.value,
                item.status.value,
                str(item.linked_food_item_id) if item.linked_food_item_id else None,
                str(item.last_place_id) if item.last_place_id else None,
                item.created_at.isoformat(),
                item.updated_at.isoformat(),
            ),
        )

    def load_shopping_list(self) -> list[ShoppingListItem]:
        """Load the shopping list, newest first.

        Returns:
            List of shopping list entries
        """
        with self._get_connection() as conn, storage_errors("load shopping list"):
            rows = conn.execute("SELECT * FROM shopping_list").fetchall()
            return sort_shopping_list([self._row_to_shopping_item(r) for r in rows])

    def merge_or_create_shopping_item(
        self,
        name: str,
        quantity: int,
        source: ShoppingSource = ShoppingSource.MANUAL,
        linked_food_item_id: UUID | None = None,
        place_id: UUID | None = None,
    ) -> ShoppingListItem:
        """Bump a matching to-buy entry or create a new one.

        Raises:
            ValueError: If the name is blank
        """
        if not name.strip():
            raise ValueError("Shopping item name must not be blank")

        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM shopping_list WHERE status = ?",
                (ShoppingStatus.TO_BUY.value,),
            ).fetchall()
            candidates = [self._row_to_shopping_item(r) for r in rows]
            item, _ = apply_merge(
                candidates, name, quantity, source, linked_food_item_id, place_id, datetime.now()
            )
            self._upsert_shopping_item(conn, item)
            return item

    def update_shopping_item(self, item: ShoppingListItem) -> None:
        """Overwrite the editable fields of a stored entry. Unknown ids are ignored."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT created_at FROM shopping_list WHERE id = ?", (str(item.id),)
            ).fetchone()
            if row is None:
                return
            updated = item.model_copy(
                update={
                    "desired_quantity": max(1, item.desired_quantity),
                    "created_at": datetime.fromisoformat(row["created_at"]),
                    "updated_at": datetime.now(),
                }
            )
            self._upsert_shopping_item(conn, updated)

    def delete_shopping_items(self, ids: Iterable[UUID]) -> None:
        """Delete entries by id."""
        params = [(str(i),) for i in ids]
        if not params:
            return
        with self._get_connection() as conn:
            conn.executemany("DELETE FROM shopping_list WHERE id = ?", params)

    def mark_purchased(self, ids: Iterable[UUID], purchased: bool) -> None:
        """Flip the status of the given entries."""
        status = ShoppingStatus.PURCHASED if purchased else ShoppingStatus.TO_BUY
        now = datetime.now().isoformat()
        params = [(status.value, now, str(i)) for i in ids]
        if not params:
            return
        with self._get_connection() as conn:
            conn.executemany(
                "UPDATE shopping_list SET status = ?, updated_at = ? WHERE id = ?",
                params,
            )
