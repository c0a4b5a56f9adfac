"""Tests for SQLite data store implementation."""

import sqlite3

import pytest

from pantry_tracker.data_store import PersistenceError
from pantry_tracker.models import FoodItem, Place


class TestSQLiteStoreInit:
    """Tests for SQLite store initialization."""

    def test_creates_database(self, sqlite_store):
        assert sqlite_store.db_path.exists()

    def test_schema_version(self, sqlite_store):
        conn = sqlite3.connect(sqlite_store.db_path)
        try:
            version = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()[0]
        finally:
            conn.close()
        assert version == sqlite_store.SCHEMA_VERSION

    def test_reopen_keeps_data(self, sqlite_store):
        sqlite_store.replace_all_places([Place(name="Fridge")])
        reopened = type(sqlite_store)(db_path=sqlite_store.db_path)
        assert [p.name for p in reopened.load_places()] == ["Fridge"]


class TestSQLiteReplaceAll:
    def test_items_cascade_with_places(self, sqlite_store):
        sqlite_store.replace_all_places([Place(name="Fridge", items=[FoodItem(name="Milk")])])
        sqlite_store.replace_all_places([])

        conn = sqlite3.connect(sqlite_store.db_path)
        try:
            count = conn.execute("SELECT COUNT(*) FROM food_items").fetchone()[0]
        finally:
            conn.close()
        assert count == 0

    def test_failed_replace_leaves_previous_collection(self, sqlite_store):
        """A failing write rolls back; nothing is partially written."""
        milk = FoodItem(name="Milk")
        sqlite_store.replace_all_places([Place(name="Fridge", items=[milk])])

        # Same item id twice violates the primary key halfway through
        broken = [
            Place(name="Fridge", items=[milk]),
            Place(name="Freezer", items=[milk.model_copy()]),
        ]
        with pytest.raises(PersistenceError):
            sqlite_store.replace_all_places(broken)

        loaded = sqlite_store.load_places()
        assert [p.name for p in loaded] == ["Fridge"]
        assert loaded[0].items == [milk]


class TestSQLiteShoppingList:
    def test_normalized_key_stored(self, sqlite_store):
        sqlite_store.merge_or_create_shopping_item("  Brown   Rice", 1)
        conn = sqlite3.connect(sqlite_store.db_path)
        try:
            key = conn.execute("SELECT normalized_key FROM shopping_list").fetchone()[0]
        finally:
            conn.close()
        assert key == "brown rice"
