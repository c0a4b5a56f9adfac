"""Shared test fixtures for Pantry Tracker."""

from datetime import date, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from pantry_tracker.data_store import DataStore, PersistenceError, apply_merge, sort_shopping_list
from pantry_tracker.environment import Environment
from pantry_tracker.models import FoodItem, Place, ShoppingListItem, ShoppingSource, ShoppingStatus
from pantry_tracker.reminders import ReminderPolicy
from pantry_tracker.snapshot import SnapshotStore, SnapshotWriter
from pantry_tracker.sqlite_store import SQLiteStore

NOW = datetime(2026, 3, 10, 12, 0)
TODAY = NOW.date()


def days_from_today(days: int) -> date:
    return TODAY + timedelta(days=days)


def make_item(name: str, expires_in: int | None = None, quantity: int = 1) -> FoodItem:
    """Food item expiring ``expires_in`` days after the fixed test date."""
    expiration = days_from_today(expires_in) if expires_in is not None else None
    return FoodItem(name=name, quantity=quantity, expiration_date=expiration)


class SequentialUUIDs:
    """Deterministic uuid factory: 00000000-...-000000000001 and so on."""

    def __init__(self):
        self.count = 0

    def __call__(self) -> UUID:
        self.count += 1
        return UUID(int=self.count)


class FakeGateway:
    """In-memory persistence gateway recording every call."""

    def __init__(self, places: list[Place] | None = None):
        self.places = [p.model_copy(deep=True) for p in places or []]
        self.shopping: list[ShoppingListItem] = []
        self.calls: list[str] = []
        self.saved: list[list[Place]] = []
        self.fail_load = False
        self.fail_write = False

    async def load(self) -> list[Place]:
        self.calls.append("load")
        if self.fail_load:
            raise PersistenceError("disk unavailable")
        return [p.model_copy(deep=True) for p in self.places]

    async def replace_all(self, places: list[Place]) -> None:
        self.calls.append("replace_all")
        if self.fail_write:
            raise PersistenceError("disk full")
        self.places = [p.model_copy(deep=True) for p in places]
        self.saved.append(self.places)

    async def load_shopping_list(self) -> list[ShoppingListItem]:
        self.calls.append("load_shopping_list")
        if self.fail_load:
            raise PersistenceError("disk unavailable")
        return sort_shopping_list([i.model_copy() for i in self.shopping])

    async def merge_or_create_shopping_item(
        self,
        name: str,
        quantity: int,
        source: ShoppingSource,
        linked_food_item_id: UUID | None = None,
        place_id: UUID | None = None,
    ) -> ShoppingListItem:
        self.calls.append("merge_or_create_shopping_item")
        if self.fail_write:
            raise PersistenceError("disk full")
        item, _ = apply_merge(
            self.shopping, name, quantity, source, linked_food_item_id, place_id, NOW
        )
        return item

    async def update_shopping_item(self, item: ShoppingListItem) -> None:
        self.calls.append("update_shopping_item")
        if self.fail_write:
            raise PersistenceError("disk full")
        self.shopping = [item if i.id == item.id else i for i in self.shopping]

    async def delete_shopping_items(self, ids: list[UUID]) -> None:
        self.calls.append("delete_shopping_items")
        self.shopping = [i for i in self.shopping if i.id not in set(ids)]

    async def mark_purchased(self, ids: list[UUID], purchased: bool) -> None:
        self.calls.append("mark_purchased")
        status = ShoppingStatus.PURCHASED if purchased else ShoppingStatus.TO_BUY
        for item in self.shopping:
            if item.id in ids:
                item.status = status


class FakeScheduler:
    """Reminder scheduler recording scheduled and cancelled ids."""

    def __init__(self, authorized: bool = True):
        self.authorized = authorized
        self.pending: dict[str, datetime] = {}
        self.scheduled: list[str] = []
        self.cancelled: list[str] = []

    async def request_authorization(self) -> bool:
        return self.authorized

    async def schedule(self, id: str, title: str, body: str, fire_at: datetime) -> None:
        self.scheduled.append(id)
        self.pending[id] = fire_at

    async def cancel(self, ids: list[str]) -> None:
        self.cancelled.extend(ids)
        for i in ids:
            self.pending.pop(i, None)


@pytest.fixture
def temp_data_dir(tmp_path):
    """Create a temporary data directory."""
    data_dir = tmp_path / "test_data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def data_store(temp_data_dir):
    """Create a DataStore with temporary directory."""
    return DataStore(data_dir=temp_data_dir)


@pytest.fixture
def sqlite_store(tmp_path):
    """Create a SQLite store with a temporary database."""
    return SQLiteStore(db_path=tmp_path / "test.db")


@pytest.fixture
def env():
    """Environment pinned to the fixed test clock."""
    return Environment(now=lambda: NOW, uuid=SequentialUUIDs(), reminder_policy=ReminderPolicy())


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def snapshot_store(tmp_path):
    return SnapshotStore(tmp_path / "shared" / "widget_snapshot.json")


@pytest.fixture
def snapshot_writer(snapshot_store):
    return SnapshotWriter(snapshot_store)


@pytest.fixture
def kitchen():
    """Places with a mix of expired, soon, later and undated items."""
    fridge = Place(
        id=uuid4(),
        name="Fridge",
        items=[
            make_item("Milk", expires_in=-1),
            make_item("Yogurt", expires_in=2, quantity=4),
            make_item("Butter"),
        ],
    )
    pantry = Place(
        id=uuid4(),
        name="pantry",
        items=[
            make_item("Bread", expires_in=-5),
            make_item("Rice", expires_in=30, quantity=2),
        ],
    )
    return [fridge, pantry]
