"""Pantry Tracker - Food across places, expiration reminders and a shopping list."""

from .app import PantryApp
from .config import ConfigManager
from .data_store import BackendType, DataStore, PersistenceError, create_data_store
from .deep_links import route
from .gateway import PersistenceGateway, StoreGateway
from .models import (
    BannerKind,
    ExpirationRow,
    FoodItem,
    Place,
    ShoppingListItem,
    ShoppingSource,
    ShoppingStatus,
    WidgetSnapshot,
)
from .output_formatter import OutputFormatter
from .reminders import JSONReminderScheduler, ReminderPolicy
from .runtime import EffectRunner, Store
from .snapshot import SnapshotStore, SnapshotWriter, compute_snapshot
from .sqlite_store import SQLiteStore

__version__ = "0.1.0"

__all__ = [
    "BackendType",
    "BannerKind",
    "compute_snapshot",
    "ConfigManager",
    "create_data_store",
    "DataStore",
    "EffectRunner",
    "ExpirationRow",
    "FoodItem",
    "JSONReminderScheduler",
    "OutputFormatter",
    "PantryApp",
    "PersistenceError",
    "PersistenceGateway",
    "Place",
    "ReminderPolicy",
    "route",
    "ShoppingListItem",
    "ShoppingSource",
    "ShoppingStatus",
    "SnapshotStore",
    "SnapshotWriter",
    "SQLiteStore",
    "Store",
    "StoreGateway",
    "WidgetSnapshot",
]
