"""Application wiring: builds the stores and their dependencies from config."""

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from uuid import UUID, uuid4

from . import places_reducer as places
from . import shopping_list_reducer as shopping
from .background import BackgroundRefresh
from .config import ConfigManager
from .data_store import BackendType, create_data_store
from .deep_links import route
from .environment import Environment
from .gateway import PersistenceGateway, StoreGateway
from .reminders import JSONReminderScheduler, ReminderPolicy
from .runtime import EffectRunner, Store
from .snapshot import SnapshotStore, SnapshotWriter

logger = logging.getLogger(__name__)

REMINDERS_FILE = "reminders.json"


class PantryApp:
    """The engine assembled: root and shopping list stores sharing one runner."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        scheduler: JSONReminderScheduler,
        snapshot_store: SnapshotStore,
        env: Environment | None = None,
        refresh_hour: int = 3,
        refresh_minute: int = 5,
    ):
        self.env = env or Environment()
        self.gateway = gateway
        self.scheduler = scheduler
        self.snapshot_store = snapshot_store
        self.snapshot_writer = SnapshotWriter(snapshot_store, self.env.soon_days)
        self.refresh_hour = refresh_hour
        self.refresh_minute = refresh_minute

        self.runner = EffectRunner(gateway, scheduler, self.snapshot_writer, now=self.env.now)
        self.places = Store(places.PlacesState(), places.PlacesReducer(self.env), self.runner)
        self.shopping = Store(
            shopping.ShoppingListState(), shopping.ShoppingListReducer(self.env), self.runner
        )
        self.background = BackgroundRefresh(gateway, self.snapshot_writer, now=self.env.now)

    @classmethod
    def from_config(
        cls,
        config: ConfigManager,
        data_dir: Path | None = None,
        now: Callable[[], datetime] = datetime.now,
        uuid: Callable[[], UUID] = uuid4,
    ) -> "PantryApp":
        storage_dir = data_dir or config.data.storage_dir
        backend = BackendType(config.data.backend)
        store = create_data_store(backend, data_dir=storage_dir)

        reminders = config.reminders
        env = Environment(
            now=now,
            uuid=uuid,
            reminder_policy=ReminderPolicy(reminders.lead_days, reminders.hour, reminders.minute),
            soon_days=config.expiration.soon_days,
        )
        scheduler = JSONReminderScheduler(
            storage_dir / REMINDERS_FILE, enabled=reminders.enabled, clock=now
        )
        snapshot_path = config.snapshot_path(storage_dir)
        logger.debug("Using %s storage in %s", backend.value, storage_dir)
        return cls(
            StoreGateway(store),
            scheduler,
            SnapshotStore(snapshot_path),
            env,
            refresh_hour=config.widget.refresh_hour,
            refresh_minute=config.widget.refresh_minute,
        )

    @property
    def state(self) -> places.PlacesState:
        return self.places.state

    async def start(self) -> places.PlacesState:
        """Load the collection; the load also publishes the snapshot."""
        self.places.send(places.LoadRequested())
        await self.places.settle()
        return self.places.state

    async def load_shopping_list(self) -> shopping.ShoppingListState:
        self.shopping.send(shopping.LoadRequested())
        await self.shopping.settle()
        return self.shopping.state

    async def send(self, action) -> places.PlacesState:
        """Send a root action and wait for its effects."""
        self.places.send(action)
        await self.places.settle()
        return self.places.state

    async def send_shopping(self, action) -> shopping.ShoppingListState:
        self.shopping.send(action)
        await self.shopping.settle()
        return self.shopping.state

    async def open_link(self, url: str) -> bool:
        """Route a deep link; False when the link is not recognized."""
        action = route(url)
        if action is None:
            return False
        await self.send(action)
        return True

    async def settle(self) -> None:
        await self.places.settle()
        await self.shopping.settle()
