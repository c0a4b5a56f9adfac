"""Store and effect runner: the asynchronous half of the engine.

A ``Store`` owns one state value and applies actions to it one at a time.
Effects returned by the reducer run as asyncio tasks on the
``EffectRunner``; whatever they produce comes back through ``Store.send``.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, Generic, Protocol, TypeVar

from . import places_reducer as places
from . import shopping_list_reducer as shopping
from .data_store import PersistenceError
from .effects import (
    CancelReminders,
    DeleteShoppingItems,
    Effect,
    LoadPlaces,
    LoadShoppingList,
    MarkShoppingItemsPurchased,
    MergeShoppingItem,
    PublishSnapshot,
    Reduction,
    ReplaceAllPlaces,
    RequestAuthorization,
    ScheduleReminder,
    UpdateShoppingItem,
)
from .gateway import PersistenceGateway
from .models import Place
from .reminders import ReminderScheduler
from .snapshot import SnapshotWriter

logger = logging.getLogger(__name__)

S = TypeVar("S")


class Reducer(Protocol[S]):
    def reduce(self, state: S, action: Any) -> Reduction: ...


class EffectRunner:
    """Executes effects against the injected dependencies.

    Every failure is handled here: loads answer with a failure action,
    writes are logged and dropped. Writes of the places collection go
    through a single writer; a queued write that a newer one supersedes is
    skipped, so storage never moves back to an older collection.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        scheduler: ReminderScheduler,
        snapshot_writer: SnapshotWriter | None = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.gateway = gateway
        self.scheduler = scheduler
        self.snapshot_writer = snapshot_writer
        self.now = now
        self._write_lock = asyncio.Lock()
        self._write_seq = 0

    async def run(self, effect: Effect) -> Any:
        """Carry out one effect; returns the action to feed back, if any."""
        match effect:
            case LoadPlaces():
                return await self._load_places()
            case ReplaceAllPlaces(places=snapshot):
                await self._replace_all(snapshot)
            case PublishSnapshot(places=snapshot):
                async with self._write_lock:
                    await self._publish(snapshot)
            case ScheduleReminder(id=rid, title=title, body=body, fire_at=fire_at):
                try:
                    await self.scheduler.schedule(rid, title, body, fire_at)
                except PersistenceError:
                    logger.exception("Failed to schedule reminder %s", rid)
            case CancelReminders(ids=ids):
                try:
                    await self.scheduler.cancel(list(ids))
                except PersistenceError:
                    logger.exception("Failed to cancel %d reminder(s)", len(ids))
            case RequestAuthorization():
                try:
                    granted = await self.scheduler.request_authorization()
                except PersistenceError:
                    logger.warning("Notification authorization failed", exc_info=True)
                    granted = False
                return places.NotificationPermissionResponse(granted)
            case LoadShoppingList():
                return await self._load_shopping_list()
            case MergeShoppingItem():
                return await self._merge_shopping_item(effect)
            case UpdateShoppingItem(item=item):
                await self._write("update shopping item", self.gateway.update_shopping_item(item))
            case DeleteShoppingItems(ids=ids):
                await self._write("delete shopping items", self.gateway.delete_shopping_items(list(ids)))
            case MarkShoppingItemsPurchased(ids=ids, purchased=purchased):
                await self._write(
                    "mark shopping items", self.gateway.mark_purchased(list(ids), purchased)
                )
            case _:
                raise TypeError(f"Unknown effect: {effect!r}")
        return None

    async def _write(self, action: str, call) -> None:
        try:
            await call
        except PersistenceError:
            logger.exception("Failed to %s", action)

    async def _load_places(self) -> Any:
        try:
            loaded = await self.gateway.load()
        except PersistenceError as e:
            logger.warning("Failed to load places: %s", e)
            return places.LoadFailed(str(e))
        return places.LoadSucceeded(tuple(loaded))

    async def _replace_all(self, snapshot: tuple[Place, ...]) -> None:
        self._write_seq += 1
        seq = self._write_seq
        async with self._write_lock:
            if seq != self._write_seq:
                logger.debug("Skipping superseded write #%d", seq)
                return
            try:
                await self.gateway.replace_all(list(snapshot))
            except PersistenceError:
                logger.exception("Failed to save %d place(s)", len(snapshot))
                return
            await self._publish(snapshot)

    async def _publish(self, snapshot: tuple[Place, ...]) -> None:
        if self.snapshot_writer is None:
            return
        await asyncio.to_thread(self.snapshot_writer.publish, snapshot, self.now())

    async def _load_shopping_list(self) -> Any:
        try:
            items = await self.gateway.load_shopping_list()
        except PersistenceError as e:
            logger.warning("Failed to load shopping list: %s", e)
            return shopping.LoadFailed(str(e))
        return shopping.Loaded(tuple(items))

    async def _merge_shopping_item(self, effect: MergeShoppingItem) -> Any:
        try:
            await self.gateway.merge_or_create_shopping_item(
                effect.name,
                effect.quantity,
                effect.source,
                effect.linked_food_item_id,
                effect.place_id,
            )
        except PersistenceError:
            logger.exception("Failed to add %s to the shopping list", effect.name)
            return None
        return await self._load_shopping_list()


class Store(Generic[S]):
    """Single owner of a state value.

    ``send`` reduces synchronously, so actions apply in the order they are
    received. Spawning effects requires a running event loop.
    """

    def __init__(self, state: S, reducer: Reducer[S], runner: EffectRunner):
        self.state = state
        self.reducer = reducer
        self.runner = runner
        self._tasks: set[asyncio.Task] = set()

    def send(self, action: Any) -> Reduction:
        reduction = self.reducer.reduce(self.state, action)
        for effect in reduction.effects:
            self._spawn(effect)
        if reduction.delegate is not None:
            logger.debug("Unhandled delegate at the root: %r", reduction.delegate)
        return reduction

    def _spawn(self, effect: Effect) -> None:
        task = asyncio.get_running_loop().create_task(self._run(effect))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, effect: Effect) -> None:
        # Tasks are never awaited individually; failures end here
        try:
            action = await self.runner.run(effect)
            if action is not None:
                self.send(action)
        except Exception:
            logger.exception("Effect %s failed", type(effect).__name__)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def settle(self) -> None:
        """Wait until no effect, including ones spawned meanwhile, is running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
