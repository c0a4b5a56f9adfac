"""Asynchronous persistence gateway over a storage backend."""

import asyncio
from collections.abc import Callable, Iterable
from typing import Protocol, TypeVar
from uuid import UUID

from .data_store import DataStoreProtocol
from .models import Place, ShoppingListItem, ShoppingSource

T = TypeVar("T")


class PersistenceGateway(Protocol):
    """Async persistence contract consumed by the effect runner.

    Every method may raise PersistenceError.
    """

    async def load(self) -> list[Place]: ...
    async def replace_all(self, places: list[Place]) -> None: ...
    async def load_shopping_list(self) -> list[ShoppingListItem]: ...
    async def merge_or_create_shopping_item(
        self,
        name: str,
        quantity: int,
        source: ShoppingSource,
        linked_food_item_id: UUID | None = None,
        place_id: UUID | None = None,
    ) -> ShoppingListItem: ...
    async def update_shopping_item(self, item: ShoppingListItem) -> None: ...
    async def delete_shopping_items(self, ids: list[UUID]) -> None: ...
    async def mark_purchased(self, ids: list[UUID], purchased: bool) -> None: ...


class StoreGateway:
    """Runs a synchronous DataStore/SQLiteStore off the event loop.

    Calls are serialized so the backend only ever sees one operation at a
    time; the lock hands out access in request order.
    """

    def __init__(self, store: DataStoreProtocol):
        self.store = store
        self._lock = asyncio.Lock()

    async def _call(self, func: Callable[..., T], *args) -> T:
        async with self._lock:
            return await asyncio.to_thread(func, *args)

    async def load(self) -> list[Place]:
        return await self._call(self.store.load_places)

    async def replace_all(self, places: list[Place]) -> None:
        await self._call(self.store.replace_all_places, places)

    async def load_shopping_list(self) -> list[ShoppingListItem]:
        return await self._call(self.store.load_shopping_list)

    async def merge_or_create_shopping_item(
        self,
        name: str,
        quantity: int,
        source: ShoppingSource,
        linked_food_item_id: UUID | None = None,
        place_id: UUID | None = None,
    ) -> ShoppingListItem:
        return await self._call(
            self.store.merge_or_create_shopping_item,
            name,
            quantity,
            source,
            linked_food_item_id,
            place_id,
        )

    async def update_shopping_item(self, item: ShoppingListItem) -> None:
        await self._call(self.store.update_shopping_item, item)

    async def delete_shopping_items(self, ids: Iterable[UUID]) -> None:
        await self._call(self.store.delete_shopping_items, list(ids))

    async def mark_purchased(self, ids: Iterable[UUID], purchased: bool) -> None:
        await self._call(self.store.mark_purchased, list(ids), purchased)
