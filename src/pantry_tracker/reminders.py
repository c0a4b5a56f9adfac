"""Expiration reminders: identifiers, timing policy and a local scheduler."""

import json
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from pathlib import Path
from typing import Protocol
from uuid import UUID

from pydantic import BaseModel, Field

from .data_store import JSONEncoder, storage_errors
from .effects import CancelReminders, Effect, ScheduleReminder
from .models import FoodItem

logger = logging.getLogger(__name__)


class ReminderKind(str, Enum):
    """The two reminders an item with an expiration date gets."""

    PRE_EXPIRY = "pre-expiry"
    DAY_OF = "day-of"


def reminder_id(item_id: UUID, kind: ReminderKind) -> str:
    """Deterministic reminder identifier for an item and kind."""
    return f"item-{item_id}.{kind.value}"


def reminder_ids(item_id: UUID) -> list[str]:
    """Both reminder identifiers of an item."""
    return [reminder_id(item_id, kind) for kind in ReminderKind]


def reminder_ids_for_items(items: Iterable[FoodItem]) -> list[str]:
    """Reminder identifiers of the items that can have reminders pending."""
    ids: list[str] = []
    for item in items:
        if item.expiration_date is not None:
            ids.extend(reminder_ids(item.id))
    return ids


@dataclass(frozen=True)
class ReminderPolicy:
    """When and what to remind about an expiring item.

    The pre-expiry reminder fires ``lead_days`` before the expiration day
    and the day-of reminder on the day itself, both at ``hour:minute``
    local time.
    """

    lead_days: int = 2
    hour: int = 9
    minute: int = 0

    def fire_time(self, expiration_date: date, kind: ReminderKind) -> datetime:
        day = expiration_date
        if kind == ReminderKind.PRE_EXPIRY:
            day = expiration_date - timedelta(days=self.lead_days)
        return datetime.combine(day, time(self.hour, self.minute))

    def content(self, item: FoodItem, kind: ReminderKind) -> tuple[str, str]:
        assert item.expiration_date is not None
        body = f"Expires on {item.expiration_date.strftime('%b %d, %Y')}"
        if kind == ReminderKind.PRE_EXPIRY:
            return f"Expiring soon: {item.name}", body
        return f"Expires today: {item.name}", body

    def plan(
        self,
        item: FoodItem,
        now: datetime,
        kinds: Iterable[ReminderKind] = tuple(ReminderKind),
    ) -> list[Effect]:
        """Effects that bring the item's pending reminders up to date.

        No date cancels every requested kind. A fire time at or before
        ``now`` cancels that reminder instead of scheduling it.
        """
        kinds = list(kinds)
        if item.expiration_date is None:
            return [CancelReminders(tuple(reminder_id(item.id, k) for k in kinds))]

        stale: list[str] = []
        scheduled: list[Effect] = []
        for kind in kinds:
            rid = reminder_id(item.id, kind)
            fire_at = self.fire_time(item.expiration_date, kind)
            if fire_at <= now:
                stale.append(rid)
                continue
            title, body = self.content(item, kind)
            scheduled.append(ScheduleReminder(id=rid, title=title, body=body, fire_at=fire_at))

        if stale:
            return [CancelReminders(tuple(stale)), *scheduled]
        return scheduled

    def plan_all(self, items: Iterable[FoodItem], now: datetime) -> list[Effect]:
        """Reschedule sweep over items that carry a date."""
        effects: list[Effect] = []
        for item in items:
            if item.expiration_date is not None:
                effects.extend(self.plan(item, now))
        return effects


class ReminderScheduler(Protocol):
    """Local notification contract."""

    async def request_authorization(self) -> bool: ...
    async def schedule(self, id: str, title: str, body: str, fire_at: datetime) -> None: ...
    async def cancel(self, ids: list[str]) -> None: ...


class PendingReminder(BaseModel):
    """A reminder waiting to fire."""

    id: str
    title: str
    body: str
    fire_at: datetime


class ReminderFile(BaseModel):
    """On-disk shape of the pending reminders file."""

    reminders: list[PendingReminder] = Field(default_factory=list)


class JSONReminderScheduler:
    """Keeps pending reminders in a JSON file keyed by reminder id.

    File I/O runs on the event loop thread, unlike snapshot publishing
    which goes through a worker thread. Each operation reads, mutates and
    writes the small file without yielding, so concurrent effect tasks
    cannot interleave and lose updates; moving it off the loop would need
    a lock around every read-modify-write.
    """

    def __init__(
        self,
        path: Path,
        enabled: bool = True,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.path = path
        self.enabled = enabled
        self.clock = clock

    def _load(self) -> dict[str, PendingReminder]:
        if not self.path.exists():
            return {}
        with open(self.path) as f:
            stored = ReminderFile.model_validate(json.load(f))
        return {r.id: r for r in stored.reminders}

    def _save(self, pending: dict[str, PendingReminder]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        stored = ReminderFile(reminders=sorted(pending.values(), key=lambda r: r.fire_at))
        with open(self.path, "w") as f:
            json.dump(stored.model_dump(), f, cls=JSONEncoder, indent=2)

    async def request_authorization(self) -> bool:
        return self.enabled

    async def schedule(self, id: str, title: str, body: str, fire_at: datetime) -> None:
        with storage_errors("update reminders"):
            pending = self._load()
            if fire_at <= self.clock():
                # Never create a backdated reminder; drop a stale one instead
                if pending.pop(id, None) is not None:
                    self._save(pending)
                logger.debug("Skipped reminder %s: fire time %s has passed", id, fire_at)
                return
            pending[id] = PendingReminder(id=id, title=title, body=body, fire_at=fire_at)
            self._save(pending)

    async def cancel(self, ids: list[str]) -> None:
        if not ids:
            return
        with storage_errors("update reminders"):
            pending = self._load()
            removed = [pending.pop(i) for i in ids if i in pending]
            if removed:
                self._save(pending)

    def pending(self) -> list[PendingReminder]:
        """All pending reminders, soonest first."""
        with storage_errors("load reminders"):
            return sorted(self._load().values(), key=lambda r: r.fire_at)

    def due(self, now: datetime | None = None) -> list[PendingReminder]:
        """Pending reminders whose fire time has come."""
        now = now or self.clock()
        return [r for r in self.pending() if r.fire_at <= now]
