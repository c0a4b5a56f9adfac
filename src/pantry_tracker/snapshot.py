"""Summary snapshot: aggregate counts published for the home-screen widget."""

import json
import logging
from collections.abc import Iterable
from datetime import datetime, time, timedelta
from pathlib import Path

from .data_store import JSONEncoder, PersistenceError, storage_errors
from .expiration import DEFAULT_SOON_DAYS, days_until
from .models import Place, WidgetSnapshot

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "widget.snapshot.v1"

LINK_ALL_ITEMS = "pantry://items"
LINK_EXPIRING_SOON = "pantry://expiration?filter=soon"
LINK_EXPIRED = "pantry://expiration?filter=expired"


def compute_snapshot(
    places: Iterable[Place],
    soon_days: int = DEFAULT_SOON_DAYS,
    now: datetime | None = None,
) -> WidgetSnapshot:
    """Aggregate counts over every item of every place."""
    now = now or datetime.now()
    today = now.date()
    total = 0
    expiring_soon = 0
    expired = 0

    for place in places:
        for item in place.items:
            total += max(0, item.quantity)
            days = days_until(item.expiration_date, today)
            if days is None:
                continue
            if days < 0:
                expired += 1
            elif days <= soon_days:
                expiring_soon += 1

    return WidgetSnapshot(
        total_items=total,
        expiring_soon=expiring_soon,
        expired=expired,
        updated_at=now,
    )


def next_refresh_time(now: datetime | None = None, hour: int = 3, minute: int = 5) -> datetime:
    """Next local ``hour:minute`` strictly after ``now``."""
    now = now or datetime.now()
    candidate = datetime.combine(now.date(), time(hour, minute))
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def widget_link(snapshot: WidgetSnapshot) -> str:
    """The deep link a single tap on the summary opens."""
    if snapshot.expired > 0:
        return LINK_EXPIRED
    if snapshot.expiring_soon > 0:
        return LINK_EXPIRING_SOON
    return LINK_ALL_ITEMS


class SnapshotStore:
    """Shared key-value slot (a JSON file) holding the published snapshot."""

    def __init__(self, path: Path, key: str = SNAPSHOT_KEY):
        self.path = path
        self.key = key

    def _read_all(self) -> dict:
        if not self.path.exists():
            return {}
        with open(self.path) as f:
            return json.load(f)

    def save(self, snapshot: WidgetSnapshot) -> None:
        """Write the snapshot under its key, keeping other keys in the slot."""
        with storage_errors("publish snapshot"):
            data = self._read_all()
            data[self.key] = snapshot.model_dump()
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp_path, "w") as f:
                json.dump(data, f, cls=JSONEncoder, indent=2)
            tmp_path.replace(self.path)

    def load(self) -> WidgetSnapshot | None:
        """The last published snapshot, if any and readable."""
        try:
            record = self._read_all().get(self.key)
            if record is None:
                return None
            return WidgetSnapshot.model_validate(record)
        except (OSError, ValueError):
            logger.warning("Unreadable snapshot at %s", self.path, exc_info=True)
            return None

    def load_or_default(self, now: datetime | None = None) -> WidgetSnapshot:
        """The last snapshot or all zeros when nothing was ever published."""
        return self.load() or WidgetSnapshot(updated_at=now or datetime.now())


class SnapshotWriter:
    """Computes and publishes snapshots; never raises."""

    def __init__(self, store: SnapshotStore, soon_days: int = DEFAULT_SOON_DAYS):
        self.store = store
        self.soon_days = soon_days

    def publish(self, places: Iterable[Place], now: datetime | None = None) -> WidgetSnapshot | None:
        snapshot = compute_snapshot(places, self.soon_days, now)
        try:
            self.store.save(snapshot)
        except PersistenceError:
            logger.warning("Failed to publish snapshot", exc_info=True)
            return None
        logger.debug(
            "Published snapshot: %d items, %d soon, %d expired",
            snapshot.total_items,
            snapshot.expiring_soon,
            snapshot.expired,
        )
        return snapshot
