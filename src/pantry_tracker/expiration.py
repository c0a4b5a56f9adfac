"""Expiration facts and the expired / expiring-soon row builder.

Everything here is pure. ``today`` defaults to the local current date and
can be pinned by callers (reducers pass the date of their injected clock).
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from .models import ExpirationRow, Place

DEFAULT_SOON_DAYS = 3


@dataclass(frozen=True)
class Expired:
    """Items whose expiration day has passed."""


@dataclass(frozen=True)
class ExpiringSoon:
    """Items expiring within ``days`` days, today included."""

    days: int = DEFAULT_SOON_DAYS


ExpirationKind = Expired | ExpiringSoon


def days_until(expiration_date: date | None, today: date | None = None) -> int | None:
    """Calendar days from today to ``expiration_date``; negative in the past."""
    if expiration_date is None:
        return None
    return (expiration_date - (today or date.today())).days


def is_expired(expiration_date: date | None, today: date | None = None) -> bool:
    """True iff the date is present and already past."""
    days = days_until(expiration_date, today)
    return days is not None and days < 0


def is_expiring_soon(
    expiration_date: date | None,
    within_days: int = DEFAULT_SOON_DAYS,
    today: date | None = None,
) -> bool:
    """True iff the date is present and 0 <= days <= ``within_days``."""
    days = days_until(expiration_date, today)
    return days is not None and 0 <= days <= within_days


def matches(kind: ExpirationKind, days: int | None) -> bool:
    """Whether a day count belongs to the given expiration view."""
    if days is None:
        return False
    if isinstance(kind, Expired):
        return days < 0
    return 0 <= days <= kind.days


def build_expiration_rows(
    kind: ExpirationKind,
    places: Iterable[Place],
    today: date | None = None,
) -> list[ExpirationRow]:
    """Flatten all items across places into sorted rows for ``kind``.

    Expired rows come most-overdue first. Expiring-soon rows come soonest
    first, with undated rows (never produced by the filter) last.
    """
    today = today or date.today()
    rows: list[ExpirationRow] = []

    for place in places:
        for item in place.items:
            days = days_until(item.expiration_date, today)
            if not matches(kind, days):
                continue
            rows.append(
                ExpirationRow(
                    id=item.id,
                    place_id=place.id,
                    place_name=place.name,
                    place_icon=place.icon_name,
                    name=item.name,
                    quantity=item.quantity,
                    expiration_date=item.expiration_date,
                    days_until_expiry=days,
                )
            )

    if isinstance(kind, Expired):
        rows.sort(key=lambda r: r.days_until_expiry if r.days_until_expiry is not None else 0)
    else:
        rows.sort(
            key=lambda r: r.days_until_expiry
            if r.days_until_expiry is not None
            else float("inf")
        )
    return rows
