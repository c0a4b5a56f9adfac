"""Root state machine: the places collection, navigation and workflows."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Any
from uuid import UUID

from .effects import (
    CancelReminders,
    Effect,
    LoadPlaces,
    PublishSnapshot,
    Reduction,
    ReplaceAllPlaces,
    RequestAuthorization,
)
from .environment import BindingAction, Environment, apply_binding
from .expiration import (
    DEFAULT_SOON_DAYS,
    Expired,
    ExpiringSoon,
    build_expiration_rows,
    is_expired,
)
from .models import DEFAULT_COLOR_HEX, DEFAULT_ICON, BannerKind, FoodItem, Place
from .navigation import (
    CleanupExpired,
    CloseRequested,
    ExpirationScreenState,
    NavigationStack,
    OpenPlaceRequested,
    reduce_expiration,
)
from .place_reducer import PlaceReducer, PlaceState, PlaceUpdated
from .reminders import reminder_ids_for_items

logger = logging.getLogger(__name__)


@dataclass
class PlacesState:
    """The whole collection plus root screen UI state."""

    places: list[PlaceState] = field(default_factory=list)
    path: NavigationStack = field(default_factory=NavigationStack)

    # Add-place form
    is_adding_place: bool = False
    new_place_name: str = ""
    new_place_icon: str = DEFAULT_ICON
    new_place_color_hex: str = DEFAULT_COLOR_HEX

    banner_snoozed_until: dict[BannerKind, datetime] = field(default_factory=dict)
    has_loaded: bool = False
    notifications_authorized: bool | None = None

    def place(self, place_id: UUID) -> PlaceState | None:
        for place in self.places:
            if place.id == place_id:
                return place
        return None

    def all_items(self) -> list[FoodItem]:
        return [item for place in self.places for item in place.items]

    def reset_add_place_form(self) -> None:
        self.is_adding_place = False
        self.new_place_name = ""
        self.new_place_icon = DEFAULT_ICON
        self.new_place_color_hex = DEFAULT_COLOR_HEX


# --- Actions ---


@dataclass(frozen=True)
class LoadRequested:
    pass


@dataclass(frozen=True)
class LoadSucceeded:
    places: tuple[Place, ...]


@dataclass(frozen=True)
class LoadFailed:
    reason: str = ""


@dataclass(frozen=True)
class AddPlaceButtonTapped:
    pass


@dataclass(frozen=True)
class AddPlaceCancelled:
    pass


@dataclass(frozen=True)
class ConfirmAddPlace:
    pass


@dataclass(frozen=True)
class DeletePlaces:
    """Delete the places at these positions of the sorted collection."""

    offsets: tuple[int, ...]


@dataclass(frozen=True)
class PlaceTapped:
    place_id: UUID


@dataclass(frozen=True)
class PathAction:
    """An action addressed to the screen with this navigation element id."""

    element_id: int
    action: Any


@dataclass(frozen=True)
class PopFrom:
    element_id: int


@dataclass(frozen=True)
class DismissBanner:
    kind: BannerKind


@dataclass(frozen=True)
class BannerTapped:
    kind: BannerKind


@dataclass(frozen=True)
class OpenAllItems:
    pass


@dataclass(frozen=True)
class RequestNotificationPermission:
    pass


@dataclass(frozen=True)
class NotificationPermissionResponse:
    granted: bool


PlacesAction = (
    BindingAction
    | LoadRequested
    | LoadSucceeded
    | LoadFailed
    | AddPlaceButtonTapped
    | AddPlaceCancelled
    | ConfirmAddPlace
    | DeletePlaces
    | PlaceTapped
    | PathAction
    | PopFrom
    | DismissBanner
    | BannerTapped
    | OpenAllItems
    | RequestNotificationPermission
    | NotificationPermissionResponse
)


def sort_places(places: list[PlaceState]) -> None:
    """Case-insensitive name order, tie-broken by id string."""
    places.sort(key=lambda p: (p.name.lower(), str(p.id)))


def tomorrow_midnight(now: datetime) -> datetime:
    return datetime.combine(now.date() + timedelta(days=1), time())


def banner_eligible(state: PlacesState, kind: BannerKind, now: datetime) -> bool:
    """A banner may render once its snooze has run out."""
    snoozed_until = state.banner_snoozed_until.get(kind)
    return snoozed_until is None or now >= snoozed_until


def visible_banners(
    state: PlacesState, now: datetime, soon_days: int = DEFAULT_SOON_DAYS
) -> list[BannerKind]:
    """Banners that are both eligible and have something to show."""
    today = now.date()
    counts = {
        BannerKind.EXPIRED: sum(p.expired_count(today) for p in state.places),
        BannerKind.EXPIRING_SOON: sum(p.expiring_soon_count(soon_days, today) for p in state.places),
    }
    return [kind for kind, count in counts.items() if count > 0 and banner_eligible(state, kind, now)]


class PlacesReducer:
    """Reduces root actions and integrates child screen delegates."""

    BINDABLE = frozenset({"new_place_name", "new_place_icon", "new_place_color_hex"})

    def __init__(self, env: Environment | None = None):
        self.env = env or Environment()
        self.place_reducer = PlaceReducer(self.env)

    def reduce(self, state: PlacesState, action: PlacesAction) -> Reduction:
        match action:
            case BindingAction():
                apply_binding(state, action, self.BINDABLE)
                return Reduction()

            case LoadRequested():
                return Reduction([LoadPlaces()])

            case LoadSucceeded(places=places):
                return self._load_succeeded(state, places)

            case LoadFailed(reason=reason):
                logger.debug("Keeping %d place(s) after failed load: %s", len(state.places), reason)
                return Reduction()

            case AddPlaceButtonTapped():
                state.is_adding_place = True
                return Reduction()

            case AddPlaceCancelled():
                state.reset_add_place_form()
                return Reduction()

            case ConfirmAddPlace():
                return self._confirm_add_place(state)

            case DeletePlaces(offsets=offsets):
                return self._delete_places(state, offsets)

            case PlaceTapped(place_id=place_id):
                self._push_place(state, place_id)
                return Reduction()

            case PathAction(element_id=element_id, action=child_action):
                return self._path_action(state, element_id, child_action)

            case PopFrom(element_id=element_id):
                state.path.pop_from(element_id)
                return Reduction()

            case DismissBanner(kind=kind):
                state.banner_snoozed_until[kind] = tomorrow_midnight(self.env.now())
                return Reduction()

            case BannerTapped(kind=kind):
                expiration_kind = (
                    Expired() if kind == BannerKind.EXPIRED else ExpiringSoon(self.env.soon_days)
                )
                rows = build_expiration_rows(expiration_kind, state.places, self.env.today())
                state.path.push(ExpirationScreenState(kind=expiration_kind, rows=rows))
                return Reduction()

            case OpenAllItems():
                state.path.clear()
                return Reduction()

            case RequestNotificationPermission():
                return Reduction([RequestAuthorization()])

            case NotificationPermissionResponse(granted=granted):
                state.notifications_authorized = granted
                return Reduction()

            case _:
                raise TypeError(f"Unknown places action: {action!r}")

    # --- Persistence ---

    def _persist(self, state: PlacesState) -> list[Effect]:
        """Write the full collection, unless that could clobber unloaded data.

        Before the initial load completes an empty collection says nothing
        about what is stored, so it is never written.
        """
        if not state.has_loaded and not state.places:
            logger.debug("Skipping save: initial load has not completed")
            return []
        return [ReplaceAllPlaces(tuple(p.to_place() for p in state.places))]

    # --- Workflows ---

    def _load_succeeded(self, state: PlacesState, places: tuple[Place, ...]) -> Reduction:
        loaded: list[PlaceState] = []
        seen: set[UUID] = set()
        for place in places:
            if place.id in seen:
                continue
            seen.add(place.id)
            loaded.append(PlaceState.from_place(place))

        state.places = loaded
        sort_places(state.places)
        state.has_loaded = True
        self._refresh_place_screens(state)
        logger.debug("Loaded %d place(s)", len(state.places))

        effects = self.env.reminder_policy.plan_all(state.all_items(), self.env.now())
        effects.append(PublishSnapshot(tuple(p.to_place() for p in state.places)))
        return Reduction(effects)

    def _confirm_add_place(self, state: PlacesState) -> Reduction:
        name = state.new_place_name.strip()
        if not name:
            return Reduction()

        state.places.append(
            PlaceState(
                id=self.env.uuid(),
                name=name,
                icon_name=state.new_place_icon,
                color_hex=state.new_place_color_hex,
            )
        )
        state.reset_add_place_form()
        sort_places(state.places)
        return Reduction(self._persist(state))

    def _delete_places(self, state: PlacesState, offsets: tuple[int, ...]) -> Reduction:
        doomed = {state.places[i].id for i in offsets if 0 <= i < len(state.places)}
        if not doomed:
            return Reduction()

        cancel_ids = reminder_ids_for_items(
            item for place in state.places if place.id in doomed for item in place.items
        )
        state.places = [p for p in state.places if p.id not in doomed]
        state.path.remove_where(lambda s: isinstance(s, PlaceState) and s.id in doomed)
        sort_places(state.places)

        effects = self._persist(state)
        if cancel_ids:
            effects.append(CancelReminders(tuple(cancel_ids)))
        return Reduction(effects)

    def _cleanup_expired(self, state: PlacesState, element_id: int) -> Reduction:
        today = self.env.today()
        removed: list[FoodItem] = []
        for place in state.places:
            expired = [i for i in place.items if is_expired(i.expiration_date, today)]
            if expired:
                removed.extend(expired)
                place.items = [i for i in place.items if not is_expired(i.expiration_date, today)]

        state.path.pop_from(element_id)
        self._refresh_place_screens(state)
        sort_places(state.places)
        logger.info("Removed %d expired item(s)", len(removed))

        effects = self._persist(state)
        cancel_ids = reminder_ids_for_items(removed)
        if cancel_ids:
            effects.append(CancelReminders(tuple(cancel_ids)))
        return Reduction(effects)

    def _integrate_place(self, state: PlacesState, child: PlaceState) -> Reduction:
        for index, place in enumerate(state.places):
            if place.id == child.id:
                state.places[index] = child.model_copy(deep=True)
                break
        else:
            logger.debug("Ignoring update for unknown place %s", child.id)
            return Reduction()

        sort_places(state.places)
        effects = self._persist(state)
        # Idempotent: covers new items and edited dates alike
        effects.extend(self.env.reminder_policy.plan_all(child.items, self.env.now()))
        return Reduction(effects)

    # --- Navigation ---

    def _push_place(self, state: PlacesState, place_id: UUID) -> None:
        place = state.place(place_id)
        if place is None:
            return
        state.path.push(place.model_copy(deep=True))

    def _refresh_place_screens(self, state: PlacesState) -> None:
        """Bring open place screens in line with the collection."""
        for screen in state.path.place_screens():
            place = state.place(screen.id)
            if place is not None:
                screen.items = [i.model_copy() for i in place.items]

    def _path_action(self, state: PlacesState, element_id: int, action: Any) -> Reduction:
        element = state.path.element(element_id)
        if element is None:
            logger.debug("Dropping action for closed screen %s: %r", element_id, action)
            return Reduction()

        if isinstance(element.state, PlaceState):
            child = self.place_reducer.reduce(element.state, action)
            reduction = Reduction(list(child.effects))
            if isinstance(child.delegate, PlaceUpdated):
                reduction.extend(self._integrate_place(state, child.delegate.state).effects)
            return reduction

        child = reduce_expiration(element.state, action)
        reduction = Reduction(list(child.effects))
        match child.delegate:
            case CleanupExpired():
                reduction.extend(self._cleanup_expired(state, element_id).effects)
            case CloseRequested():
                state.path.pop_from(element_id)
            case OpenPlaceRequested(place_id=place_id):
                self._push_place(state, place_id)
        return reduction
