"""CLI entry point for Pantry Tracker."""

import asyncio
import logging
from datetime import date
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.logging import RichHandler

from . import place_reducer as place
from . import places_reducer as root
from . import shopping_list_reducer as shopping
from .app import PantryApp
from .config import ConfigManager
from .data_store import PersistenceError
from .environment import BindingAction
from .expiration import Expired
from .item_normalizer import normalize_key
from .models import DEFAULT_COLOR_HEX, DEFAULT_ICON, BannerKind, FoodItem, ShoppingListItem
from .navigation import CleanupAllTapped, ExpirationScreenState
from .output_formatter import OutputFormatter
from .place_reducer import PlaceState
from .snapshot import next_refresh_time, widget_link

app = typer.Typer(
    name="pantry",
    help="Track food across places, expiration reminders and a shopping list",
    no_args_is_help=True,
)

# Global state for formatter and config (set by callback)
formatter: OutputFormatter = OutputFormatter()
config: ConfigManager | None = None
data_dir_override: Path | None = None


class NotFoundError(LookupError):
    """A place, item or shopping entry reference matched nothing."""


def get_config() -> ConfigManager:
    """Get or create ConfigManager instance."""
    global config
    if config is None:
        config = ConfigManager()
    return config


def build_app() -> PantryApp:
    return PantryApp.from_config(get_config(), data_dir=data_dir_override)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


@app.callback()
def main(
    json_output: Annotated[
        bool, typer.Option("--json", help="Output as JSON for programmatic use")
    ] = False,
    data_dir: Annotated[Path | None, typer.Option("--data-dir", help="Data directory path")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    """Pantry Tracker CLI - Know what you have and when it expires."""
    global formatter, config, data_dir_override

    formatter = OutputFormatter(json_mode=json_output)
    config = ConfigManager()
    # CLI --data-dir overrides config, which overrides default
    data_dir_override = data_dir

    setup_logging("DEBUG" if verbose else config.logging.level)


def fail(message: str, error_code: str | None = None) -> None:
    formatter.error(message, error_code=error_code)
    raise typer.Exit(code=1)


# --- Lookups ---


def find_place_index(state: root.PlacesState, ref: str) -> int:
    """Resolve a place by exact name (case-insensitive) or id prefix."""
    key = ref.strip().lower()
    for index, candidate in enumerate(state.places):
        if candidate.name.lower() == key:
            return index
    for index, candidate in enumerate(state.places):
        if str(candidate.id).startswith(key):
            return index
    raise NotFoundError(f"Place '{ref}' not found")


def find_item_index(items: list[FoodItem], ref: str) -> int:
    key = ref.strip().lower()
    for index, item in enumerate(items):
        if item.name.lower() == key:
            return index
    for index, item in enumerate(items):
        if str(item.id).startswith(key):
            return index
    raise NotFoundError(f"Item '{ref}' not found")


def find_shopping_item(items: list[ShoppingListItem], ref: str) -> ShoppingListItem:
    key = normalize_key(ref)
    for item in items:
        if item.normalized_key == key:
            return item
    for item in items:
        if str(item.id).startswith(ref.strip().lower()):
            return item
    raise NotFoundError(f"Shopping list item '{ref}' not found")


# --- Output helpers ---


def place_payload(state: PlaceState, pantry: PantryApp) -> dict[str, Any]:
    today = pantry.env.today()
    data = state.to_place().model_dump()
    data["expired_count"] = state.expired_count(today)
    data["expiring_soon_count"] = state.expiring_soon_count(pantry.env.soon_days, today)
    return data


def places_output(pantry: PantryApp) -> dict[str, Any]:
    state = pantry.state
    soon_days = pantry.env.soon_days
    banners = root.visible_banners(state, pantry.env.now(), soon_days)
    return {
        "success": True,
        "data": {
            "places": [place_payload(p, pantry) for p in state.places],
            "banners": [b.value for b in banners],
            "count": len(state.places),
        },
    }


def rows_output(screen: ExpirationScreenState, title: str) -> dict[str, Any]:
    return {
        "success": True,
        "data": {
            "title": title,
            "rows": [r.model_dump() for r in screen.rows],
            "count": len(screen.rows),
        },
    }


def shopping_output(state: shopping.ShoppingListState) -> dict[str, Any]:
    return {
        "success": True,
        "data": {
            "shopping_list": [i.model_dump() for i in state.items],
            "count": len(state.items),
        },
    }


def top_expiration_screen(pantry: PantryApp) -> tuple[int, ExpirationScreenState]:
    element = pantry.state.path.top
    if element is None or not isinstance(element.state, ExpirationScreenState):
        raise NotFoundError("No expiration list is open")
    return element.id, element.state


async def load_places(pantry: PantryApp) -> root.PlacesState:
    """Load the collection; refuse to go on when storage could not be read.

    Every command that saves writes the whole collection, so continuing
    after a failed load would replace what is stored.
    """
    state = await pantry.start()
    if not state.has_loaded:
        raise PersistenceError("Could not load places; stored data was left untouched")
    return state


def run(coro):
    """Run one engine session to completion."""
    try:
        return asyncio.run(coro)
    except NotFoundError as e:
        fail(str(e), error_code="NOT_FOUND")
    except PersistenceError as e:
        fail(str(e), error_code="STORAGE_ERROR")


# --- Places ---

places_app = typer.Typer(help="Manage places (pantry, fridge, freezer...)")
app.add_typer(places_app, name="places")


@places_app.command("list")
def places_list() -> None:
    """List places with their expiration counts."""

    async def session():
        pantry = build_app()
        await load_places(pantry)
        return places_output(pantry)

    result = run(session())
    formatter.output(result, f"{result['data']['count']} places")


@places_app.command("show")
def places_show(
    place_ref: Annotated[str, typer.Argument(help="Place name or id prefix")],
    search: Annotated[str | None, typer.Option("--search", "-s", help="Filter items by name")] = None,
) -> None:
    """Show the items of a place."""

    async def session():
        pantry = build_app()
        await load_places(pantry)
        index = find_place_index(pantry.state, place_ref)
        selected = pantry.state.places[index]
        if search:
            selected.search_query = search
        data = place_payload(selected, pantry)
        data["items"] = [i.model_dump() for i in selected.filtered_items()]
        return {"success": True, "data": {"place": data}}

    result = run(session())
    formatter.output(result)


@places_app.command("add")
def places_add(
    name: Annotated[str, typer.Argument(help="Place name")],
    icon: Annotated[str, typer.Option("--icon", "-i", help="Icon name")] = DEFAULT_ICON,
    color: Annotated[str, typer.Option("--color", "-c", help="Color as #RRGGBB")] = DEFAULT_COLOR_HEX,
) -> None:
    """Add a place."""
    if not name.strip():
        fail("Place name must not be blank", error_code="INVALID_NAME")

    async def session():
        pantry = build_app()
        await load_places(pantry)
        pantry.places.send(root.AddPlaceButtonTapped())
        pantry.places.send(BindingAction("new_place_name", name))
        pantry.places.send(BindingAction("new_place_icon", icon))
        pantry.places.send(BindingAction("new_place_color_hex", color))
        await pantry.send(root.ConfirmAddPlace())
        return places_output(pantry)

    result = run(session())
    formatter.output(result, f"Added place {name.strip()}")


@places_app.command("remove")
def places_remove(
    place_ref: Annotated[str, typer.Argument(help="Place name or id prefix")],
) -> None:
    """Remove a place with all its items and reminders."""

    async def session():
        pantry = build_app()
        await load_places(pantry)
        index = find_place_index(pantry.state, place_ref)
        removed = pantry.state.places[index].name
        await pantry.send(root.DeletePlaces((index,)))
        return removed, places_output(pantry)

    removed, result = run(session())
    formatter.output(result, f"Removed place {removed}")


# --- Items ---

items_app = typer.Typer(help="Manage the food items of a place")
app.add_typer(items_app, name="items")


async def open_place(pantry: PantryApp, place_ref: str) -> int:
    """Push the place screen and return its navigation element id."""
    await load_places(pantry)
    index = find_place_index(pantry.state, place_ref)
    pantry.places.send(root.PlaceTapped(pantry.state.places[index].id))
    top = pantry.state.path.top
    if top is None:
        raise NotFoundError(f"Place '{place_ref}' could not be opened")
    return top.id


async def send_to_place(pantry: PantryApp, element_id: int, action) -> PlaceState:
    await pantry.send(root.PathAction(element_id, action))
    element = pantry.state.path.element(element_id)
    if element is None or not isinstance(element.state, PlaceState):
        raise NotFoundError("Place screen was closed")
    return element.state


def place_output(pantry: PantryApp, screen: PlaceState) -> dict[str, Any]:
    # The collection holds the integrated copy
    current = pantry.state.place(screen.id) or screen
    return {"success": True, "data": {"place": place_payload(current, pantry)}}


@items_app.command("add")
def items_add(
    place_ref: Annotated[str, typer.Argument(help="Place name or id prefix")],
    name: Annotated[str, typer.Argument(help="Item name")],
    quantity: Annotated[int, typer.Option("--quantity", "-q", help="Quantity", min=0)] = 1,
    notes: Annotated[str | None, typer.Option("--notes", "-n", help="Notes")] = None,
    expires: Annotated[
        str | None, typer.Option("--expires", "-e", help="Expiration date (YYYY-MM-DD)")
    ] = None,
) -> None:
    """Add a food item to a place."""
    if not name.strip():
        fail("Item name must not be blank", error_code="INVALID_NAME")
    try:
        expiration = date.fromisoformat(expires) if expires else None
    except ValueError:
        fail(f"Invalid date: {expires}", error_code="INVALID_DATE")

    async def session():
        pantry = build_app()
        element_id = await open_place(pantry, place_ref)
        for field_name, value in (
            ("new_item_name", name),
            ("new_item_qty", quantity),
            ("new_item_notes", notes or ""),
            ("new_item_expiry", expiration),
        ):
            pantry.places.send(root.PathAction(element_id, BindingAction(field_name, value)))
        screen = await send_to_place(pantry, element_id, place.ConfirmAddItem())
        return place_output(pantry, screen)

    result = run(session())
    formatter.output(result, f"Added {name.strip()} to {result['data']['place']['name']}")


@items_app.command("remove")
def items_remove(
    place_ref: Annotated[str, typer.Argument(help="Place name or id prefix")],
    item_ref: Annotated[str, typer.Argument(help="Item name or id prefix")],
) -> None:
    """Remove a food item and cancel its reminders."""

    async def session():
        pantry = build_app()
        element_id = await open_place(pantry, place_ref)
        screen = pantry.state.path.element(element_id).state
        index = find_item_index(screen.items, item_ref)
        screen = await send_to_place(pantry, element_id, place.DeleteItems((index,)))
        return place_output(pantry, screen)

    result = run(session())
    formatter.output(result, f"Removed {item_ref} from {result['data']['place']['name']}")


@items_app.command("qty")
def items_qty(
    place_ref: Annotated[str, typer.Argument(help="Place name or id prefix")],
    item_ref: Annotated[str, typer.Argument(help="Item name or id prefix")],
    quantity: Annotated[int, typer.Argument(help="New quantity")],
) -> None:
    """Set the quantity of a food item."""

    async def session():
        pantry = build_app()
        element_id = await open_place(pantry, place_ref)
        screen = pantry.state.path.element(element_id).state
        item = screen.items[find_item_index(screen.items, item_ref)]
        screen = await send_to_place(pantry, element_id, place.QuantityChanged(item.id, quantity))
        return place_output(pantry, screen)

    result = run(session())
    formatter.output(result, f"Updated quantity of {item_ref}")


@items_app.command("expire")
def items_expire(
    place_ref: Annotated[str, typer.Argument(help="Place name or id prefix")],
    item_ref: Annotated[str, typer.Argument(help="Item name or id prefix")],
    expires: Annotated[
        str | None, typer.Argument(help="Expiration date (YYYY-MM-DD); omit to clear")
    ] = None,
) -> None:
    """Set or clear the expiration date of a food item."""
    try:
        expiration = date.fromisoformat(expires) if expires else None
    except ValueError:
        fail(f"Invalid date: {expires}", error_code="INVALID_DATE")

    async def session():
        pantry = build_app()
        element_id = await open_place(pantry, place_ref)
        screen = pantry.state.path.element(element_id).state
        item = screen.items[find_item_index(screen.items, item_ref)]
        screen = await send_to_place(pantry, element_id, place.SetItemExpiry(item.id, expiration))
        return place_output(pantry, screen)

    result = run(session())
    message = f"{item_ref} expires on {expiration}" if expiration else f"Cleared expiration of {item_ref}"
    formatter.output(result, message)


# --- Expiration ---


@app.command()
def expiring(
    days: Annotated[int | None, typer.Option("--days", "-d", help="Days to look ahead", min=0)] = None,
) -> None:
    """List items expiring soon."""

    async def session():
        pantry = build_app()
        if days is not None:
            pantry.env.soon_days = days
        await load_places(pantry)
        await pantry.send(root.BannerTapped(BannerKind.EXPIRING_SOON))
        _, screen = top_expiration_screen(pantry)
        return rows_output(screen, f"Expiring within {pantry.env.soon_days} days")

    result = run(session())
    formatter.output(result, f"{result['data']['count']} items expiring soon")


@app.command()
def expired() -> None:
    """List expired items."""

    async def session():
        pantry = build_app()
        await load_places(pantry)
        await pantry.send(root.BannerTapped(BannerKind.EXPIRED))
        _, screen = top_expiration_screen(pantry)
        return rows_output(screen, "Expired")

    result = run(session())
    formatter.output(result, f"{result['data']['count']} expired items")


@app.command()
def cleanup() -> None:
    """Remove every expired item and cancel its reminders."""

    async def session():
        pantry = build_app()
        await load_places(pantry)
        await pantry.send(root.BannerTapped(BannerKind.EXPIRED))
        element_id, screen = top_expiration_screen(pantry)
        removed = len(screen.rows)
        await pantry.send(root.PathAction(element_id, CleanupAllTapped()))
        return removed

    removed = run(session())
    formatter.success(f"Removed {removed} expired items", {"removed": removed})


@app.command("open")
def open_link(url: Annotated[str, typer.Argument(help="pantry:// deep link")]) -> None:
    """Open a pantry:// deep link."""

    async def session():
        pantry = build_app()
        await load_places(pantry)
        if not await pantry.open_link(url):
            return None
        top = pantry.state.path.top
        if top is not None and isinstance(top.state, ExpirationScreenState):
            title = "Expired" if isinstance(top.state.kind, Expired) else "Expiring soon"
            return rows_output(top.state, title)
        return places_output(pantry)

    result = run(session())
    if result is None:
        fail(f"Unrecognized link: {url}", error_code="UNKNOWN_LINK")
    formatter.output(result)


# --- Snapshot ---


def snapshot_output(pantry: PantryApp, snapshot) -> dict[str, Any]:
    return {
        "success": True,
        "data": {
            "snapshot": snapshot.model_dump(),
            "link": widget_link(snapshot),
            "next_refresh": next_refresh_time(
                pantry.env.now(), pantry.refresh_hour, pantry.refresh_minute
            ),
        },
    }


@app.command()
def snapshot() -> None:
    """Show the last published summary snapshot."""
    pantry = build_app()
    formatter.output(snapshot_output(pantry, pantry.snapshot_store.load_or_default()))


@app.command()
def refresh() -> None:
    """Recompute and publish the summary snapshot from storage."""

    async def session():
        pantry = build_app()
        published = await pantry.background.handle()
        return pantry, published

    pantry, published = run(session())
    if published is None:
        fail("Could not refresh the snapshot", error_code="REFRESH_FAILED")
    formatter.output(snapshot_output(pantry, published), "Snapshot refreshed")


# --- Reminders ---

reminders_app = typer.Typer(help="Inspect pending expiration reminders")
app.add_typer(reminders_app, name="reminders")


@reminders_app.command("list")
def reminders_list() -> None:
    """List pending reminders."""
    try:
        pending = build_app().scheduler.pending()
    except PersistenceError as e:
        fail(str(e), error_code="STORAGE_ERROR")
    formatter.output(
        {"success": True, "data": {"reminders": [r.model_dump() for r in pending]}},
        f"{len(pending)} pending reminders",
    )


@reminders_app.command("due")
def reminders_due() -> None:
    """List reminders whose time has come."""
    try:
        due = build_app().scheduler.due()
    except PersistenceError as e:
        fail(str(e), error_code="STORAGE_ERROR")
    formatter.output(
        {"success": True, "data": {"reminders": [r.model_dump() for r in due]}},
        f"{len(due)} reminders due",
    )


# --- Shopping list ---

shop_app = typer.Typer(help="Shopping list commands")
app.add_typer(shop_app, name="shop")


async def loaded_shopping(pantry: PantryApp) -> shopping.ShoppingListState:
    state = await pantry.load_shopping_list()
    if state.error:
        raise PersistenceError(state.error)
    return state


@shop_app.command("list")
def shop_list() -> None:
    """View the shopping list."""

    async def session():
        return shopping_output(await loaded_shopping(build_app()))

    result = run(session())
    formatter.output(result)


@shop_app.command("add")
def shop_add(
    name: Annotated[str, typer.Argument(help="Item name")],
    quantity: Annotated[int, typer.Option("--quantity", "-q", help="Quantity to buy")] = 1,
) -> None:
    """Add to the shopping list, merging with an entry of the same name."""
    if not name.strip():
        fail("Item name must not be blank", error_code="INVALID_NAME")

    async def session():
        pantry = build_app()
        await pantry.send_shopping(shopping.MergeOrCreate(name=name, qty=quantity))
        return shopping_output(await loaded_shopping(pantry))

    result = run(session())
    formatter.output(result, f"Added {name.strip()} to the shopping list")


@shop_app.command("qty")
def shop_qty(
    item_ref: Annotated[str, typer.Argument(help="Item name or id prefix")],
    quantity: Annotated[int, typer.Argument(help="Desired quantity")],
) -> None:
    """Set the desired quantity of an entry."""

    async def session():
        pantry = build_app()
        state = await loaded_shopping(pantry)
        item = find_shopping_item(state.items, item_ref)
        return shopping_output(await pantry.send_shopping(shopping.SetQuantity(item.id, quantity)))

    result = run(session())
    formatter.output(result, f"Updated quantity of {item_ref}")


@shop_app.command("remove")
def shop_remove(
    item_ref: Annotated[str, typer.Argument(help="Item name or id prefix")],
) -> None:
    """Remove an entry from the shopping list."""

    async def session():
        pantry = build_app()
        state = await loaded_shopping(pantry)
        item = find_shopping_item(state.items, item_ref)
        return shopping_output(await pantry.send_shopping(shopping.Delete((item.id,))))

    result = run(session())
    formatter.output(result, f"Removed {item_ref} from the shopping list")


@shop_app.command("bought")
def shop_bought(
    item_ref: Annotated[str, typer.Argument(help="Item name or id prefix")],
    undo: Annotated[bool, typer.Option("--undo", help="Mark as still to buy")] = False,
) -> None:
    """Mark an entry as purchased."""

    async def session():
        pantry = build_app()
        state = await loaded_shopping(pantry)
        item = find_shopping_item(state.items, item_ref)
        action = shopping.MarkPurchased((item.id,), purchased=not undo)
        return shopping_output(await pantry.send_shopping(action))

    result = run(session())
    formatter.output(result, f"Marked {item_ref} as {'to buy' if undo else 'purchased'}")


if __name__ == "__main__":
    app()
