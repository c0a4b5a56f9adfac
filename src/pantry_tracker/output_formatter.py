"""Output formatting for CLI and programmatic use."""

import json
from datetime import date, datetime, time
from enum import Enum
from typing import Any
from uuid import UUID

from rich.console import Console
from rich.panel import Panel
from rich.table import Table


class JSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for output."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, date):
            return obj.isoformat()
        if isinstance(obj, time):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


def _days_label(days: int | None) -> str:
    if days is None:
        return "-"
    if days < 0:
        return f"[red]{-days}d ago[/red]"
    if days == 0:
        return "[yellow]today[/yellow]"
    return f"in {days}d"


class OutputFormatter:
    """Formats output for both Rich terminal and JSON modes."""

    def __init__(self, json_mode: bool = False):
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON instead of Rich formatting
        """
        self.json_mode = json_mode
        self.console = Console()

    def output(self, data: dict[str, Any], message: str = "") -> None:
        """Output data in appropriate format.

        Args:
            data: Data to output
            message: Optional message for Rich mode
        """
        if self.json_mode:
            self._output_json(data)
        else:
            self._output_rich(data, message)

    def _output_json(self, data: dict[str, Any]) -> None:
        """Output as JSON to stdout."""
        print(json.dumps(data, cls=JSONEncoder, indent=2))

    def _output_rich(self, data: dict[str, Any], message: str) -> None:
        """Output with Rich formatting."""
        if message:
            self.console.print(f"[green]✓[/green] {message}")

        payload = data.get("data", {})
        if "places" in payload:
            self._render_places(data)
        elif "place" in payload:
            self._render_place(data)
        elif "rows" in payload:
            self._render_expiration_rows(data)
        elif "snapshot" in payload:
            self._render_snapshot(data)
        elif "reminders" in payload:
            self._render_reminders(data)
        elif "shopping_list" in payload:
            self._render_shopping_list(data)

    def _render_places(self, data: dict) -> None:
        """Render the places overview."""
        places = data["data"]["places"]
        banners = data["data"].get("banners", [])

        for banner in banners:
            if banner == "expired":
                self.console.print("[bold red]Some items have expired.[/bold red] Run `pantry expired`.")
            elif banner == "expiring_soon":
                self.console.print("[yellow]Some items expire soon.[/yellow] Run `pantry expiring`.")

        if not places:
            self.console.print("[dim]No places yet[/dim]")
            return

        table = Table(title="Places", show_header=True, header_style="bold cyan")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Place", style="cyan")
        table.add_column("Items", justify="right", style="magenta")
        table.add_column("Expired", justify="right", style="red")
        table.add_column("Soon", justify="right", style="yellow")
        table.add_column("ID", style="dim")

        for index, place in enumerate(places):
            table.add_row(
                str(index),
                place["name"],
                str(len(place.get("items", []))),
                str(place.get("expired_count", 0)),
                str(place.get("expiring_soon_count", 0)),
                str(place["id"])[:8],
            )

        self.console.print(table)

    def _render_place(self, data: dict) -> None:
        """Render one place with its items."""
        place = data["data"]["place"]
        items = place.get("items", [])

        if not items:
            self.console.print(f"[dim]{place['name']} is empty[/dim]")
            return

        table = Table(title=place["name"], show_header=True, header_style="bold cyan")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Item", style="cyan")
        table.add_column("Qty", justify="right", style="magenta")
        table.add_column("Expires")
        table.add_column("Notes", style="dim")

        for index, item in enumerate(items):
            table.add_row(
                str(index),
                item["name"],
                str(item.get("quantity", 1)),
                str(item.get("expiration_date") or "-"),
                item.get("notes") or "",
            )

        self.console.print(table)

    def _render_expiration_rows(self, data: dict) -> None:
        """Render the expired or expiring-soon list."""
        rows = data["data"]["rows"]
        title = data["data"].get("title", "Expiration")

        if not rows:
            self.console.print(f"[dim]Nothing in {title.lower()}[/dim]")
            return

        table = Table(title=title, show_header=True, header_style="bold")
        table.add_column("Item")
        table.add_column("Place")
        table.add_column("Qty", justify="right")
        table.add_column("Expires", style="red")
        table.add_column("When")

        for row in rows:
            table.add_row(
                row["name"],
                row["place_name"],
                str(row.get("quantity", 1)),
                str(row.get("expiration_date") or "-"),
                _days_label(row.get("days_until_expiry")),
            )

        self.console.print(table)

    def _render_snapshot(self, data: dict) -> None:
        """Render the published summary."""
        snapshot = data["data"]["snapshot"]
        lines = [
            f"Total items: [bold]{snapshot['total_items']}[/bold]",
            f"Expiring soon: [yellow]{snapshot['expiring_soon']}[/yellow]",
            f"Expired: [red]{snapshot['expired']}[/red]",
            f"Updated: {snapshot['updated_at']}",
        ]
        if "link" in data["data"]:
            lines.append(f"Opens: {data['data']['link']}")
        if "next_refresh" in data["data"]:
            lines.append(f"Next refresh: {data['data']['next_refresh']}")
        self.console.print(Panel("\n".join(lines), title="Pantry Summary", border_style="cyan"))

    def _render_reminders(self, data: dict) -> None:
        """Render pending reminders."""
        reminders = data["data"]["reminders"]

        if not reminders:
            self.console.print("[dim]No pending reminders[/dim]")
            return

        table = Table(title="Reminders", show_header=True, header_style="bold")
        table.add_column("Fires at", style="cyan")
        table.add_column("Title")
        table.add_column("Body", style="dim")

        for reminder in reminders:
            table.add_row(str(reminder["fire_at"]), reminder["title"], reminder["body"])

        self.console.print(table)

    def _render_shopping_list(self, data: dict) -> None:
        """Render the shopping list."""
        items = data["data"]["shopping_list"]

        if not items:
            self.console.print("[dim]Shopping list is empty[/dim]")
            return

        table = Table(title="Shopping List", show_header=True, header_style="bold cyan")
        table.add_column("Item", style="cyan")
        table.add_column("Qty", justify="right", style="magenta")
        table.add_column("Source", style="yellow")
        table.add_column("Status", style="blue")
        table.add_column("ID", style="dim")

        for item in items:
            status_icon = {
                "to_buy": "[white]○[/white]",
                "purchased": "[green]✓[/green]",
            }.get(item.get("status", "to_buy"), "○")

            table.add_row(
                item["name"],
                str(item.get("desired_quantity", 1)),
                item.get("source", "manual"),
                status_icon,
                str(item["id"])[:8],
            )

        self.console.print(table)
        self.console.print(f"\nTotal items: {len(items)}")

    def error(self, message: str, error_code: str | None = None) -> None:
        """Output error message.

        Args:
            message: Error message
            error_code: Optional error code
        """
        if self.json_mode:
            output = {"success": False, "error": message}
            if error_code:
                output["error_code"] = error_code
            print(json.dumps(output))
        else:
            self.console.print(f"[red]✗ Error:[/red] {message}")

    def success(self, message: str, data: dict | None = None) -> None:
        """Output success message.

        Args:
            message: Success message
            data: Optional data to include
        """
        if self.json_mode:
            output: dict[str, Any] = {"success": True, "message": message}
            if data:
                output["data"] = data
            print(json.dumps(output, cls=JSONEncoder))
        else:
            self.console.print(f"[green]✓[/green] {message}")
