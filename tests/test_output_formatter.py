"""Tests for output formatting."""

import json
import re
from datetime import date, datetime, time
from io import StringIO
from uuid import uuid4

import pytest
from rich.console import Console

from pantry_tracker.models import BannerKind, ShoppingStatus
from pantry_tracker.output_formatter import JSONEncoder, OutputFormatter


def strip_ansi(text: str) -> str:
    """Remove ANSI escape codes from text."""
    ansi_escape = re.compile(r"\x1b\[[0-9;]*m")
    return ansi_escape.sub("", text)


@pytest.fixture
def rich_formatter():
    """Rich formatter writing into a buffer."""
    formatter = OutputFormatter(json_mode=False)
    formatter.console = Console(file=StringIO(), force_terminal=True, width=100)
    return formatter


def rendered(formatter: OutputFormatter) -> str:
    return strip_ansi(formatter.console.file.getvalue())


class TestJSONEncoder:
    """Tests for JSONEncoder."""

    def test_encode_uuid(self):
        """UUID encoded as string."""
        test_id = uuid4()
        result = json.dumps({"id": test_id}, cls=JSONEncoder)
        assert str(test_id) in result

    def test_encode_dates_and_times(self):
        result = json.dumps(
            {"at": datetime(2026, 3, 10, 9, 30), "on": date(2026, 3, 10), "t": time(9, 0)},
            cls=JSONEncoder,
        )
        assert "2026-03-10T09:30:00" in result
        assert '"2026-03-10"' in result
        assert "09:00:00" in result

    def test_encode_enum(self):
        """Enums are encoded by value."""
        result = json.dumps({"status": ShoppingStatus.TO_BUY}, cls=JSONEncoder)
        assert json.loads(result) == {"status": "to_buy"}

    def test_encode_fallback(self):
        """Non-special types raise TypeError."""
        with pytest.raises(TypeError):
            json.dumps({"bad": object()}, cls=JSONEncoder)


class TestOutputFormatterJSON:
    """Tests for JSON output mode."""

    def test_json_mode_output(self, capsys):
        formatter = OutputFormatter(json_mode=True)
        formatter.output({"success": True, "data": {"banners": [BannerKind.EXPIRED]}})
        data = json.loads(capsys.readouterr().out)
        assert data["data"]["banners"] == ["expired"]

    def test_json_error(self, capsys):
        """JSON error output."""
        formatter = OutputFormatter(json_mode=True)
        formatter.error("Something went wrong", error_code="TEST_ERROR")
        data = json.loads(capsys.readouterr().out)
        assert data["success"] is False
        assert data["error"] == "Something went wrong"
        assert data["error_code"] == "TEST_ERROR"

    def test_json_success(self, capsys):
        formatter = OutputFormatter(json_mode=True)
        formatter.success("Removed 2 expired items", data={"removed": 2})
        data = json.loads(capsys.readouterr().out)
        assert data["success"] is True
        assert data["data"]["removed"] == 2


class TestOutputFormatterRich:
    """Tests for Rich output mode."""

    def test_error_and_success(self, rich_formatter):
        rich_formatter.error("Test error message")
        rich_formatter.success("Test success message")
        output = rendered(rich_formatter)
        assert "Test error message" in output
        assert "Test success message" in output

    def test_places_with_banners(self, rich_formatter):
        rich_formatter.output(
            {
                "success": True,
                "data": {
                    "places": [
                        {
                            "id": uuid4(),
                            "name": "Fridge",
                            "items": [{}, {}],
                            "expired_count": 1,
                            "expiring_soon_count": 0,
                        }
                    ],
                    "banners": ["expired"],
                },
            },
            "1 places",
        )
        output = rendered(rich_formatter)
        assert "Some items have expired" in output
        assert "Fridge" in output

    def test_no_places(self, rich_formatter):
        rich_formatter.output({"success": True, "data": {"places": [], "banners": []}})
        assert "No places yet" in rendered(rich_formatter)

    def test_place_items(self, rich_formatter):
        rich_formatter.output(
            {
                "success": True,
                "data": {
                    "place": {
                        "name": "Pantry",
                        "items": [
                            {"name": "Rice", "quantity": 2, "expiration_date": "2026-04-01"},
                        ],
                    }
                },
            }
        )
        output = rendered(rich_formatter)
        assert "Rice" in output
        assert "2026-04-01" in output

    def test_expiration_rows(self, rich_formatter):
        rich_formatter.output(
            {
                "success": True,
                "data": {
                    "title": "Expired",
                    "rows": [
                        {
                            "name": "Milk",
                            "place_name": "Fridge",
                            "quantity": 1,
                            "expiration_date": "2026-03-09",
                            "days_until_expiry": -1,
                        }
                    ],
                },
            }
        )
        output = rendered(rich_formatter)
        assert "Milk" in output
        assert "1d ago" in output

    def test_empty_rows(self, rich_formatter):
        rich_formatter.output({"success": True, "data": {"title": "Expired", "rows": []}})
        assert "Nothing in expired" in rendered(rich_formatter)

    def test_snapshot_panel(self, rich_formatter):
        rich_formatter.output(
            {
                "success": True,
                "data": {
                    "snapshot": {
                        "total_items": 9,
                        "expiring_soon": 1,
                        "expired": 2,
                        "updated_at": "2026-03-10T12:00:00",
                    },
                    "link": "pantry://expiration?filter=expired",
                },
            }
        )
        output = rendered(rich_formatter)
        assert "Total items: 9" in output
        assert "pantry://expiration?filter=expired" in output

    def test_shopping_list(self, rich_formatter):
        rich_formatter.output(
            {
                "success": True,
                "data": {
                    "shopping_list": [
                        {
                            "id": uuid4(),
                            "name": "Eggs",
                            "desired_quantity": 12,
                            "source": "manual",
                            "status": "purchased",
                        }
                    ]
                },
            }
        )
        output = rendered(rich_formatter)
        assert "Eggs" in output
        assert "Total items: 1" in output
