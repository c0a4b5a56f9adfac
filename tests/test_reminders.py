"""Tests for reminder ids, the timing policy and the JSON scheduler."""

import asyncio
import json
from datetime import datetime, timedelta
from uuid import UUID

import pytest

from pantry_tracker.data_store import PersistenceError
from pantry_tracker.effects import CancelReminders, ScheduleReminder
from pantry_tracker.models import FoodItem
from pantry_tracker.reminders import (
    JSONReminderScheduler,
    ReminderKind,
    ReminderPolicy,
    reminder_id,
    reminder_ids,
    reminder_ids_for_items,
)

from conftest import NOW, days_from_today, make_item

ITEM_ID = UUID("12345678-1234-5678-1234-567812345678")


class TestReminderIds:
    def test_deterministic(self):
        assert reminder_id(ITEM_ID, ReminderKind.PRE_EXPIRY) == f"item-{ITEM_ID}.pre-expiry"
        assert reminder_id(ITEM_ID, ReminderKind.DAY_OF) == f"item-{ITEM_ID}.day-of"

    def test_both_kinds(self):
        assert reminder_ids(ITEM_ID) == [
            f"item-{ITEM_ID}.pre-expiry",
            f"item-{ITEM_ID}.day-of",
        ]

    def test_only_dated_items(self):
        dated = make_item("Milk", expires_in=2)
        undated = make_item("Salt")
        assert reminder_ids_for_items([dated, undated]) == reminder_ids(dated.id)


class TestReminderPolicy:
    """Tests for ReminderPolicy timing and planning."""

    def test_fire_times(self):
        policy = ReminderPolicy()
        expires = days_from_today(5)
        assert policy.fire_time(expires, ReminderKind.PRE_EXPIRY) == datetime.combine(
            days_from_today(3), datetime.min.time()
        ).replace(hour=9)
        assert policy.fire_time(expires, ReminderKind.DAY_OF) == datetime(
            expires.year, expires.month, expires.day, 9, 0
        )

    def test_configurable_lead_and_hour(self):
        policy = ReminderPolicy(lead_days=3, hour=7, minute=15)
        expires = days_from_today(10)
        fire_at = policy.fire_time(expires, ReminderKind.PRE_EXPIRY)
        assert fire_at.date() == days_from_today(7)
        assert (fire_at.hour, fire_at.minute) == (7, 15)

    def test_content(self):
        item = FoodItem(name="Yogurt", expiration_date=days_from_today(2))
        title, body = ReminderPolicy().content(item, ReminderKind.PRE_EXPIRY)
        assert title == "Expiring soon: Yogurt"
        assert body == f"Expires on {days_from_today(2).strftime('%b %d, %Y')}"
        assert ReminderPolicy().content(item, ReminderKind.DAY_OF)[0] == "Expires today: Yogurt"

    def test_plan_schedules_both(self):
        item = make_item("Cheese", expires_in=10)
        effects = ReminderPolicy().plan(item, NOW)
        assert [type(e) for e in effects] == [ScheduleReminder, ScheduleReminder]
        assert [e.id for e in effects] == reminder_ids(item.id)

    def test_plan_without_date_cancels_both(self):
        item = make_item("Salt")
        assert ReminderPolicy().plan(item, NOW) == [CancelReminders(tuple(reminder_ids(item.id)))]

    def test_plan_past_pre_expiry_is_cancelled(self):
        """Expiring tomorrow: pre-expiry time is gone, day-of is still ahead."""
        item = make_item("Ham", expires_in=1)
        effects = ReminderPolicy().plan(item, NOW)

        assert effects[0] == CancelReminders((reminder_id(item.id, ReminderKind.PRE_EXPIRY),))
        assert isinstance(effects[1], ScheduleReminder)
        assert effects[1].id == reminder_id(item.id, ReminderKind.DAY_OF)

    def test_plan_today_after_nine_cancels_both(self):
        item = make_item("Fish", expires_in=0)
        effects = ReminderPolicy().plan(item, NOW)
        assert effects == [CancelReminders(tuple(reminder_ids(item.id)))]

    def test_plan_selected_kinds(self):
        item = make_item("Cheese", expires_in=10)
        effects = ReminderPolicy().plan(item, NOW, kinds=[ReminderKind.DAY_OF])
        assert [e.id for e in effects] == [reminder_id(item.id, ReminderKind.DAY_OF)]

    def test_plan_all_skips_undated(self):
        dated = make_item("Cheese", expires_in=10)
        effects = ReminderPolicy().plan_all([dated, make_item("Salt")], NOW)
        assert {e.id for e in effects} == set(reminder_ids(dated.id))


@pytest.fixture
def reminder_file(tmp_path):
    return tmp_path / "reminders.json"


@pytest.fixture
def json_scheduler(reminder_file):
    return JSONReminderScheduler(reminder_file, clock=lambda: NOW)


class TestJSONReminderScheduler:
    """Tests for the file-backed scheduler."""

    @pytest.mark.asyncio
    async def test_schedule_and_list(self, json_scheduler):
        await json_scheduler.schedule("a", "Title", "Body", NOW + timedelta(days=1))
        pending = json_scheduler.pending()
        assert [r.id for r in pending] == ["a"]
        assert pending[0].title == "Title"

    @pytest.mark.asyncio
    async def test_schedule_replaces_same_id(self, json_scheduler):
        await json_scheduler.schedule("a", "Old", "Body", NOW + timedelta(days=1))
        await json_scheduler.schedule("a", "New", "Body", NOW + timedelta(days=2))
        pending = json_scheduler.pending()
        assert len(pending) == 1
        assert pending[0].title == "New"

    @pytest.mark.asyncio
    async def test_backdated_fire_time_removes_pending(self, json_scheduler):
        """Yesterday 9 AM: nothing scheduled and the stale one is gone."""
        rid = reminder_id(ITEM_ID, ReminderKind.DAY_OF)
        await json_scheduler.schedule(rid, "Old", "Body", NOW + timedelta(days=3))

        yesterday_nine = datetime.combine(days_from_today(-1), datetime.min.time()).replace(hour=9)
        await json_scheduler.schedule(rid, "Expires today: Milk", "Body", yesterday_nine)

        assert json_scheduler.pending() == []

    @pytest.mark.asyncio
    async def test_backdated_fire_time_not_created(self, json_scheduler, reminder_file):
        await json_scheduler.schedule("a", "T", "B", NOW - timedelta(minutes=1))
        assert json_scheduler.pending() == []
        assert not reminder_file.exists()

    @pytest.mark.asyncio
    async def test_cancel(self, json_scheduler):
        await json_scheduler.schedule("a", "T", "B", NOW + timedelta(days=1))
        await json_scheduler.schedule("b", "T", "B", NOW + timedelta(days=2))
        await json_scheduler.cancel(["a", "unknown"])
        assert [r.id for r in json_scheduler.pending()] == ["b"]

    @pytest.mark.asyncio
    async def test_pending_sorted_and_due(self, json_scheduler):
        await json_scheduler.schedule("late", "T", "B", NOW + timedelta(days=5))
        await json_scheduler.schedule("soon", "T", "B", NOW + timedelta(hours=1))

        assert [r.id for r in json_scheduler.pending()] == ["soon", "late"]
        assert [r.id for r in json_scheduler.due(NOW + timedelta(hours=2))] == ["soon"]
        assert json_scheduler.due(NOW) == []

    @pytest.mark.asyncio
    async def test_authorization_follows_enabled_flag(self, reminder_file):
        assert await JSONReminderScheduler(reminder_file).request_authorization() is True
        assert await JSONReminderScheduler(reminder_file, enabled=False).request_authorization() is False

    @pytest.mark.asyncio
    async def test_concurrent_schedules_all_kept(self, json_scheduler):
        await asyncio.gather(
            *(
                json_scheduler.schedule(f"r{n}", "T", "B", NOW + timedelta(days=n + 1))
                for n in range(10)
            )
        )
        assert len(json_scheduler.pending()) == 10

    @pytest.mark.parametrize(
        "content",
        [
            {"reminders": [{"title": "T", "body": "B", "fire_at": "2026-03-11T09:00:00"}]},
            {"reminders": "not a list"},
            ["not", "an", "object"],
        ],
    )
    @pytest.mark.asyncio
    async def test_malformed_file_raises_persistence_error(self, json_scheduler, reminder_file, content):
        reminder_file.write_text(json.dumps(content))

        with pytest.raises(PersistenceError):
            await json_scheduler.schedule("a", "T", "B", NOW + timedelta(days=1))
        with pytest.raises(PersistenceError):
            json_scheduler.pending()
