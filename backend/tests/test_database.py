"""
Tests for database.py - task CRUD, event storage and settings.
"""
import pytest
import sys
import os
from datetime import date, datetime

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import (
    create_task_db,
    update_task_db,
    delete_task_db,
    get_all_tasks,
    get_task_db,
    get_all_events,
    save_events_db,
    replace_events_db,
    delete_event_db,
    get_settings,
    save_settings,
)
from models import CalendarEvent, Recurrence, WorkWindowConfig


def make_event(event_id: str, start: str, end: str, **overrides) -> CalendarEvent:
    return CalendarEvent(
        id=event_id,
        title=overrides.pop("title", event_id),
        start=datetime.fromisoformat(start),
        end=datetime.fromisoformat(end),
        **overrides,
    )


class TestTaskCRUD:
    """Tests for basic task create/read/update/delete operations."""

    def test_create_task_basic(self, test_db):
        """Create a simple task with defaults."""
        task = create_task_db("id-1", "Buy groceries", "2025-01-20")

        assert task.id == "id-1"
        assert task.title == "Buy groceries"
        assert task.deadline == "2025-01-20"
        assert task.relevance == 3
        assert task.urgency == 3
        assert task.estimated_hours == 1.0
        assert task.status == "pending"
        assert task.completed_at is None
        assert task.is_fixed is False
        assert task.recurrence == Recurrence.NONE

    def test_create_fixed_task(self, test_db):
        """Create a recurring fixed task from a date object and enum."""
        task = create_task_db(
            "id-1", "Gym", date(2025, 1, 22),
            is_fixed=True, recurrence=Recurrence.WEEKLY, start_time="07:00", finish_time="08:00",
        )

        assert task.deadline == "2025-01-22"
        assert task.is_fixed is True
        assert task.recurrence == Recurrence.WEEKLY
        assert task.start_time == "07:00"
        assert task.finish_time == "08:00"

    def test_create_completed_task_stamps_completion(self, test_db):
        task = create_task_db("id-1", "Already done", "2025-01-20", status="completed")
        assert task.completed_at is not None

    def test_unknown_fields_ignored(self, test_db):
        task = create_task_db("id-1", "Task", "2025-01-20", colour="red")
        assert task.title == "Task"

    def test_get_all_tasks_empty(self, test_db):
        assert get_all_tasks() == []

    def test_get_all_tasks_ordered_by_deadline(self, test_db):
        create_task_db("id-1", "Later", "2025-02-01")
        create_task_db("id-2", "Sooner", "2025-01-20")

        assert [t.id for t in get_all_tasks()] == ["id-2", "id-1"]

    def test_get_task(self, test_db):
        create_task_db("id-1", "Task", "2025-01-20")
        assert get_task_db("id-1").title == "Task"
        assert get_task_db("missing") is None

    def test_update_task_title(self, test_db):
        create_task_db("id-1", "Old title", "2025-01-20")
        updated = update_task_db("id-1", title="New title")

        assert updated.title == "New title"
        assert updated.status == "pending"

    def test_update_ignores_none(self, test_db):
        create_task_db("id-1", "Keep me", "2025-01-20", urgency=5)
        updated = update_task_db("id-1", title=None, urgency=None)

        assert updated.title == "Keep me"
        assert updated.urgency == 5

    def test_update_none_clears_nullable_fields(self, test_db):
        """None clears description and the fixed times; the task falls back to estimated hours."""
        create_task_db("id-1", "Gym", "2025-01-20", description="Leg day", is_fixed=True,
                       start_time="07:00", finish_time="08:00")
        updated = update_task_db("id-1", description=None, finish_time=None)

        assert updated.description is None
        assert updated.finish_time is None
        assert updated.start_time == "07:00"
        assert updated.is_fixed is True

    def test_completion_stamps_and_clears(self, test_db):
        """Completing sets completed_at; reopening clears it."""
        create_task_db("id-1", "Do something", "2025-01-20")

        done = update_task_db("id-1", status="completed")
        assert done.status == "completed"
        assert done.completed_at is not None

        reopened = update_task_db("id-1", status="in-progress")
        assert reopened.completed_at is None

    def test_update_converts_types(self, test_db):
        create_task_db("id-1", "Standup", "2025-01-20")
        updated = update_task_db("id-1", deadline=date(2025, 1, 21), is_fixed=True, recurrence=Recurrence.WEEKDAYS)

        assert updated.deadline == "2025-01-21"
        assert updated.is_fixed is True
        assert updated.recurrence == Recurrence.WEEKDAYS

    def test_update_task_not_found(self, test_db):
        assert update_task_db("nonexistent", title="New title") is None

    def test_delete_task(self, test_db):
        create_task_db("id-1", "Delete me", "2025-01-20")
        assert delete_task_db("id-1") is True
        assert get_all_tasks() == []

    def test_delete_task_not_found(self, test_db):
        assert delete_task_db("nonexistent") is False

    def test_delete_task_removes_its_instances(self, test_db):
        create_task_db("gym", "Gym", "2025-01-20", is_fixed=True, recurrence=Recurrence.DAILY)
        save_events_db([
            make_event("fixed-gym-2025-01-20", "2025-01-20T07:00", "2025-01-20T08:00"),
            make_event("fixed-gymnastics-2025-01-20", "2025-01-20T18:00", "2025-01-20T19:00"),
            make_event("standup", "2025-01-20T09:00", "2025-01-20T09:30"),
        ])

        delete_task_db("gym")

        assert [e.id for e in get_all_events()] == ["standup", "fixed-gymnastics-2025-01-20"]


class TestEvents:
    """Tests for calendar event storage."""

    def test_save_and_read(self, test_db):
        event = make_event(
            "gen-1", "2025-01-20T10:00", "2025-01-20T11:30",
            title="Write report", type="task_block", task_id="t1", is_fixed=False, reasoning="urgent", quadrant="Q1",
        )
        assert save_events_db([event]) == 1

        assert get_all_events() == [event]

    def test_save_replaces_same_id(self, test_db):
        save_events_db([make_event("e1", "2025-01-20T10:00", "2025-01-20T11:00", title="Old")])
        save_events_db([make_event("e1", "2025-01-20T12:00", "2025-01-20T13:00", title="New")])

        events = get_all_events()
        assert len(events) == 1
        assert events[0].title == "New"

    def test_ordered_by_start(self, test_db):
        save_events_db([
            make_event("b", "2025-01-21T09:00", "2025-01-21T10:00"),
            make_event("a", "2025-01-20T09:00", "2025-01-20T10:00"),
        ])
        assert [e.id for e in get_all_events()] == ["a", "b"]

    def test_replace_events(self, test_db):
        save_events_db([make_event("old", "2025-01-20T09:00", "2025-01-20T10:00")])
        replace_events_db([make_event("new", "2025-01-20T11:00", "2025-01-20T12:00")])

        assert [e.id for e in get_all_events()] == ["new"]

    def test_delete_event(self, test_db):
        save_events_db([make_event("e1", "2025-01-20T09:00", "2025-01-20T10:00")])
        assert delete_event_db("e1") is True
        assert delete_event_db("e1") is False


class TestSettings:
    """Tests for the work window settings."""

    def test_defaults(self, test_db):
        assert get_settings() == WorkWindowConfig(day_start_hour=9, day_end_hour=18, work_week_only=False)

    def test_save_and_overwrite(self, test_db):
        save_settings(WorkWindowConfig(day_start_hour=8, day_end_hour=16, work_week_only=True))
        save_settings(WorkWindowConfig(day_start_hour=10, day_end_hour=20))

        assert get_settings() == WorkWindowConfig(day_start_hour=10, day_end_hour=20, work_week_only=False)
