"""
Tests for matrix.py - quadrants, planning order and dashboard statistics.
"""
import sys
import os
from datetime import date, datetime

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from matrix import (
    Quadrant,
    get_quadrant,
    group_by_quadrant,
    pending_hours_by_quadrant,
    priority_score,
    scheduled_hours_by_day,
    sort_for_planning,
)
from models import CalendarEvent, Task


def make_task(task_id: str, relevance: int = 3, urgency: int = 3, **overrides) -> Task:
    fields = {
        "id": task_id,
        "title": f"Task {task_id}",
        "relevance": relevance,
        "urgency": urgency,
        "deadline": "2025-01-24",
        "created_at": "2025-01-01T00:00:00",
    }
    fields.update(overrides)
    return Task(**fields)


def block(event_id: str, start: str, end: str, quadrant: str, event_type: str = "task_block") -> CalendarEvent:
    return CalendarEvent(
        id=event_id,
        title=event_id,
        start=datetime.fromisoformat(start),
        end=datetime.fromisoformat(end),
        type=event_type,
        is_fixed=False,
        quadrant=quadrant,
    )


class TestQuadrants:
    """Tests for Eisenhower quadrant classification."""

    def test_boundaries_at_three(self):
        assert get_quadrant(3, 3) == Quadrant.Q1
        assert get_quadrant(5, 2) == Quadrant.Q2
        assert get_quadrant(2, 5) == Quadrant.Q3
        assert get_quadrant(2, 2) == Quadrant.Q4
        assert get_quadrant(1, 1) == Quadrant.Q4

    def test_group_by_quadrant(self):
        tasks = [make_task("a", 5, 5), make_task("b", 4, 1), make_task("c", 1, 4), make_task("d", 1, 1), make_task("e", 3, 3)]
        groups = group_by_quadrant(tasks)

        assert [t.id for t in groups[Quadrant.Q1]] == ["a", "e"]
        assert [t.id for t in groups[Quadrant.Q2]] == ["b"]
        assert [t.id for t in groups[Quadrant.Q3]] == ["c"]
        assert [t.id for t in groups[Quadrant.Q4]] == ["d"]

    def test_empty_groups_present(self):
        groups = group_by_quadrant([])
        assert set(groups) == set(Quadrant)
        assert all(tasks == [] for tasks in groups.values())


class TestPlanningOrder:
    """Tests for the order tasks are handed to the planner."""

    def test_priority_score(self):
        assert priority_score(make_task("a", 5, 4)) == 9

    def test_deadline_first_then_score(self):
        tasks = [
            make_task("late", 5, 5, deadline="2025-02-01"),
            make_task("low", 1, 1, deadline="2025-01-21"),
            make_task("high", 5, 5, deadline="2025-01-21"),
        ]
        assert [t.id for t in sort_for_planning(tasks)] == ["high", "low", "late"]


class TestDashboardStats:
    """Tests for workload statistics."""

    def test_pending_hours_skip_completed(self):
        tasks = [
            make_task("a", 5, 5, estimated_hours=2),
            make_task("b", 5, 5, estimated_hours=1.5),
            make_task("c", 1, 1, estimated_hours=4, status="completed"),
            make_task("d", 4, 1, estimated_hours=3),
        ]
        assert pending_hours_by_quadrant(tasks) == {"Q1": 3.5, "Q2": 3.0, "Q3": 0.0, "Q4": 0.0}

    def test_scheduled_hours_by_day(self):
        events = [
            block("a", "2025-01-20T09:00", "2025-01-20T11:00", "Q1"),
            block("b", "2025-01-20T13:00", "2025-01-20T13:30", "Q2"),
            block("c", "2025-01-21T09:00", "2025-01-21T10:00", "Q1"),
            block("meeting", "2025-01-20T14:00", "2025-01-20T15:00", "Q4", event_type="meeting"),
            block("outside", "2025-01-25T09:00", "2025-01-25T10:00", "Q1"),
        ]
        stats = scheduled_hours_by_day(events, date(2025, 1, 20), 2)

        assert stats == [
            {"date": "2025-01-20", "Q1": 2.0, "Q2": 0.5, "Q3": 0.0, "Q4": 0.0, "total": 2.5},
            {"date": "2025-01-21", "Q1": 1.0, "Q2": 0.0, "Q3": 0.0, "Q4": 0.0, "total": 1.0},
        ]
