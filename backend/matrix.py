"""
Eisenhower matrix helpers: quadrant classification, priority ordering and
workload statistics for the dashboard.
"""
from datetime import date, timedelta
from enum import Enum
from typing import Iterable

from models import CalendarEvent, Task


class Quadrant(str, Enum):
    Q1 = "Q1"
    Q2 = "Q2"
    Q3 = "Q3"
    Q4 = "Q4"


QUADRANT_LABELS = {
    Quadrant.Q1: "Do First",
    Quadrant.Q2: "Schedule",
    Quadrant.Q3: "Delegate",
    Quadrant.Q4: "Eliminate",
}

# Ratings at or above this count as important / urgent
THRESHOLD = 3


def get_quadrant(relevance: int, urgency: int) -> Quadrant:
    important = relevance >= THRESHOLD
    urgent = urgency >= THRESHOLD
    if important and urgent:
        return Quadrant.Q1
    if important:
        return Quadrant.Q2
    if urgent:
        return Quadrant.Q3
    return Quadrant.Q4


def task_quadrant(task: Task) -> Quadrant:
    return get_quadrant(task.relevance, task.urgency)


def priority_score(task: Task) -> int:
    return (task.relevance or 3) + (task.urgency or 3)


def group_by_quadrant(tasks: Iterable[Task]) -> dict[Quadrant, list[Task]]:
    groups: dict[Quadrant, list[Task]] = {q: [] for q in Quadrant}
    for task in tasks:
        groups[task_quadrant(task)].append(task)
    return groups


def sort_for_planning(tasks: Iterable[Task]) -> list[Task]:
    """Earliest deadline first, then highest priority score."""
    return sorted(tasks, key=lambda t: (t.deadline[:10], -priority_score(t)))


def pending_hours_by_quadrant(tasks: Iterable[Task]) -> dict[str, float]:
    """Estimated hours of unfinished work per quadrant."""
    hours = {q.value: 0.0 for q in Quadrant}
    for task in tasks:
        if task.status == "completed":
            continue
        hours[task_quadrant(task).value] += task.estimated_hours
    return hours


def scheduled_hours_by_day(events: Iterable[CalendarEvent], window_start: date, days: int) -> list[dict]:
    """
    Hours of scheduled task blocks per quadrant for each day in the window.
    Meetings and breaks are not counted. Events are attributed to the day they start on.
    """
    stats = {
        window_start + timedelta(days=i): {q.value: 0.0 for q in Quadrant}
        for i in range(days)
    }
    for event in events:
        day = stats.get(event.start.date())
        if day is None or event.type != "task_block" or event.quadrant not in day:
            continue
        day[event.quadrant] += (event.end - event.start).total_seconds() / 3600

    return [
        {"date": day.isoformat(), **hours, "total": sum(hours.values())}
        for day, hours in stats.items()
    ]
