import os
import sqlite3
from datetime import date, datetime
from enum import Enum
from typing import Iterable, Optional
from contextlib import contextmanager

from models import CalendarEvent, Task, WorkWindowConfig
from recurrence import FIXED_EVENT_PREFIX

DATABASE_PATH = os.getenv("DATABASE_PATH", "eisenflow.db")

TASK_FIELDS = (
    "title", "description", "relevance", "urgency", "deadline", "estimated_hours",
    "status", "completed_at", "is_fixed", "recurrence", "start_time", "finish_time",
)

# Nullable columns a caller may clear by passing None explicitly
CLEARABLE_TASK_FIELDS = ("description", "start_time", "finish_time")

@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()

def init_db():
    """Initialize database by running Alembic migrations."""
    import subprocess

    # Run alembic upgrade from the backend directory
    backend_dir = os.path.dirname(os.path.abspath(__file__))
    subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=backend_dir,
        check=True,
        env={**os.environ, "DATABASE_PATH": os.path.abspath(DATABASE_PATH)},
    )

def _to_db(value):
    """Convert Python values to their SQLite storage form."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value

def _row_to_task(row) -> Task:
    """Convert a database row to a Task model."""
    return Task(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        relevance=row["relevance"],
        urgency=row["urgency"],
        deadline=row["deadline"],
        estimated_hours=row["estimated_hours"],
        status=row["status"],
        completed_at=row["completed_at"],
        is_fixed=bool(row["is_fixed"]),
        recurrence=row["recurrence"] or "none",
        start_time=row["start_time"],
        finish_time=row["finish_time"],
        created_at=row["created_at"],
    )

def _row_to_event(row) -> CalendarEvent:
    return CalendarEvent(
        id=row["id"],
        title=row["title"],
        start=datetime.fromisoformat(row["start_at"]),
        end=datetime.fromisoformat(row["end_at"]),
        type=row["type"],
        task_id=row["task_id"],
        is_fixed=bool(row["is_fixed"]),
        reasoning=row["reasoning"],
        quadrant=row["quadrant"],
    )

# Task operations
def get_all_tasks() -> list[Task]:
    with get_db() as conn:
        rows = conn.execute("SELECT * FROM tasks ORDER BY deadline, created_at").fetchall()
        return [_row_to_task(row) for row in rows]

def get_task_db(task_id: str) -> Optional[Task]:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return _row_to_task(row) if row else None

def create_task_db(task_id: str, title: str, deadline, **fields) -> Task:
    """
    Create a task. deadline is a date or YYYY-MM-DD string.
    Other TASK_FIELDS may be passed as keywords; unknown keywords are ignored.
    A completed task gets completed_at stamped.
    """
    values = {field: _to_db(fields[field]) for field in TASK_FIELDS if fields.get(field) is not None}
    values["title"] = title
    values["deadline"] = _to_db(deadline)
    values.setdefault("status", "pending")
    if values["status"] == "completed":
        values.setdefault("completed_at", datetime.now().isoformat())
    created_at = datetime.now().isoformat()

    columns = ["id", "created_at", *values.keys()]
    placeholders = ", ".join("?" for _ in columns)
    with get_db() as conn:
        conn.execute(
            f"INSERT INTO tasks ({', '.join(columns)}) VALUES ({placeholders})",
            (task_id, created_at, *values.values())
        )
        conn.commit()
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return _row_to_task(row)

def update_task_db(task_id: str, **updates) -> Optional[Task]:
    """
    Update a task with any fields provided.
    Only updates fields that differ from current values. None clears description,
    start_time and finish_time; for the other fields it means "leave as is".
    Moving into "completed" stamps completed_at, moving out of it clears completed_at.

    Args:
        task_id: Task ID to update
        **updates: Field names and values to update (any of TASK_FIELDS)
    """
    with get_db() as conn:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if not row:
            return None

        # Filter updates: only include fields that differ from current values
        changes = {}
        for field, new_value in updates.items():
            if field not in TASK_FIELDS:
                continue
            if new_value is None and field not in CLEARABLE_TASK_FIELDS:
                continue
            new_value = _to_db(new_value)
            if new_value != row[field]:
                changes[field] = new_value

        if "status" in changes:
            if changes["status"] == "completed":
                changes["completed_at"] = datetime.now().isoformat()
            else:
                changes["completed_at"] = None

        # Execute UPDATE only if there are actual changes
        if changes:
            set_clause = ", ".join(f"{field} = ?" for field in changes.keys())
            values = list(changes.values()) + [task_id]
            conn.execute(f"UPDATE tasks SET {set_clause} WHERE id = ?", values)
            conn.commit()

        # Return updated task (re-fetch to get current state)
        updated_row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return _row_to_task(updated_row)

def delete_task_db(task_id: str) -> bool:
    """Delete a task together with any expanded instances of it."""
    prefix = f"{FIXED_EVENT_PREFIX}{task_id}-"
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        conn.execute("DELETE FROM events WHERE substr(id, 1, ?) = ?", (len(prefix), prefix))
        conn.commit()
        return cursor.rowcount > 0

# Event operations
def get_all_events() -> list[CalendarEvent]:
    with get_db() as conn:
        rows = conn.execute("SELECT * FROM events ORDER BY start_at, id").fetchall()
        return [_row_to_event(row) for row in rows]

def _event_values(event: CalendarEvent) -> tuple:
    return (
        event.id, event.title, event.start.isoformat(timespec="minutes"), event.end.isoformat(timespec="minutes"),
        event.type, event.task_id, int(event.is_fixed), event.reasoning, event.quadrant,
    )

_UPSERT_EVENT = """INSERT OR REPLACE INTO events
    (id, title, start_at, end_at, type, task_id, is_fixed, reasoning, quadrant)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)"""

def save_events_db(events: Iterable[CalendarEvent]) -> int:
    """Insert events, replacing any with the same id. Returns how many were written."""
    values = [_event_values(event) for event in events]
    with get_db() as conn:
        conn.executemany(_UPSERT_EVENT, values)
        conn.commit()
    return len(values)

def replace_events_db(events: Iterable[CalendarEvent]):
    """Replace the whole event table in one transaction."""
    values = [_event_values(event) for event in events]
    with get_db() as conn:
        conn.execute("DELETE FROM events")
        conn.executemany(_UPSERT_EVENT, values)
        conn.commit()

def delete_event_db(event_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM events WHERE id = ?", (event_id,))
        conn.commit()
        return cursor.rowcount > 0

# Settings operations
def get_settings() -> WorkWindowConfig:
    """Stored work window settings, or the defaults (9-18, whole week)."""
    with get_db() as conn:
        row = conn.execute("SELECT * FROM settings WHERE id = 1").fetchone()
        if not row:
            return WorkWindowConfig()
        return WorkWindowConfig(
            day_start_hour=row["day_start_hour"],
            day_end_hour=row["day_end_hour"],
            work_week_only=bool(row["work_week_only"]),
        )

def save_settings(config: WorkWindowConfig) -> WorkWindowConfig:
    with get_db() as conn:
        conn.execute(
            """INSERT OR REPLACE INTO settings (id, day_start_hour, day_end_hour, work_week_only)
               VALUES (1, ?, ?, ?)""",
            (config.day_start_hour, config.day_end_hour, int(config.work_week_only))
        )
        conn.commit()
    return config
