"""Initial schema - tasks and calendar events

Revision ID: 001
Revises: None
Create Date: 2026-01-12

"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy import text

revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS tasks (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            description TEXT,
            relevance INTEGER NOT NULL DEFAULT 3,
            urgency INTEGER NOT NULL DEFAULT 3,
            deadline TEXT NOT NULL,
            estimated_hours REAL NOT NULL DEFAULT 1.0,
            status TEXT NOT NULL DEFAULT 'pending',
            completed_at TEXT,
            is_fixed INTEGER NOT NULL DEFAULT 0,
            recurrence TEXT NOT NULL DEFAULT 'none',
            start_time TEXT,
            finish_time TEXT,
            created_at TEXT NOT NULL
        )
    """))

    # start_at/end_at hold local ISO datetimes with minute precision
    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS events (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            start_at TEXT NOT NULL,
            end_at TEXT NOT NULL,
            type TEXT NOT NULL DEFAULT 'meeting',
            task_id TEXT,
            is_fixed INTEGER NOT NULL DEFAULT 1,
            reasoning TEXT,
            quadrant TEXT
        )
    """))
    conn.execute(text("CREATE INDEX IF NOT EXISTS ix_events_start_at ON events (start_at)"))


def downgrade() -> None:
    conn = op.get_bind()
    conn.execute(text("DROP TABLE IF EXISTS events"))
    conn.execute(text("DROP TABLE IF EXISTS tasks"))
