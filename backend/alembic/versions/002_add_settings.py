"""Add settings table for the working-hours window

Revision ID: 002
Revises: 001
Create Date: 2026-01-26

"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy import text

revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()

    # Single row table, id is always 1
    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS settings (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            day_start_hour INTEGER NOT NULL DEFAULT 9,
            day_end_hour INTEGER NOT NULL DEFAULT 18,
            work_week_only INTEGER NOT NULL DEFAULT 0
        )
    """))


def downgrade() -> None:
    conn = op.get_bind()
    conn.execute(text("DROP TABLE IF EXISTS settings"))
