"""
Shared pytest fixtures for backend tests.
Uses a temporary SQLite database per test and a fake Claude client.
"""
import pytest
import sqlite3
import sys
import os
from types import SimpleNamespace

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import database


class FakeMessages:
    """
    Stands in for client.messages; replays a canned reply or raises an exception.
    A None reply comes back with no content blocks.
    """

    def __init__(self, reply):
        self.reply = reply
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.reply, Exception):
            raise self.reply
        if self.reply is None:
            return SimpleNamespace(content=[])
        return SimpleNamespace(content=[SimpleNamespace(text=self.reply)])


class FakeClaude:
    def __init__(self, reply):
        self.messages = FakeMessages(reply)


@pytest.fixture
def fake_claude():
    """Factory for fake Claude clients: fake_claude('{"text": "hi"}')."""
    return FakeClaude


@pytest.fixture
def test_db(monkeypatch, tmp_path):
    """
    Create an isolated test database for each test.
    Uses a temp file (not :memory:) because database.py opens new connections per operation.
    """
    db_path = str(tmp_path / "test.db")
    monkeypatch.setattr(database, "DATABASE_PATH", db_path)
    monkeypatch.setattr(database, "init_db", lambda: None)

    # Create tables directly (skip alembic for tests)
    conn = sqlite3.connect(db_path)
    conn.executescript("""
        CREATE TABLE tasks (
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
        );

        CREATE TABLE events (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            start_at TEXT NOT NULL,
            end_at TEXT NOT NULL,
            type TEXT NOT NULL DEFAULT 'meeting',
            task_id TEXT,
            is_fixed INTEGER NOT NULL DEFAULT 1,
            reasoning TEXT,
            quadrant TEXT
        );

        CREATE TABLE settings (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            day_start_hour INTEGER NOT NULL DEFAULT 9,
            day_end_hour INTEGER NOT NULL DEFAULT 18,
            work_week_only INTEGER NOT NULL DEFAULT 0
        );
    """)
    conn.commit()
    conn.close()

    yield db_path


@pytest.fixture
def app_client(test_db, monkeypatch):
    """
    Create a test client for the FastAPI app.
    Skips alembic migrations and starts with no API key configured.
    """
    from fastapi.testclient import TestClient
    import main

    # Skip alembic in tests - tables already created by test_db fixture
    monkeypatch.setattr(main, "init_db", lambda: None)
    monkeypatch.setattr(main, "ANTHROPIC_API_KEY", None)

    with TestClient(main.app) as client:
        yield client


@pytest.fixture
def use_claude(monkeypatch, fake_claude):
    """Install a fake Claude client in main with the given reply; returns the client."""
    import main

    def install(reply):
        client = fake_claude(reply)
        monkeypatch.setattr(main, "client", client)
        monkeypatch.setattr(main, "ANTHROPIC_API_KEY", "sk-ant-test")
        return client

    return install
