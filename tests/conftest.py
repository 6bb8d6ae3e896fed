"""
Test fixtures and configuration for pytest.
"""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from audit_api.config import Settings
from audit_api.errors import DuplicateKey, NotFound, StoreError
from audit_api.main import create_app
from audit_api.models import Event, EventBody
from audit_api.routers.events import get_events
from audit_api.services.query_filter import IN


def matches(document: Dict[str, Any], expression: Dict[str, Any]) -> bool:
    """Evaluate a filter expression against an event document."""
    for field, expected in expression.items():
        if field not in document:
            return False
        value = str(document[field])
        if isinstance(expected, dict):
            if value not in expected[IN]:
                return False
        elif value != expected:
            return False
    return True


class InMemoryEventCollection:
    """Event collection kept in a dict, for testing without PostgreSQL."""

    def __init__(self, limit: int = 100):
        self.limit = limit
        self.events: Dict[uuid.UUID, Event] = {}
        self.fail = False
        self.duplicate = False
        self.filters: List[Dict[str, Any]] = []

    def _check(self):
        if self.fail:
            raise StoreError()

    async def list(self, expression: Dict[str, Any]) -> List[Event]:
        self._check()
        self.filters.append(expression)
        found = [e for e in self.events.values() if matches(e.to_document(), expression)]
        found.sort(key=lambda e: e.time, reverse=True)
        return found[:self.limit]

    async def insert(self, body: EventBody) -> Event:
        self._check()
        if self.duplicate:
            raise DuplicateKey()
        event = Event.from_document(uuid.uuid4(), body.to_document())
        self.events[event.id] = event
        return event

    async def get_by_id(self, event_id: uuid.UUID) -> Event:
        self._check()
        if event_id not in self.events:
            raise NotFound()
        return self.events[event_id]

    async def update_by_id(self, event_id: uuid.UUID, body: EventBody) -> Event:
        self._check()
        if event_id not in self.events:
            raise NotFound()
        event = Event.from_document(event_id, body.to_document())
        self.events[event_id] = event
        return event

    async def delete_by_id(self, event_id: uuid.UUID) -> None:
        self._check()
        if self.events.pop(event_id, None) is None:
            raise NotFound()


class FakeConnection:
    """Records queries and returns canned results, like an asyncpg connection."""

    def __init__(self, result: Any = None, error: Exception = None):
        self.result = result
        self.error = error
        self.calls = []

    async def _run(self, method: str, query: str, args: tuple):
        self.calls.append((method, query, args))
        if self.error is not None:
            raise self.error
        return self.result

    async def fetch(self, query: str, *args):
        return await self._run("fetch", query, args) or []

    async def fetchrow(self, query: str, *args):
        return await self._run("fetchrow", query, args)

    async def fetchval(self, query: str, *args):
        return await self._run("fetchval", query, args)

    async def execute(self, query: str, *args):
        await self._run("execute", query, args)
        return "OK"


class FakePool:
    """Hands out a single connection, or fails to, like an asyncpg pool."""

    def __init__(self, conn: FakeConnection = None, error: Exception = None):
        self.conn = conn
        self.error = error
        self.released = []

    async def acquire(self):
        if self.error is not None:
            raise self.error
        return self.conn

    async def release(self, conn):
        self.released.append(conn)


class MockDatabase:
    """Stands in for the connection pool manager."""

    def __init__(self, healthy: bool = True, conn: FakeConnection = None):
        self.healthy = healthy
        self.conn = conn or FakeConnection()
        self.connected = False
        self.disconnected = False

    async def connect(self) -> None:
        self.connected = True

    async def disconnect(self) -> None:
        self.disconnected = True

    @asynccontextmanager
    async def acquire(self):
        yield self.conn

    async def health_check(self) -> bool:
        return self.healthy


@pytest.fixture
def test_settings() -> Settings:
    """Settings that never touch a real database or .env file."""
    return Settings(_env_file=None, db_ensure_schema=False, environment="test")


@pytest.fixture
def store() -> InMemoryEventCollection:
    """Empty in-memory event collection."""
    return InMemoryEventCollection()


@pytest.fixture
def mock_db() -> MockDatabase:
    """Mock database reporting itself healthy."""
    return MockDatabase()


@pytest.fixture
def app(test_settings: Settings, mock_db: MockDatabase, store: InMemoryEventCollection):
    """Application wired to the in-memory event collection."""
    application = create_app(test_settings, database=mock_db)
    application.dependency_overrides[get_events] = lambda: store
    return application


@pytest.fixture
def client(app) -> TestClient:
    """Test client for the application (lifespan not started)."""
    return TestClient(app)


@pytest.fixture
def sample_event() -> dict:
    """Sample event payload for testing."""
    return {
        "entity": "User",
        "action": "CREATE",
        "event": "User alice created",
        "time": "2025-01-01T12:00:00Z",
        "author": "admin@example.com"
    }


@pytest.fixture
def seeded_store(store: InMemoryEventCollection) -> InMemoryEventCollection:
    """Store holding a handful of events one minute apart (oldest first)."""
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)
    rows = [
        ("User", "CREATE", "alice"),
        ("User", "UPDATE", "alice"),
        ("User", "DELETE", "bob"),
        ("Invoice", "CREATE", "bob"),
        ("Invoice", "UPDATE", "carol"),
    ]
    for minute, (entity, action, author) in enumerate(rows):
        event = Event(
            id=uuid.uuid4(),
            entity=entity,
            action=action,
            event=f"{entity} {action.lower()}d",
            time=base + timedelta(minutes=minute),
            author=author
        )
        store.events[event.id] = event
    return store
