"""
Pytest configuration and shared fixtures

APPROACH: Unit tests run the real ConnectionPool, planner, mapper and
resolver against FakeDatabase, an in-memory stand-in for PostgreSQL that
answers the planned statements from canned tables and records every
statement it receives. Integration tests against a real database live in
test_database_integration.py.
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config import DatabaseConfig
from database import ConnectionPool
from query import QueryResolver


def pytest_configure(config):
    """Mark that we're in test mode"""
    import os
    os.environ['PYTEST_RUNNING'] = '1'


SCENARIO_SERIES = [
    {"id": 1, "name": "Talks", "description": "Weekly talks"},
]

SCENARIO_EVENTS = [
    {"id": 10, "title": "Intro", "part_of": 1},
    {"id": 11, "title": "Standalone", "part_of": None},
]


class _FakeTransaction:
    def __init__(self, connection):
        self.connection = connection

    async def __aenter__(self):
        self.connection.in_transaction = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.connection.in_transaction = False
        return False


class FakeConnection:
    """Mimics the parts of asyncpg.Connection the pool uses."""

    def __init__(self, db: "FakeDatabase", number: int):
        self.db = db
        self.number = number
        self.closed = False
        self.terminated = False
        self.in_use = False
        self.in_transaction = False

    def is_closed(self) -> bool:
        return self.closed

    async def close(self, timeout=None):
        self.closed = True

    def terminate(self):
        self.closed = True
        self.terminated = True

    def transaction(self, **kwargs):
        return _FakeTransaction(self)

    def cursor(self, query: str, *args):
        self.db.statements.append(query)
        return self._rows(query)

    async def _rows(self, query: str):
        assert not self.in_use, "connection handed to two statements at once"
        assert self.in_transaction, "cursor used outside a transaction"
        self.in_use = True
        self.db.active += 1
        self.db.max_active = max(self.db.max_active, self.db.active)
        try:
            await asyncio.sleep(self.db.delay)
            if self.db.fail_with is not None:
                raise self.db.fail_with
            for row in self.db.answer(query):
                self.db.rows_sent += 1
                yield row
                await asyncio.sleep(0)
        finally:
            self.db.active -= 1
            self.in_use = False

    async def fetchval(self, query: str, timeout=None):
        await asyncio.sleep(self.db.probe_delay)
        if self.db.probe_fails:
            raise ConnectionResetError("connection reset by peer")
        return 1


class FakePool:
    """
    Mimics the parts of asyncpg.Pool the connection pool uses: bounded
    acquire with a timeout, release of closed connections (replaced on a
    later acquire) and the size counters.
    """

    def __init__(self, db: "FakeDatabase", min_size: int, max_size: int):
        self.db = db
        self._min_size = min_size
        self._max_size = max_size
        self._semaphore = asyncio.Semaphore(max_size)
        self._idle: list[FakeConnection] = []
        self._in_use: set[FakeConnection] = set()
        self._closed = False

    async def acquire(self, *, timeout=None) -> FakeConnection:
        await asyncio.wait_for(self._semaphore.acquire(), timeout)
        try:
            while self._idle:
                conn = self._idle.pop()
                if not conn.is_closed():
                    break
            else:
                conn = await self.db.connect()
        except BaseException:
            self._semaphore.release()
            raise
        self._in_use.add(conn)
        return conn

    async def release(self, conn: FakeConnection, *, timeout=None):
        assert conn in self._in_use, "connection released twice"
        self._in_use.remove(conn)
        if self._closed:
            await conn.close()
        elif not conn.is_closed():
            self._idle.append(conn)
        self._semaphore.release()

    async def close(self):
        self._closed = True
        for conn in self._idle:
            await conn.close()
        self._idle.clear()

    def get_size(self) -> int:
        return sum(1 for c in (*self._idle, *self._in_use) if not c.is_closed())

    def get_idle_size(self) -> int:
        return sum(1 for c in self._idle if not c.is_closed())

    def get_min_size(self) -> int:
        return self._min_size

    def get_max_size(self) -> int:
        return self._max_size


class FakeDatabase:
    """
    In-memory series/events store.

    Answers the three statement shapes the planner emits, returning rows as
    dicts keyed by the column aliases, ordered by id.
    """

    def __init__(self, series=None, events=None):
        self.series = list(series if series is not None else SCENARIO_SERIES)
        self.events = list(events if events is not None else SCENARIO_EVENTS)
        self.statements: list[str] = []
        self.connections: list[FakeConnection] = []
        self.delay = 0.0
        self.fail_with: Optional[BaseException] = None
        self.connect_fails_with: Optional[BaseException] = None
        self.probe_fails = False
        self.probe_delay = 0.0
        self.active = 0
        self.max_active = 0
        self.rows_sent = 0

    async def connect(self) -> FakeConnection:
        if self.connect_fails_with is not None:
            raise self.connect_fails_with
        conn = FakeConnection(self, len(self.connections) + 1)
        self.connections.append(conn)
        return conn

    async def create_pool(self, config: DatabaseConfig) -> "FakePool":
        pool = FakePool(self, config.min_pool_size, config.max_pool_size)
        for _ in range(config.min_pool_size):
            pool._idle.append(await self.connect())
        return pool

    def _series_by_id(self):
        return {s["id"]: s for s in self.series}

    def answer(self, query: str) -> list[dict]:
        if "FROM events" in query and "LEFT JOIN series" in query:
            by_id = self._series_by_id()
            rows = []
            for e in sorted(self.events, key=lambda e: e["id"]):
                s = by_id.get(e["part_of"], {})
                rows.append({
                    "id": e["id"],
                    "title": e["title"],
                    "series_id": s.get("id"),
                    "series_name": s.get("name"),
                    "series_description": s.get("description"),
                })
            return rows
        if "FROM events" in query:
            return [{"id": e["id"], "title": e["title"]} for e in sorted(self.events, key=lambda e: e["id"])]
        if "FROM series" in query:
            return [
                {"id": s["id"], "name": s["name"], "description": s["description"]}
                for s in sorted(self.series, key=lambda s: s["id"])
            ]
        raise AssertionError(f"unexpected statement: {query}")


def make_config(max_pool_size: int = 4, min_pool_size: int = 0, **kwargs) -> DatabaseConfig:
    return DatabaseConfig(
        host="localhost",
        port=5432,
        database="minitest_test",
        user="postgres",
        password="",
        min_pool_size=min_pool_size,
        max_pool_size=max_pool_size,
        **kwargs,
    )


@pytest.fixture
def fake_db():
    """Scenario data: one series, one event in it and one standalone event."""
    return FakeDatabase()


@pytest.fixture
def make_pool(fake_db):
    """Factory for pools backed by the fake database."""
    def _make(max_pool_size: int = 4, **kwargs) -> ConnectionPool:
        return ConnectionPool(make_config(max_pool_size=max_pool_size, **kwargs), create_pool=fake_db.create_pool)
    return _make


@pytest.fixture
async def pool(make_pool):
    pool = make_pool()
    await pool.open()
    yield pool
    await pool.close()


@pytest.fixture
def resolver(pool):
    return QueryResolver(pool)
