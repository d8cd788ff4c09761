"""Global test fixtures and utilities for progression service tests"""
import pytest
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock
from datetime import datetime, timezone


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def mock_db_cursor():
    """Mock database cursor with standard query results"""
    cursor = AsyncMock()
    cursor.fetchone = AsyncMock(return_value=None)
    cursor.fetchall = AsyncMock(return_value=[])
    cursor.execute = AsyncMock()
    cursor.rowcount = 0
    return cursor


@pytest.fixture
def mock_db_connection(mock_db_cursor):
    """Mock psycopg connection whose cursor() yields mock_db_cursor"""
    conn = MagicMock()
    conn.cursor.return_value.__aenter__.return_value = mock_db_cursor
    conn.commit = AsyncMock()
    conn.rollback = AsyncMock()
    return conn


class FakeDatabase:
    """
    Stand-in for src.db.connection.Database

    connection() and transaction() both yield the same mock connection.
    `transactions` counts opened transactions; `rolled_back` is set when a
    transaction block raised.
    """

    def __init__(self, conn):
        self.conn = conn
        self.init_pool = AsyncMock()
        self.close_pool = AsyncMock()
        self.transactions = 0
        self.rolled_back = False

    @asynccontextmanager
    async def connection(self):
        yield self.conn

    @asynccontextmanager
    async def transaction(self):
        self.transactions += 1
        try:
            yield self.conn
        except Exception:
            self.rolled_back = True
            raise


@pytest.fixture
def mock_db(mock_db_connection):
    """Fake Database handing out mock_db_connection"""
    return FakeDatabase(mock_db_connection)


# ============================================================================
# User Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "8a1f6c2e-3b4d-4e5f-9a6b-7c8d9e0f1a2b"


@pytest.fixture
def test_api_key():
    """API key accepted by the test application"""
    return "test_key_123"


# ============================================================================
# Time Fixtures
# ============================================================================

@pytest.fixture
def frozen_now():
    """Fixed reference instant for streak and history tests"""
    return datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# Row Fixtures
# ============================================================================

@pytest.fixture
def xp_transaction_row(test_user_id):
    """Row returned by INSERT INTO xp_transactions ... RETURNING"""
    def _create(amount=20, source="quest", source_id=None, description=None, created_at=None):
        return {
            "id": "tx-1",
            "user_id": test_user_id,
            "amount": amount,
            "source": source,
            "source_id": source_id,
            "description": description,
            "created_at": created_at or datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc),
        }
    return _create


@pytest.fixture
def notification_row(test_user_id):
    """Row shape of the notifications table"""
    def _create(id="n-1", type="xp_gained", read=False, **overrides):
        row = {
            "id": id,
            "user_id": test_user_id,
            "type": type,
            "title": "+20 XP Earned!",
            "message": "You earned 20 XP from quest",
            "data": {"amount": 20, "source": "quest", "source_id": None},
            "read": read,
            "created_at": datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc),
        }
        row.update(overrides)
        return row
    return _create
