"""
Shared fixtures for the test suite.
"""

import os

# Must be set before settings are first loaded
os.environ["ENVIRONMENT"] = "test"

from datetime import datetime, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from routine_sync.infrastructure.local.database import Base
from routine_sync.infrastructure.local.document_store import SqliteDocumentStore
from routine_sync.services.recurrence_service import RecurrenceService
from routine_sync.utils.datetime_utils import fixed_zone

# Friday 2024-01-19 12:00 at UTC+09:00
FIXED_NOW = datetime(2024, 1, 19, 3, 0, tzinfo=timezone.utc)


@pytest.fixture
async def session_factory(tmp_path):
    """Session factory on a throwaway SQLite file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def store(session_factory):
    return SqliteDocumentStore(session_factory=session_factory)


@pytest.fixture
def test_user_id():
    return "test_user"


@pytest.fixture
def recurrence():
    """Recurrence service frozen at FIXED_NOW."""
    return RecurrenceService(window_days=7, zone=fixed_zone(540), clock=lambda: FIXED_NOW)
