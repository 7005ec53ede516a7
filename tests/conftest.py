"""
Pytest configuration and shared fixtures.

This module provides:
- Environment variable setup for tests
- A fresh in-memory SQLite database per test
- A seeded "world" of continents and countries
"""

import os

import pytest

# Set test environment variables BEFORE any imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LEGACY_SWALLOW_SELECTOR_ERRORS"] = "false"

from globe_data.core.settings import Settings  # noqa: E402
from globe_data.db.base import Base  # noqa: E402
from globe_data.db.session import build_engine, build_session_maker  # noqa: E402
from tests.models import Continent, Country  # noqa: E402

CONTINENTS = ["Africa", "Asia", "Europe"]
COUNTRY_COUNT = 25


@pytest.fixture
def anyio_backend():
    """
    Configure anyio backend for async tests.

    Returns:
        str: Backend name ("asyncio")
    """
    return "asyncio"


@pytest.fixture
async def engine():
    """Engine bound to a private in-memory database with all tables created."""
    engine = build_engine(Settings(DATABASE_URL="sqlite+aiosqlite:///:memory:", _env_file=None))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest.fixture
async def session(session_maker):
    """Session handed to the repository under test."""
    async with session_maker() as session:
        yield session


@pytest.fixture
async def world(session_maker):
    """
    Seed 3 continents and 25 countries through a separate session.

    Countries are assigned round-robin, so continent index 0 owns 9 of them
    and the others own 8 each. Returns a dict with the generated ids.
    """
    async with session_maker() as seed:
        continents = [Continent(name=name) for name in CONTINENTS]
        seed.add_all(continents)
        await seed.flush()
        countries = [
            Country(
                name=f"Country {i:02d}",
                code=f"C{i:02d}",
                population=(i + 1) * 1000,
                continent_id=continents[i % len(continents)].id,
            )
            for i in range(COUNTRY_COUNT)
        ]
        seed.add_all(countries)
        await seed.commit()
        return {
            "continent_ids": [c.id for c in continents],
            "country_ids": [c.id for c in countries],
        }
