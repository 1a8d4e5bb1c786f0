"""Tests for engine and session factory creation."""

import pytest
from sqlalchemy import text
from sqlalchemy.pool import StaticPool

from catalog_items.infrastructure.database import create_engine, create_session_factory


class TestCreateEngine:
    """Tests for create_engine."""

    @pytest.mark.asyncio
    async def test_sqlite_memory_survives_sessions(self) -> None:
        """In-memory SQLite data is visible to later sessions."""
        engine = create_engine("sqlite+aiosqlite:///:memory:", echo=False)
        assert isinstance(engine.pool, StaticPool)

        session_factory = create_session_factory(engine)
        async with session_factory() as session:
            await session.execute(text("CREATE TABLE markers (id INTEGER PRIMARY KEY)"))
            await session.execute(text("INSERT INTO markers (id) VALUES (1)"))
            await session.commit()

        async with session_factory() as session:
            result = await session.execute(text("SELECT count(*) FROM markers"))
            assert result.scalar_one() == 1

        await engine.dispose()
