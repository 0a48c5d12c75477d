from __future__ import annotations

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from src.db import Base, Subject, Topic


@pytest_asyncio.fixture
async def session_factory() -> async_sessionmaker:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def seeded_factory(session_factory: async_sessionmaker) -> async_sessionmaker:
    async with session_factory() as session:
        async with session.begin():
            session.add_all(
                [
                    Subject(id="math", name="Mathematics"),
                    Subject(id="bio", name="Biology"),
                    Topic(id="algebra", subject_id="math", name="Algebra"),
                    Topic(id="cells", subject_id="bio", name="Cells"),
                ]
            )
    return session_factory


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)
