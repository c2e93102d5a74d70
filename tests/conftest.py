"""Shared fixtures: in-memory Record Store and fake HTTP upstreams."""

from __future__ import annotations

from typing import AsyncIterator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tests.fakes import FakeQueueApi, FakeStorageApi, make_settings
from wardrobe_intake.config.settings import FOUNDER_USER_ID, Settings
from wardrobe_intake.core.tenant import TenantContext
from wardrobe_intake.db.session import build_session_factory, init_db


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def tenant() -> TenantContext:
    return TenantContext(user_id=FOUNDER_USER_ID)


@pytest.fixture
def storage_api() -> FakeStorageApi:
    return FakeStorageApi()


@pytest.fixture
def queue_api() -> FakeQueueApi:
    return FakeQueueApi()


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session
