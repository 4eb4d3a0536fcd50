"""Async test fixtures for CRM core tests using SQLite."""

from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from crmcore.core import CRMCore
from crmcore.models.base import Base


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest_asyncio.fixture
async def engine(tmp_path):
    # A file database so concurrent sessions get their own connections.
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'crm.db'}", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def core(session_factory):
    return CRMCore(session_factory)


@pytest_asyncio.fixture
async def user(core: CRMCore):
    return await core.create_entity(
        "user", {"name": "Dana Admin", "email": "dana@example.com", "role": "admin"}
    )


@pytest_asyncio.fixture
async def pipeline(core: CRMCore):
    return await core.create_entity("pipeline", {"name": "Sales"})


@pytest_asyncio.fixture
async def stages(core: CRMCore, pipeline):
    names = [("Lead", 0.1), ("Qualified", 0.3), ("Proposal", 0.6)]
    return [
        await core.create_entity(
            "stage",
            {"pipeline_id": pipeline.id, "name": name, "order": i, "win_probability": p},
        )
        for i, (name, p) in enumerate(names)
    ]


@pytest_asyncio.fixture
async def contact(core: CRMCore):
    return await core.create_entity("contact", {"name": "Sarah", "email": "sarah@acme.test"})


@pytest_asyncio.fixture
async def deal(core: CRMCore, contact, pipeline, stages):
    return await core.create_entity(
        "deal",
        {
            "title": "Acme renewal",
            "contact_id": contact.id,
            "pipeline_id": pipeline.id,
            "stage_id": stages[0].id,
            "value": 1000.0,
        },
    )
