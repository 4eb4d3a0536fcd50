"""Async database engine and session factory."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from .config import settings

engine = create_async_engine(settings.database_url, echo=settings.echo_sql)
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(eng=None) -> None:
    """Create all tables (SQLite / local dev). Durable backends use Alembic."""
    from .models import Base

    eng = eng or engine
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
