"""Entity store - keyed storage with primary key and unique field checks.

The store flushes but never commits; callers commit once per operation so
an entity write and its audit record land in the same transaction. It does
no cross-entity checking and no cascading.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import DuplicateKey, IntegrityViolation, NotFound
from ..models import Base
from ..registry import EntityKind, get_kind


async def fetch(
    db: AsyncSession, kind: EntityKind, entity_id: uuid.UUID, *, include_deleted: bool = False
) -> Base | None:
    model = kind.model
    stmt = select(model).where(model.id == entity_id)
    if not include_deleted:
        stmt = stmt.where(model.deleted_at.is_(None))
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def check_unique(
    db: AsyncSession,
    kind: EntityKind,
    values: dict[str, Any],
    exclude_id: uuid.UUID | None = None,
) -> None:
    """Raise DuplicateKey if a declared-unique value is taken by a live record."""
    model = kind.model
    for field in kind.unique:
        value = values.get(field)
        if value is None:
            continue
        stmt = select(model.id).where(
            getattr(model, field) == value, model.deleted_at.is_(None)
        )
        if exclude_id is not None:
            stmt = stmt.where(model.id != exclude_id)
        if (await db.execute(stmt.limit(1))).scalar_one_or_none() is not None:
            raise DuplicateKey(kind.name, field, value)


async def create(db: AsyncSession, kind_name: str, record: dict[str, Any]) -> Base:
    kind = get_kind(kind_name)
    await check_unique(db, kind, record)
    obj = kind.model(**record)
    if obj.id is None:
        obj.id = uuid.uuid4()
    db.add(obj)
    await db.flush()
    return obj


async def get(
    db: AsyncSession, kind_name: str, entity_id: uuid.UUID, *, include_deleted: bool = False
) -> Base:
    kind = get_kind(kind_name)
    obj = await fetch(db, kind, entity_id, include_deleted=include_deleted)
    if obj is None:
        raise NotFound(kind.name, entity_id)
    return obj


async def update(
    db: AsyncSession, kind_name: str, entity_id: uuid.UUID, patch: dict[str, Any]
) -> Base:
    kind = get_kind(kind_name)
    obj = await get(db, kind.name, entity_id)
    await check_unique(db, kind, patch, exclude_id=obj.id)
    for key, value in patch.items():
        setattr(obj, key, value)
    await db.flush()
    return obj


async def soft_delete(db: AsyncSession, kind_name: str, entity_id: uuid.UUID) -> Base:
    obj = await get(db, kind_name, entity_id)
    obj.deleted_at = datetime.now(timezone.utc)
    await db.flush()
    return obj


async def list_records(
    db: AsyncSession, kind_name: str, *, include_deleted: bool = False, **filters: Any
) -> list[Base]:
    """Default query: live records matching equality filters, oldest first."""
    kind = get_kind(kind_name)
    model = kind.model
    stmt = select(model)
    for key, value in filters.items():
        if key not in model.__table__.columns:
            raise IntegrityViolation(key, f"{kind.name} has no field {key!r}")
        stmt = stmt.where(getattr(model, key) == value)
    if not include_deleted:
        stmt = stmt.where(model.deleted_at.is_(None))
    stmt = stmt.order_by(model.created_at, model.id)
    result = await db.execute(stmt)
    return list(result.scalars().all())
