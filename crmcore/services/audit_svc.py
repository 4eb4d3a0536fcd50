"""Audit recorder - append-only change log for every committed mutation."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Any, AsyncIterator

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models import AuditRecord, Base

CREATED = "created"
UPDATED = "updated"
DELETED = "deleted"
STAGE_CHANGED = "stage_changed"
CLOSED = "closed"


def jsonable(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def snapshot(values: dict[str, Any]) -> dict[str, list]:
    """Field changes for a new record: every field goes from None."""
    return {key: [None, jsonable(value)] for key, value in values.items()}


def diff(obj: Base, changes: dict[str, Any]) -> dict[str, list]:
    """Field changes ``changes`` would make to ``obj``. Unchanged fields are dropped."""
    result: dict[str, list] = {}
    for key, new in changes.items():
        old = getattr(obj, key)
        if old != new:
            result[key] = [jsonable(old), jsonable(new)]
    return result


async def record(
    db: AsyncSession,
    *,
    entity_kind: str,
    entity_id: uuid.UUID,
    action: str,
    field_changes: dict[str, list],
    actor_id: uuid.UUID | None = None,
    description: str | None = None,
) -> AuditRecord:
    entry = AuditRecord(
        recorded_at=datetime.now(timezone.utc),
        actor_id=actor_id,
        entity_kind=entity_kind,
        entity_id=entity_id,
        action=action,
        field_changes=field_changes,
        description=description,
    )
    db.add(entry)
    await db.flush()
    return entry


class AuditTrail:
    """Chronological audit records for one entity.

    Iterating issues fresh paged queries each time, so a trail can be
    replayed any number of times and always reflects what is committed.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        entity_kind: str,
        entity_id: uuid.UUID,
        page_size: int = 100,
    ):
        self.session_factory = session_factory
        self.entity_kind = entity_kind
        self.entity_id = entity_id
        self.page_size = page_size

    async def __aiter__(self) -> AsyncIterator[AuditRecord]:
        last_seq = 0
        while True:
            stmt = (
                select(AuditRecord)
                .where(
                    AuditRecord.entity_kind == self.entity_kind,
                    AuditRecord.entity_id == self.entity_id,
                    AuditRecord.seq > last_seq,
                )
                .order_by(AuditRecord.seq)
                .limit(self.page_size)
            )
            async with self.session_factory() as db:
                page = list((await db.execute(stmt)).scalars().all())
            for entry in page:
                yield entry
            if len(page) < self.page_size:
                return
            last_seq = page[-1].seq

    async def all(self) -> list[AuditRecord]:
        return [entry async for entry in self]

    def __repr__(self) -> str:
        return f"<AuditTrail {self.entity_kind} {self.entity_id}>"


def records_for(
    session_factory: async_sessionmaker[AsyncSession],
    entity_kind: str,
    entity_id: uuid.UUID,
    page_size: int = 100,
) -> AuditTrail:
    return AuditTrail(session_factory, entity_kind, entity_id, page_size)
