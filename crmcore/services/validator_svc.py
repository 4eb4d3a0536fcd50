"""Relationship validator - the single gate for referential integrity.

Every create and update passes through here before the entity store is
touched. Checks are fail-fast: the first broken rule raises.

Tombstoned records count as nonexistent for new references but stay
readable for history.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import DealClosed, IntegrityViolation, InvalidTransition
from ..models import Base, Deal, Pipeline, Stage
from ..models.deal import CLOSED_STATUSES, OPEN
from ..registry import EntityKind, get_kind
from ..schemas.base import as_utc
from . import store

DEAL_STATUSES = frozenset({OPEN}) | CLOSED_STATUSES


def references(kind: EntityKind, values: dict[str, Any]) -> dict[str, tuple[str, uuid.UUID]]:
    """Non-null foreign keys in ``values`` as field -> (kind, id)."""
    return {
        field: (ref_kind, values[field])
        for field, ref_kind in kind.references.items()
        if values.get(field) is not None
    }


def merged(kind: EntityKind, current: Base, changes: dict[str, Any]) -> dict[str, Any]:
    """The foreign key values the record will carry once ``changes`` apply."""
    return {
        field: changes.get(field, getattr(current, field))
        for field in kind.references
    }


async def require_live(
    db: AsyncSession, kind_name: str, entity_id: uuid.UUID, field: str
) -> Base:
    obj = await store.fetch(db, get_kind(kind_name), entity_id)
    if obj is None:
        raise IntegrityViolation(field, f"{kind_name} {entity_id} does not exist or is deleted")
    return obj


async def verify_live(db: AsyncSession, refs: dict[str, tuple[str, uuid.UUID]]) -> None:
    """Commit-time re-check that every referenced record is still live."""
    for field, (ref_kind, ref_id) in refs.items():
        await require_live(db, ref_kind, ref_id, field)


async def _check_stage_order(
    db: AsyncSession, pipeline_id: uuid.UUID, order: int, exclude_id: uuid.UUID | None = None
) -> None:
    stmt = select(Stage.id).where(
        Stage.pipeline_id == pipeline_id,
        Stage.order == order,
        Stage.deleted_at.is_(None),
    )
    if exclude_id is not None:
        stmt = stmt.where(Stage.id != exclude_id)
    if (await db.execute(stmt.limit(1))).scalar_one_or_none() is not None:
        raise IntegrityViolation("order", f"order {order} is already used in pipeline {pipeline_id}")


async def next_stage_order(db: AsyncSession, pipeline_id: uuid.UUID) -> int:
    stmt = select(func.max(Stage.order)).where(
        Stage.pipeline_id == pipeline_id, Stage.deleted_at.is_(None)
    )
    max_order = (await db.execute(stmt)).scalar()
    return (max_order + 1) if max_order is not None else 0


async def _check_stage_in_pipeline(
    db: AsyncSession, stage_id: uuid.UUID, pipeline_id: uuid.UUID
) -> Stage:
    stage = await require_live(db, "stage", stage_id, "stage_id")
    if stage.pipeline_id != pipeline_id:
        raise IntegrityViolation(
            "stage_id", f"stage {stage_id} belongs to pipeline {stage.pipeline_id}, not {pipeline_id}"
        )
    return stage


# ── Create ─────────────────────────────────────────────────────────────────

async def validate_create(db: AsyncSession, kind_name: str, candidate: dict[str, Any]) -> None:
    """Check foreign keys and kind invariants for a new record.

    May fill derived fields in ``candidate`` (a stage's order when omitted).
    """
    kind = get_kind(kind_name)
    for field, (ref_kind, ref_id) in references(kind, candidate).items():
        await require_live(db, ref_kind, ref_id, field)

    if kind.name == "stage":
        if candidate.get("order") is None:
            candidate["order"] = await next_stage_order(db, candidate["pipeline_id"])
        else:
            await _check_stage_order(db, candidate["pipeline_id"], candidate["order"])
    elif kind.name == "deal":
        if candidate.get("status", OPEN) != OPEN:
            raise InvalidTransition("deals are created open; use close_deal to win or lose them")
        await _check_stage_in_pipeline(db, candidate["stage_id"], candidate["pipeline_id"])


# ── Update ─────────────────────────────────────────────────────────────────

async def validate_update(
    db: AsyncSession, kind_name: str, current: Base, changes: dict[str, Any]
) -> None:
    kind = get_kind(kind_name)

    if kind.name == "deal":
        # Closed deals reject everything before any other rule is consulted.
        ensure_open(current)
        if "status" in changes and changes["status"] != current.status:
            raise InvalidTransition("deal status changes go through close_deal")

    for field in kind.immutable:
        if field in changes and changes[field] != getattr(current, field):
            raise IntegrityViolation(field, "cannot change after creation")

    # Every foreign key must be live at write time, including unchanged ones.
    for field, (ref_kind, ref_id) in references(kind, merged(kind, current, changes)).items():
        await require_live(db, ref_kind, ref_id, field)

    if kind.name == "stage":
        if "order" in changes and changes["order"] != current.order:
            await _check_stage_order(db, current.pipeline_id, changes["order"], exclude_id=current.id)
    elif kind.name == "deal":
        pipeline_id = changes.get("pipeline_id", current.pipeline_id)
        if pipeline_id != current.pipeline_id and "stage_id" not in changes:
            raise IntegrityViolation(
                "stage_id", "changing pipeline_id requires a stage_id in the new pipeline"
            )
        await _check_stage_in_pipeline(db, changes.get("stage_id", current.stage_id), pipeline_id)
    elif kind.name == "activity":
        scheduled = as_utc(changes.get("scheduled_at", current.scheduled_at))
        completed = as_utc(changes.get("completed_at", current.completed_at))
        if scheduled is not None and completed is not None and completed < scheduled:
            raise IntegrityViolation("completed_at", "completed_at must not precede scheduled_at")


# ── Default pipeline ───────────────────────────────────────────────────────

async def current_defaults(
    db: AsyncSession, exclude_id: uuid.UUID | None = None
) -> list[Pipeline]:
    stmt = select(Pipeline).where(Pipeline.is_default.is_(True), Pipeline.deleted_at.is_(None))
    if exclude_id is not None:
        stmt = stmt.where(Pipeline.id != exclude_id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def claim_default(db: AsyncSession, pipeline_id: uuid.UUID) -> list[Pipeline]:
    """Make ``pipeline_id`` the only live default by clearing any other.

    Must run inside the serialized commit path. Returns the pipelines whose
    flag was cleared so the caller can audit them.
    """
    displaced = await current_defaults(db, exclude_id=pipeline_id)
    for pipeline in displaced:
        pipeline.is_default = False
    if displaced:
        await db.flush()
    return displaced


# ── Deal state machine ─────────────────────────────────────────────────────

def ensure_open(deal: Deal) -> None:
    if deal.status in CLOSED_STATUSES:
        raise DealClosed(deal.id, deal.status)


async def validate_transition(
    db: AsyncSession,
    deal: Deal,
    new_status: str,
    new_stage_id: uuid.UUID | None = None,
) -> Stage | None:
    """Check a lifecycle move of ``deal``. Returns the target stage if one was given.

    open -> open (stage change), open -> won, open -> lost are legal; won and
    lost are terminal.
    """
    ensure_open(deal)
    if new_status not in DEAL_STATUSES:
        raise InvalidTransition(f"unknown deal status {new_status!r}")
    if new_stage_id is None:
        return None
    if new_status != OPEN:
        raise InvalidTransition("a deal's stage is frozen when it closes")
    return await _check_stage_in_pipeline(db, new_stage_id, deal.pipeline_id)
