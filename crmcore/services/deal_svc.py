"""Deal lifecycle - stage moves, closing, and pipeline stats."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import InvalidTransition
from ..models import Deal, Stage
from ..models.deal import CLOSED_STATUSES, LOST, OPEN, WON
from . import audit_svc, store, validator_svc

log = logging.getLogger(__name__)


@dataclass
class Transition:
    """A committed lifecycle move, ready to be audited."""

    deal: Deal
    action: str
    field_changes: dict[str, list] = field(default_factory=dict)
    description: str | None = None


@dataclass
class StageCount:
    stage_id: uuid.UUID
    name: str
    order: int
    open_deals: int


async def _stages_between(
    db: AsyncSession, pipeline_id: uuid.UUID, low: int, high: int
) -> int:
    stmt = select(func.count(Stage.id)).where(
        Stage.pipeline_id == pipeline_id,
        Stage.deleted_at.is_(None),
        Stage.order > low,
        Stage.order < high,
    )
    return (await db.execute(stmt)).scalar() or 0


async def advance_stage(db: AsyncSession, deal_id: uuid.UUID, stage_id: uuid.UUID) -> Transition:
    """Move an open deal to any live stage of its own pipeline.

    Out-of-order moves are allowed. Backward moves and forward moves that
    skip live stages are logged and noted in the audit trail.
    """
    deal = await store.get(db, "deal", deal_id)
    target = await validator_svc.validate_transition(db, deal, OPEN, stage_id)
    if target.id == deal.stage_id:
        return Transition(deal, audit_svc.STAGE_CHANGED)

    current = await store.get(db, "stage", deal.stage_id, include_deleted=True)
    description = None
    if target.order < current.order:
        description = f"moved backward from {current.name!r} to {target.name!r}"
    else:
        skipped = await _stages_between(db, deal.pipeline_id, current.order, target.order)
        if skipped:
            description = (
                f"skipped {skipped} stage(s) from {current.name!r} to {target.name!r}"
            )
    if description:
        log.info("Deal %s %s", deal.id, description)

    changes = audit_svc.diff(deal, {"stage_id": target.id})
    deal.stage_id = target.id
    await db.flush()
    return Transition(deal, audit_svc.STAGE_CHANGED, changes, description)


async def close(db: AsyncSession, deal_id: uuid.UUID, outcome: str) -> Transition:
    """Close an open deal as won or lost. Its stage is frozen where it stands."""
    deal = await store.get(db, "deal", deal_id)
    await validator_svc.validate_transition(db, deal, outcome)
    if outcome not in CLOSED_STATUSES:
        raise InvalidTransition(f"a deal closes as won or lost, not {outcome!r}")

    patch = {"status": outcome, "closed_at": datetime.now(timezone.utc)}
    changes = audit_svc.diff(deal, patch)
    for key, value in patch.items():
        setattr(deal, key, value)
    await db.flush()
    return Transition(deal, audit_svc.CLOSED, changes, f"closed as {outcome}")


async def mark_won(db: AsyncSession, deal_id: uuid.UUID) -> Transition:
    return await close(db, deal_id, WON)


async def mark_lost(db: AsyncSession, deal_id: uuid.UUID) -> Transition:
    return await close(db, deal_id, LOST)


async def pipeline_stats(db: AsyncSession, pipeline_id: uuid.UUID) -> list[StageCount]:
    """Open deal counts per live stage, in stage order.

    Stage names need not be unique, so each row carries its stage id.
    """
    stmt = (
        select(Stage.id, Stage.name, Stage.order, func.count(Deal.id))
        .outerjoin(
            Deal,
            (Deal.stage_id == Stage.id)
            & (Deal.status == OPEN)
            & Deal.deleted_at.is_(None),
        )
        .where(Stage.pipeline_id == pipeline_id, Stage.deleted_at.is_(None))
        .group_by(Stage.id, Stage.name, Stage.order)
        .order_by(Stage.order)
    )
    result = await db.execute(stmt)
    return [StageCount(*row) for row in result.all()]


async def weighted_value(db: AsyncSession, pipeline_id: uuid.UUID) -> float:
    """Sum of open deal values weighted by their stage's win probability."""
    stmt = (
        select(func.coalesce(func.sum(Deal.value * Stage.win_probability), 0.0))
        .join(Stage, Deal.stage_id == Stage.id)
        .where(
            Deal.pipeline_id == pipeline_id,
            Deal.status == OPEN,
            Deal.deleted_at.is_(None),
        )
    )
    return float((await db.execute(stmt)).scalar() or 0.0)
