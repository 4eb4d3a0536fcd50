"""CRMCore - the in-process entry point for every CRM data operation.

Each mutation follows the same path: parse the input, plan the lock set,
take the locks, validate, write through the entity store, re-verify
referenced records are still live, append the audit record, commit. A
rejected mutation rolls back and leaves no trace.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .config import settings
from .errors import CRMError
from .models import Base, Deal
from .registry import get_kind, parse_create, parse_patch
from .services import audit_svc, deal_svc, store, validator_svc
from .services.audit_svc import AuditTrail
from .services.locking import DEFAULT_PIPELINE_KEY, KeyedLocks, LockKey, entity_key, unique_key

log = logging.getLogger(__name__)

T = TypeVar("T")


class CRMCore:
    """Schema-integrity core over an async SQLAlchemy session factory.

    The factory must be created with ``expire_on_commit=False``; returned
    records are detached from their session.

    Usage:
        core = CRMCore(async_session_factory)
        org = await core.create_entity("organization", {"name": "Acme"})
        trail = await core.audit_trail("organization", org.id).all()
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        locks: KeyedLocks | None = None,
        *,
        lock_retry_limit: int | None = None,
        audit_page_size: int | None = None,
    ):
        if session_factory is None:
            from .database import async_session_factory as session_factory
        if session_factory.kw.get("expire_on_commit", True):
            # Records are handed back after commit and must stay loaded.
            raise ValueError("session_factory must be built with expire_on_commit=False")
        self.session_factory = session_factory
        self.locks = locks or KeyedLocks()
        self.lock_retry_limit = (
            settings.lock_retry_limit if lock_retry_limit is None else lock_retry_limit
        )
        self.audit_page_size = audit_page_size or settings.audit_page_size

    # ── Serialized commit path ─────────────────────────────────────────────

    async def _mutate(
        self,
        label: str,
        plan: Callable[[AsyncSession], Awaitable[set[LockKey]]],
        apply: Callable[[AsyncSession], Awaitable[T]],
    ) -> T:
        """Run ``apply`` in one transaction while holding every key ``plan`` names.

        The plan is computed from a short read, locks are taken, and the plan
        is recomputed under the locks. If it grew (a concurrent write changed
        what this one touches) the locks are released and the plan retried;
        after ``lock_retry_limit`` attempts the lock set only widens. No lock
        is awaited while a session is open.
        """
        async with self.session_factory() as db:
            keys = await plan(db)

        attempts = 0
        while True:
            async with self.locks.hold(keys):
                async with self.session_factory() as db:
                    needed = await plan(db)
                    if needed <= keys:
                        try:
                            result = await apply(db)
                            await db.commit()
                        except CRMError as exc:
                            await db.rollback()
                            log.warning("Rejected %s: %s", label, exc)
                            raise
                        except BaseException:
                            await db.rollback()
                            raise
                        return result
            attempts += 1
            keys = keys | needed if attempts >= self.lock_retry_limit else needed
            log.debug("Lock set for %s changed, retrying (attempt %d)", label, attempts)

    @staticmethod
    async def _finish(db: AsyncSession, obj: T) -> T:
        # Load server-side defaults (timestamps) so the record is usable detached.
        await db.refresh(obj)
        return obj

    # ── Generic entities ───────────────────────────────────────────────────

    async def create_entity(
        self, kind: str, fields: dict[str, Any], *, actor_id: uuid.UUID | None = None
    ) -> Base:
        spec = get_kind(kind)
        candidate = parse_create(spec, fields)
        refs = validator_svc.references(spec, candidate)
        claims_default = spec.name == "pipeline" and candidate.get("is_default")

        async def plan(db: AsyncSession) -> set[LockKey]:
            keys = {entity_key(k, i) for k, i in refs.values()}
            keys |= {
                unique_key(spec.name, f, candidate[f]) for f in spec.unique if candidate.get(f)
            }
            if claims_default:
                keys.add(DEFAULT_PIPELINE_KEY)
                keys |= {entity_key("pipeline", p.id) for p in await validator_svc.current_defaults(db)}
            return keys

        async def apply(db: AsyncSession) -> Base:
            values = dict(candidate)
            await validator_svc.validate_create(db, spec.name, values)
            obj = await store.create(db, spec.name, {"id": uuid.uuid4(), **values})
            if claims_default:
                await self._displace_defaults(db, obj.id, actor_id)
            await validator_svc.verify_live(db, refs)
            await audit_svc.record(
                db,
                entity_kind=spec.name,
                entity_id=obj.id,
                action=audit_svc.CREATED,
                field_changes=audit_svc.snapshot(values),
                actor_id=actor_id,
            )
            return await self._finish(db, obj)

        obj = await self._mutate(f"create {spec.name}", plan, apply)
        log.info("Created %s %s", spec.name, obj.id)
        return obj

    async def update_entity(
        self,
        kind: str,
        entity_id: uuid.UUID,
        patch: dict[str, Any],
        *,
        actor_id: uuid.UUID | None = None,
    ) -> Base:
        spec = get_kind(kind)
        changes = parse_patch(spec, patch)
        claims_default = spec.name == "pipeline" and changes.get("is_default") is True

        async def plan(db: AsyncSession) -> set[LockKey]:
            keys = {entity_key(spec.name, entity_id)}
            current = await store.fetch(db, spec, entity_id)
            if current is not None:
                refs = validator_svc.references(spec, validator_svc.merged(spec, current, changes))
                keys |= {entity_key(k, i) for k, i in refs.values()}
            keys |= {unique_key(spec.name, f, changes[f]) for f in spec.unique if changes.get(f)}
            if claims_default:
                keys.add(DEFAULT_PIPELINE_KEY)
                keys |= {entity_key("pipeline", p.id) for p in await validator_svc.current_defaults(db)}
            return keys

        async def apply(db: AsyncSession) -> Base:
            current = await store.get(db, spec.name, entity_id)
            await validator_svc.validate_update(db, spec.name, current, changes)
            field_changes = audit_svc.diff(current, changes)
            refs = validator_svc.references(spec, validator_svc.merged(spec, current, changes))
            obj = await store.update(db, spec.name, entity_id, changes)
            if claims_default:
                await self._displace_defaults(db, obj.id, actor_id)
            await validator_svc.verify_live(db, refs)
            if field_changes:
                await audit_svc.record(
                    db,
                    entity_kind=spec.name,
                    entity_id=obj.id,
                    action=audit_svc.UPDATED,
                    field_changes=field_changes,
                    actor_id=actor_id,
                )
            return await self._finish(db, obj)

        obj = await self._mutate(f"update {spec.name} {entity_id}", plan, apply)
        log.info("Updated %s %s", spec.name, entity_id)
        return obj

    async def soft_delete_entity(
        self, kind: str, entity_id: uuid.UUID, *, actor_id: uuid.UUID | None = None
    ) -> None:
        spec = get_kind(kind)

        async def plan(db: AsyncSession) -> set[LockKey]:
            return {entity_key(spec.name, entity_id)}

        async def apply(db: AsyncSession) -> None:
            obj = await store.soft_delete(db, spec.name, entity_id)
            await audit_svc.record(
                db,
                entity_kind=spec.name,
                entity_id=obj.id,
                action=audit_svc.DELETED,
                field_changes={"deleted_at": [None, audit_svc.jsonable(obj.deleted_at)]},
                actor_id=actor_id,
            )

        await self._mutate(f"delete {spec.name} {entity_id}", plan, apply)
        log.info("Soft-deleted %s %s", spec.name, entity_id)

    async def _displace_defaults(
        self, db: AsyncSession, pipeline_id: uuid.UUID, actor_id: uuid.UUID | None
    ) -> None:
        for previous in await validator_svc.claim_default(db, pipeline_id):
            log.info("Pipeline %s replaces %s as default", pipeline_id, previous.id)
            await audit_svc.record(
                db,
                entity_kind="pipeline",
                entity_id=previous.id,
                action=audit_svc.UPDATED,
                field_changes={"is_default": [True, False]},
                actor_id=actor_id,
                description=f"default replaced by pipeline {pipeline_id}",
            )

    # ── Deal lifecycle ─────────────────────────────────────────────────────

    async def _transition(
        self,
        label: str,
        deal_id: uuid.UUID,
        extra_keys: set[LockKey],
        move: Callable[[AsyncSession], Awaitable[deal_svc.Transition]],
        actor_id: uuid.UUID | None,
    ) -> Deal:
        async def plan(db: AsyncSession) -> set[LockKey]:
            return {entity_key("deal", deal_id)} | extra_keys

        async def apply(db: AsyncSession) -> Deal:
            transition = await move(db)
            if transition.field_changes:
                await audit_svc.record(
                    db,
                    entity_kind="deal",
                    entity_id=transition.deal.id,
                    action=transition.action,
                    field_changes=transition.field_changes,
                    actor_id=actor_id,
                    description=transition.description,
                )
            return await self._finish(db, transition.deal)

        deal = await self._mutate(label, plan, apply)
        log.info("Deal %s: %s", deal_id, label)
        return deal

    async def advance_deal_stage(
        self, deal_id: uuid.UUID, stage_id: uuid.UUID, *, actor_id: uuid.UUID | None = None
    ) -> Deal:
        async def move(db: AsyncSession) -> deal_svc.Transition:
            return await deal_svc.advance_stage(db, deal_id, stage_id)

        return await self._transition(
            f"advance to stage {stage_id}", deal_id, {entity_key("stage", stage_id)}, move, actor_id
        )

    async def close_deal(
        self, deal_id: uuid.UUID, outcome: str, *, actor_id: uuid.UUID | None = None
    ) -> Deal:
        async def move(db: AsyncSession) -> deal_svc.Transition:
            return await deal_svc.close(db, deal_id, outcome)

        return await self._transition(f"close as {outcome}", deal_id, set(), move, actor_id)

    # ── Reads ──────────────────────────────────────────────────────────────

    async def get_entity(
        self, kind: str, entity_id: uuid.UUID, *, include_deleted: bool = False
    ) -> Base:
        async with self.session_factory() as db:
            return await store.get(db, kind, entity_id, include_deleted=include_deleted)

    async def list_entities(
        self, kind: str, *, include_deleted: bool = False, **filters: Any
    ) -> list[Base]:
        async with self.session_factory() as db:
            return await store.list_records(db, kind, include_deleted=include_deleted, **filters)

    async def pipeline_stats(self, pipeline_id: uuid.UUID) -> list[deal_svc.StageCount]:
        async with self.session_factory() as db:
            await store.get(db, "pipeline", pipeline_id, include_deleted=True)
            return await deal_svc.pipeline_stats(db, pipeline_id)

    async def weighted_value(self, pipeline_id: uuid.UUID) -> float:
        async with self.session_factory() as db:
            await store.get(db, "pipeline", pipeline_id, include_deleted=True)
            return await deal_svc.weighted_value(db, pipeline_id)

    def audit_trail(self, kind: str, entity_id: uuid.UUID) -> AuditTrail:
        spec = get_kind(kind)
        return audit_svc.records_for(
            self.session_factory, spec.name, entity_id, self.audit_page_size
        )
