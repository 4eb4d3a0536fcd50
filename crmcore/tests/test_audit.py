"""Test the audit recorder and trail replay."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from crmcore.core import CRMCore
from crmcore.errors import IntegrityViolation
from crmcore.models import AuditRecord, Deal
from crmcore.services.audit_svc import AuditTrail


@pytest.mark.asyncio
async def test_acme_scenario(core: CRMCore):
    acme = await core.create_entity("organization", {"name": "Acme"})
    sarah = await core.create_entity("contact", {"name": "Sarah", "organization_id": acme.id})
    enterprise = await core.create_entity("pipeline", {"name": "Enterprise", "is_default": True})
    lead = await core.create_entity(
        "stage", {"pipeline_id": enterprise.id, "order": 0, "name": "Lead"}
    )
    deal = await core.create_entity(
        "deal",
        {
            "contact_id": sarah.id,
            "pipeline_id": enterprise.id,
            "stage_id": lead.id,
            "status": "open",
        },
    )

    closed = await core.close_deal(deal.id, "won")
    assert closed.status == "won"
    assert closed.stage_id == lead.id

    trail = await core.audit_trail("deal", deal.id).all()
    assert len(trail) == 2
    assert [r.action for r in trail] == ["created", "closed"]
    assert trail[0].seq < trail[1].seq
    assert trail[1].field_changes["status"] == ["open", "won"]


@pytest.mark.asyncio
async def test_trail_is_replayable(core: CRMCore, deal, stages):
    await core.advance_deal_stage(deal.id, stages[1].id)
    trail = core.audit_trail("deal", deal.id)

    first = [(r.seq, r.action) async for r in trail]
    second = [(r.seq, r.action) async for r in trail]
    assert first == second
    assert [a for _, a in first] == ["created", "stage_changed"]

    again = await core.audit_trail("deal", deal.id).all()
    assert [(r.seq, r.action) for r in again] == first


@pytest.mark.asyncio
async def test_trail_pages_in_order(session_factory, core: CRMCore, deal, stages):
    for stage in [stages[1], stages[2], stages[0], stages[2], stages[1]]:
        await core.advance_deal_stage(deal.id, stage.id)

    trail = AuditTrail(session_factory, "deal", deal.id, page_size=2)
    entries = await trail.all()
    assert len(entries) == 6
    assert [e.seq for e in entries] == sorted(e.seq for e in entries)
    assert entries[0].action == "created"


@pytest.mark.asyncio
async def test_create_record_snapshots_fields(core: CRMCore, user):
    trail = await core.audit_trail("user", user.id).all()
    assert len(trail) == 1
    changes = trail[0].field_changes
    assert changes["email"] == [None, "dana@example.com"]
    assert changes["role"] == [None, "admin"]
    assert trail[0].entity_kind == "user"
    assert trail[0].recorded_at is not None


@pytest.mark.asyncio
async def test_soft_delete_is_audited(core: CRMCore, contact, user):
    await core.soft_delete_entity("contact", contact.id, actor_id=user.id)
    trail = await core.audit_trail("contact", contact.id).all()
    assert [r.action for r in trail] == ["created", "deleted"]
    assert trail[1].actor_id == user.id
    assert trail[1].field_changes["deleted_at"][0] is None


@pytest.mark.asyncio
async def test_noop_update_not_audited(core: CRMCore, user):
    await core.update_entity("user", user.id, {"name": "Dana Admin"})
    assert len(await core.audit_trail("user", user.id).all()) == 1


@pytest.mark.asyncio
async def test_rejected_mutation_not_audited(core: CRMCore, contact, stages):
    with pytest.raises(IntegrityViolation):
        await core.create_entity(
            "deal",
            {"contact_id": contact.id, "pipeline_id": stages[0].id, "stage_id": stages[0].id},
        )
    async with core.session_factory() as db:
        assert (await db.execute(select(func.count(Deal.id)))).scalar() == 0
        deal_records = await db.execute(
            select(func.count(AuditRecord.seq)).where(AuditRecord.entity_kind == "deal")
        )
        assert deal_records.scalar() == 0


@pytest.mark.asyncio
async def test_trail_for_unknown_entity_is_empty(core: CRMCore, pipeline):
    assert await core.audit_trail("deal", pipeline.id).all() == []
