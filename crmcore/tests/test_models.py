"""Test model creation and column defaults."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crmcore.models import AuditRecord, Contact, Deal, Organization, Pipeline, Stage, User


@pytest.mark.asyncio
async def test_create_user_defaults(db: AsyncSession):
    user = User(name="Ann", email="ann@example.com")
    db.add(user)
    await db.commit()
    await db.refresh(user)
    assert user.role == "agent"
    assert user.deleted_at is None
    assert user.is_deleted is False
    assert user.created_at is not None


@pytest.mark.asyncio
async def test_contact_belongs_to_organization(db: AsyncSession):
    org = Organization(name="Acme")
    db.add(org)
    await db.flush()

    contact = Contact(name="Sarah", organization_id=org.id)
    db.add(contact)
    await db.commit()

    result = await db.execute(select(Contact).where(Contact.organization_id == org.id))
    assert result.scalar_one().name == "Sarah"


@pytest.mark.asyncio
async def test_deal_defaults_open(db: AsyncSession):
    pipeline = Pipeline(name="Deals")
    contact = Contact(name="Bob")
    db.add_all([pipeline, contact])
    await db.flush()

    stage = Stage(pipeline_id=pipeline.id, name="New", order=0)
    db.add(stage)
    await db.flush()

    deal = Deal(contact_id=contact.id, pipeline_id=pipeline.id, stage_id=stage.id)
    db.add(deal)
    await db.commit()
    assert deal.status == "open"
    assert deal.value == 0.0
    assert deal.is_closed is False
    assert stage.win_probability == 0.0
    assert pipeline.is_default is False


@pytest.mark.asyncio
async def test_audit_record_stores_json_changes(db: AsyncSession):
    entity_id = uuid.uuid4()
    db.add(
        AuditRecord(
            recorded_at=datetime.now(timezone.utc),
            entity_kind="deal",
            entity_id=entity_id,
            action="updated",
            field_changes={"value": [10.0, 20.0]},
        )
    )
    await db.commit()

    result = await db.execute(select(AuditRecord).where(AuditRecord.entity_id == entity_id))
    entry = result.scalar_one()
    assert entry.seq >= 1
    assert entry.field_changes == {"value": [10.0, 20.0]}
