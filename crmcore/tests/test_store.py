"""Test the entity store."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crmcore.core import CRMCore
from crmcore.errors import DuplicateKey, IntegrityViolation, NotFound
from crmcore.services import store


@pytest.mark.asyncio
async def test_create_and_get(db: AsyncSession):
    org = await store.create(db, "organization", {"name": "Acme", "industry": "Tools"})
    await db.commit()
    assert isinstance(org.id, uuid.UUID)

    fetched = await store.get(db, "organization", org.id)
    assert fetched.industry == "Tools"


@pytest.mark.asyncio
async def test_get_missing_raises(db: AsyncSession):
    with pytest.raises(NotFound) as exc:
        await store.get(db, "contact", uuid.uuid4())
    assert exc.value.kind == "contact"


@pytest.mark.asyncio
async def test_duplicate_email(db: AsyncSession):
    await store.create(db, "user", {"name": "A", "email": "a@example.com", "role": "agent"})
    with pytest.raises(DuplicateKey) as exc:
        await store.create(db, "user", {"name": "B", "email": "a@example.com", "role": "agent"})
    assert exc.value.field == "email"


@pytest.mark.asyncio
async def test_update_checks_unique_excluding_self(db: AsyncSession):
    a = await store.create(db, "user", {"name": "A", "email": "a@example.com", "role": "agent"})
    b = await store.create(db, "user", {"name": "B", "email": "b@example.com", "role": "agent"})

    same = await store.update(db, "user", a.id, {"email": "a@example.com", "name": "Ann"})
    assert same.name == "Ann"

    with pytest.raises(DuplicateKey):
        await store.update(db, "user", b.id, {"email": "a@example.com"})


@pytest.mark.asyncio
async def test_soft_delete_hides_record(db: AsyncSession):
    org = await store.create(db, "organization", {"name": "Gone"})
    await store.soft_delete(db, "organization", org.id)

    with pytest.raises(NotFound):
        await store.get(db, "organization", org.id)
    kept = await store.get(db, "organization", org.id, include_deleted=True)
    assert kept.deleted_at is not None

    with pytest.raises(NotFound):
        await store.soft_delete(db, "organization", org.id)
    with pytest.raises(NotFound):
        await store.update(db, "organization", org.id, {"name": "Back"})


@pytest.mark.asyncio
async def test_deleted_user_frees_email(db: AsyncSession):
    old = await store.create(db, "user", {"name": "Old", "email": "x@example.com", "role": "agent"})
    await store.soft_delete(db, "user", old.id)
    new = await store.create(db, "user", {"name": "New", "email": "x@example.com", "role": "agent"})
    assert new.id != old.id


@pytest.mark.asyncio
async def test_list_records_filters_live(db: AsyncSession):
    a = await store.create(db, "organization", {"name": "A", "industry": "Retail"})
    await store.create(db, "organization", {"name": "B", "industry": "Retail"})
    await store.create(db, "organization", {"name": "C", "industry": "Energy"})
    await store.soft_delete(db, "organization", a.id)

    retail = await store.list_records(db, "organization", industry="Retail")
    assert [o.name for o in retail] == ["B"]

    everything = await store.list_records(db, "organization", include_deleted=True, industry="Retail")
    assert {o.name for o in everything} == {"A", "B"}


@pytest.mark.asyncio
async def test_list_records_unknown_field(db: AsyncSession):
    with pytest.raises(IntegrityViolation) as exc:
        await store.list_records(db, "organization", colour="red")
    assert exc.value.field == "colour"


@pytest.mark.asyncio
async def test_unknown_kind(db: AsyncSession):
    with pytest.raises(IntegrityViolation) as exc:
        await store.get(db, "invoice", uuid.uuid4())
    assert exc.value.field == "kind"


@pytest.mark.asyncio
async def test_core_rejects_expiring_session_factory(engine):
    with pytest.raises(ValueError, match="expire_on_commit"):
        CRMCore(async_sessionmaker(engine, class_=AsyncSession))


@pytest.mark.asyncio
async def test_records_stay_loaded_after_commit(core: CRMCore):
    org = await core.create_entity("organization", {"name": "Acme"})
    assert org.name == "Acme"
    assert org.created_at is not None
