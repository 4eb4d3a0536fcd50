"""Test the single-default-pipeline invariant (atomic replacement)."""

from __future__ import annotations

import asyncio

import pytest

from crmcore.core import CRMCore


async def _defaults(core: CRMCore) -> list:
    return await core.list_entities("pipeline", is_default=True)


@pytest.mark.asyncio
async def test_new_default_replaces_previous(core: CRMCore):
    first = await core.create_entity("pipeline", {"name": "Enterprise", "is_default": True})
    second = await core.create_entity("pipeline", {"name": "SMB", "is_default": True})

    defaults = await _defaults(core)
    assert [p.id for p in defaults] == [second.id]

    previous = await core.get_entity("pipeline", first.id)
    assert previous.is_default is False

    trail = await core.audit_trail("pipeline", first.id).all()
    assert [r.action for r in trail] == ["created", "updated"]
    assert trail[1].field_changes == {"is_default": [True, False]}
    assert str(second.id) in trail[1].description


@pytest.mark.asyncio
async def test_update_to_default_replaces_previous(core: CRMCore):
    first = await core.create_entity("pipeline", {"name": "Enterprise", "is_default": True})
    second = await core.create_entity("pipeline", {"name": "SMB"})

    promoted = await core.update_entity("pipeline", second.id, {"is_default": True})
    assert promoted.is_default is True
    assert [p.id for p in await _defaults(core)] == [second.id]
    assert (await core.get_entity("pipeline", first.id)).is_default is False


@pytest.mark.asyncio
async def test_reclaiming_default_is_a_no_op(core: CRMCore):
    only = await core.create_entity("pipeline", {"name": "Main", "is_default": True})
    await core.update_entity("pipeline", only.id, {"is_default": True})
    assert [p.id for p in await _defaults(core)] == [only.id]
    assert len(await core.audit_trail("pipeline", only.id).all()) == 1


@pytest.mark.asyncio
async def test_no_default_is_allowed(core: CRMCore):
    only = await core.create_entity("pipeline", {"name": "Main", "is_default": True})
    await core.update_entity("pipeline", only.id, {"is_default": False})
    assert await _defaults(core) == []


@pytest.mark.asyncio
async def test_deleted_default_does_not_count(core: CRMCore):
    old = await core.create_entity("pipeline", {"name": "Old", "is_default": True})
    await core.soft_delete_entity("pipeline", old.id)
    new = await core.create_entity("pipeline", {"name": "New", "is_default": True})

    assert [p.id for p in await _defaults(core)] == [new.id]
    assert len(await core.audit_trail("pipeline", old.id).all()) == 2


@pytest.mark.asyncio
async def test_concurrent_defaults_leave_exactly_one(core: CRMCore):
    created = await asyncio.gather(
        *(core.create_entity("pipeline", {"name": f"P{i}", "is_default": True}) for i in range(5))
    )
    defaults = await _defaults(core)
    assert len(defaults) == 1
    assert defaults[0].id in {p.id for p in created}
