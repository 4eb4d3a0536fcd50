"""Contact schemas."""

from __future__ import annotations

import uuid

from .base import CreateModel, PatchModel


class ContactCreate(CreateModel):
    name: str
    email: str | None = None
    phone: str | None = None
    organization_id: uuid.UUID | None = None
    created_by: uuid.UUID | None = None


class ContactUpdate(PatchModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    organization_id: uuid.UUID | None = None
