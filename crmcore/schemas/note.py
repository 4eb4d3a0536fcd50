"""Note schemas."""

from __future__ import annotations

import uuid

from .base import CreateModel, PatchModel


class NoteCreate(CreateModel):
    deal_id: uuid.UUID
    content: str
    created_by: uuid.UUID


class NoteUpdate(PatchModel):
    content: str | None = None
