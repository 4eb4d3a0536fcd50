"""Deal schemas."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Literal

from pydantic import Field

from .base import CreateModel, PatchModel

Status = Literal["open", "won", "lost"]


class DealCreate(CreateModel):
    contact_id: uuid.UUID
    pipeline_id: uuid.UUID
    stage_id: uuid.UUID
    title: str | None = None
    value: float = Field(default=0.0, ge=0)
    status: Status = "open"
    expected_close_date: date | None = None
    assigned_to: uuid.UUID | None = None


class DealUpdate(PatchModel):
    contact_id: uuid.UUID | None = None
    pipeline_id: uuid.UUID | None = None
    stage_id: uuid.UUID | None = None
    title: str | None = None
    value: float | None = Field(default=None, ge=0)
    status: Status | None = None
    expected_close_date: date | None = None
    assigned_to: uuid.UUID | None = None
