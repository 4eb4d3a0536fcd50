"""Activity schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import ValidationInfo, field_validator

from .base import CreateModel, PatchModel, as_utc

ActivityType = Literal["call", "email", "task", "meeting"]


class ActivityCreate(CreateModel):
    deal_id: uuid.UUID
    type: ActivityType
    subject: str
    scheduled_at: datetime
    completed_at: datetime | None = None
    notes: str | None = None
    created_by: uuid.UUID

    @field_validator("scheduled_at")
    @classmethod
    def _scheduled_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @field_validator("completed_at")
    @classmethod
    def _completed_after_scheduled(
        cls, value: datetime | None, info: ValidationInfo
    ) -> datetime | None:
        value = as_utc(value)
        scheduled = info.data.get("scheduled_at")
        if value is not None and scheduled is not None and value < scheduled:
            raise ValueError("completed_at must not precede scheduled_at")
        return value


class ActivityUpdate(PatchModel):
    type: ActivityType | None = None
    subject: str | None = None
    scheduled_at: datetime | None = None
    completed_at: datetime | None = None
    notes: str | None = None

    # Ordering against the stored values is checked by the validator.
    @field_validator("scheduled_at", "completed_at")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)
