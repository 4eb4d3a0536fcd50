"""Shared schema helpers."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC so stored and supplied values compare."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class CreateModel(BaseModel):
    model_config = {"extra": "forbid"}


class PatchModel(BaseModel):
    """Partial update. Only fields the caller set are applied."""

    model_config = {"extra": "forbid"}

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)
