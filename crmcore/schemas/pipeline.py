"""Pipeline and stage schemas."""

from __future__ import annotations

import uuid

from pydantic import Field

from .base import CreateModel, PatchModel


class PipelineCreate(CreateModel):
    name: str
    created_by: uuid.UUID | None = None
    is_default: bool = False


class PipelineUpdate(PatchModel):
    name: str | None = None
    is_default: bool | None = None


class StageCreate(CreateModel):
    pipeline_id: uuid.UUID
    name: str
    # None appends after the pipeline's last live stage
    order: int | None = Field(default=None, ge=0)
    win_probability: float = Field(default=0.0, ge=0.0, le=1.0)


class StageUpdate(PatchModel):
    pipeline_id: uuid.UUID | None = None
    name: str | None = None
    order: int | None = Field(default=None, ge=0)
    win_probability: float | None = Field(default=None, ge=0.0, le=1.0)
