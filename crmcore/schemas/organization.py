"""Organization schemas."""

from __future__ import annotations

from .base import CreateModel, PatchModel


class OrganizationCreate(CreateModel):
    name: str
    industry: str | None = None
    website: str | None = None
    address: str | None = None


class OrganizationUpdate(PatchModel):
    name: str | None = None
    industry: str | None = None
    website: str | None = None
    address: str | None = None
