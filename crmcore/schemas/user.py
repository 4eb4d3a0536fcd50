"""User schemas."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import AfterValidator

from .base import CreateModel, PatchModel

Role = Literal["admin", "agent", "manager"]


def _normalize_email(value: str) -> str:
    value = value.strip().lower()
    if "@" not in value:
        raise ValueError("not an email address")
    return value


Email = Annotated[str, AfterValidator(_normalize_email)]


class UserCreate(CreateModel):
    name: str
    email: Email
    role: Role = "agent"


class UserUpdate(PatchModel):
    name: str | None = None
    email: Email | None = None
    role: Role | None = None
