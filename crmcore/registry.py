"""Entity kinds known to the core and their declared constraints."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ValidationError

from .errors import IntegrityViolation
from .models import Activity, Base, Contact, Deal, Note, Organization, Pipeline, Stage, User
from .schemas.activity import ActivityCreate, ActivityUpdate
from .schemas.contact import ContactCreate, ContactUpdate
from .schemas.deal import DealCreate, DealUpdate
from .schemas.note import NoteCreate, NoteUpdate
from .schemas.organization import OrganizationCreate, OrganizationUpdate
from .schemas.pipeline import PipelineCreate, PipelineUpdate, StageCreate, StageUpdate
from .schemas.user import UserCreate, UserUpdate


@dataclass(frozen=True)
class EntityKind:
    name: str
    model: type[Base]
    create_schema: type[BaseModel]
    update_schema: type[BaseModel]
    # foreign key field -> referenced kind
    references: dict[str, str] = field(default_factory=dict)
    unique: tuple[str, ...] = ()
    immutable: tuple[str, ...] = ()
    not_null: tuple[str, ...] = ()


KINDS: dict[str, EntityKind] = {
    k.name: k
    for k in (
        EntityKind(
            "user", User, UserCreate, UserUpdate,
            unique=("email",),
            not_null=("name", "email", "role"),
        ),
        EntityKind(
            "organization", Organization, OrganizationCreate, OrganizationUpdate,
            not_null=("name",),
        ),
        EntityKind(
            "contact", Contact, ContactCreate, ContactUpdate,
            references={"organization_id": "organization", "created_by": "user"},
            not_null=("name",),
        ),
        EntityKind(
            "pipeline", Pipeline, PipelineCreate, PipelineUpdate,
            references={"created_by": "user"},
            not_null=("name", "is_default"),
        ),
        EntityKind(
            "stage", Stage, StageCreate, StageUpdate,
            references={"pipeline_id": "pipeline"},
            immutable=("pipeline_id",),
            not_null=("pipeline_id", "name", "order", "win_probability"),
        ),
        EntityKind(
            "deal", Deal, DealCreate, DealUpdate,
            references={
                "contact_id": "contact",
                "pipeline_id": "pipeline",
                "stage_id": "stage",
                "assigned_to": "user",
            },
            not_null=("contact_id", "pipeline_id", "stage_id", "value", "status"),
        ),
        EntityKind(
            "activity", Activity, ActivityCreate, ActivityUpdate,
            references={"deal_id": "deal", "created_by": "user"},
            not_null=("type", "subject", "scheduled_at"),
        ),
        EntityKind(
            "note", Note, NoteCreate, NoteUpdate,
            references={"deal_id": "deal", "created_by": "user"},
            not_null=("content",),
        ),
    )
}


def get_kind(name: str) -> EntityKind:
    try:
        return KINDS[name]
    except KeyError:
        raise IntegrityViolation("kind", f"unknown entity kind {name!r}") from None


def _violation(exc: ValidationError) -> IntegrityViolation:
    first = exc.errors()[0]
    loc = ".".join(str(part) for part in first["loc"]) or "__root__"
    return IntegrityViolation(loc, first["msg"])


def parse_create(kind: EntityKind, fields: dict[str, Any]) -> dict[str, Any]:
    """Validate a candidate record. Returns the normalised field values."""
    try:
        return kind.create_schema.model_validate(fields).model_dump()
    except ValidationError as exc:
        raise _violation(exc) from exc


def parse_patch(kind: EntityKind, patch: dict[str, Any]) -> dict[str, Any]:
    """Validate a partial update. Returns only the fields the caller set."""
    try:
        changes = kind.update_schema.model_validate(patch).changes()
    except ValidationError as exc:
        raise _violation(exc) from exc
    for name, value in changes.items():
        if value is None and name in kind.not_null:
            raise IntegrityViolation(name, "may not be null")
    return changes
