"""CRM core models - re-exports all models and Base.metadata."""

from .base import Base, UUIDMixin, TimestampMixin, SoftDeleteMixin
from .user import User
from .organization import Organization
from .contact import Contact
from .pipeline import Pipeline, Stage
from .deal import Deal
from .activity import Activity
from .note import Note
from .audit import AuditRecord

__all__ = [
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    "SoftDeleteMixin",
    "User",
    "Organization",
    "Contact",
    "Pipeline",
    "Stage",
    "Deal",
    "Activity",
    "Note",
    "AuditRecord",
]
