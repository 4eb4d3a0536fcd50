"""Note model - attached to deals."""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin, SoftDeleteMixin


class Note(UUIDMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "note"

    deal_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("deal.id"), index=True)
    content: Mapped[str] = mapped_column(Text)
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("crm_user.id"))

    def __repr__(self) -> str:
        return f"<Note deal={self.deal_id}>"
