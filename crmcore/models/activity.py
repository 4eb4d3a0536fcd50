"""Activity model - calls, emails, tasks and meetings logged against a deal."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin, SoftDeleteMixin


class Activity(UUIDMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "activity"

    deal_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("deal.id"), index=True)
    type: Mapped[str] = mapped_column(String(20))  # call, email, task, meeting
    subject: Mapped[str] = mapped_column(String(300))
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    notes: Mapped[str | None] = mapped_column(Text, default=None)
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("crm_user.id"))

    def __repr__(self) -> str:
        return f"<Activity {self.type} {self.subject!r}>"
