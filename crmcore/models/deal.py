"""Deal model - an opportunity moving through a pipeline's stages."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Float, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin, SoftDeleteMixin

OPEN = "open"
WON = "won"
LOST = "lost"
CLOSED_STATUSES = frozenset({WON, LOST})


class Deal(UUIDMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "deal"

    title: Mapped[str | None] = mapped_column(String(300), default=None)
    contact_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("contact.id"), index=True
    )
    value: Mapped[float] = mapped_column(Float, default=0.0)
    status: Mapped[str] = mapped_column(String(20), default=OPEN)  # open, won, lost
    expected_close_date: Mapped[date | None] = mapped_column(Date, default=None)
    pipeline_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("pipeline.id"), index=True
    )
    stage_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("stage.id"), index=True
    )
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("crm_user.id"), default=None, index=True
    )
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)

    # Relationships
    contact: Mapped["Contact"] = relationship(back_populates="deals")  # noqa: F821
    pipeline: Mapped["Pipeline"] = relationship(back_populates="deals")  # noqa: F821
    stage: Mapped["Stage"] = relationship(back_populates="deals")  # noqa: F821

    @property
    def is_closed(self) -> bool:
        return self.status in CLOSED_STATUSES

    def __repr__(self) -> str:
        return f"<Deal {self.title!r} {self.status}>"
