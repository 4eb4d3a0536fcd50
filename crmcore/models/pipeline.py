"""Pipeline and Stage models."""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Float, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin, SoftDeleteMixin


class Pipeline(UUIDMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "pipeline"

    name: Mapped[str] = mapped_column(String(200))
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("crm_user.id"), default=None
    )
    # At most one live pipeline is default; see validator_svc.
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    # Relationships
    stages: Mapped[list["Stage"]] = relationship(
        back_populates="pipeline", order_by="Stage.order"
    )
    deals: Mapped[list["Deal"]] = relationship(back_populates="pipeline")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Pipeline {self.name!r}>"


class Stage(UUIDMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "stage"

    pipeline_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("pipeline.id"), index=True
    )
    name: Mapped[str] = mapped_column(String(200))
    # Unique among live stages of a pipeline; tombstoned stages free their slot.
    order: Mapped[int] = mapped_column(Integer, default=0)
    win_probability: Mapped[float] = mapped_column(Float, default=0.0)

    # Relationships
    pipeline: Mapped["Pipeline"] = relationship(back_populates="stages")
    deals: Mapped[list["Deal"]] = relationship(back_populates="stage")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Stage {self.name!r} #{self.order}>"
