"""Contact model."""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UUIDMixin, TimestampMixin, SoftDeleteMixin


class Contact(UUIDMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "contact"

    name: Mapped[str] = mapped_column(String(200))
    email: Mapped[str | None] = mapped_column(String(255), default=None, index=True)
    phone: Mapped[str | None] = mapped_column(String(50), default=None)
    organization_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("organization.id"), default=None, index=True
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("crm_user.id"), default=None
    )

    # Relationships
    organization: Mapped["Organization | None"] = relationship(  # noqa: F821
        back_populates="contacts"
    )
    deals: Mapped[list["Deal"]] = relationship(back_populates="contact")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Contact {self.name!r}>"
