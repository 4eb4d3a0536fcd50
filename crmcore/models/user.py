"""User model - CRM staff who own contacts and deals."""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin, SoftDeleteMixin


class User(UUIDMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "crm_user"

    name: Mapped[str] = mapped_column(String(200))
    # Unique among live users; enforced by the entity store, not the schema,
    # so a tombstoned user does not block reuse of the address.
    email: Mapped[str] = mapped_column(String(255), index=True)
    role: Mapped[str] = mapped_column(String(20), default="agent")  # admin, agent, manager

    def __repr__(self) -> str:
        return f"<User {self.email!r}>"
