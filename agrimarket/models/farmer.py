"""Farmer account ORM model.

Farmers authenticate with email/password; the bcrypt hash lives in
``hashed_password`` and is never serialized back to clients.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agrimarket.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from agrimarket.models.field import FarmField


class Farmer(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Registered farmer: owner of fields and harvest listings."""

    __tablename__ = "farmers"

    email: Mapped[str] = mapped_column(
        String(320), unique=True, nullable=False, index=True
    )
    hashed_password: Mapped[str] = mapped_column(
        String(128), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(64), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    insurance_preference: Mapped[str] = mapped_column(
        String(100), nullable=False
    )
    experience_level: Mapped[str] = mapped_column(String(100), nullable=False)

    # ── Relationships ────────────────────────────────────────────────────
    fields: Mapped[list[FarmField]] = relationship(
        back_populates="owner",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Farmer id={self.id} email={self.email!r}>"
