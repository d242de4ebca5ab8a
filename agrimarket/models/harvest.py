"""Harvest listing ORM model: produce offered for sale on the marketplace."""

from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, Float, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from agrimarket.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Harvest(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A produce listing.

    ``quantity`` is the amount still available; purchases decrement it with a
    single conditional UPDATE and it can never go negative.
    """

    __tablename__ = "harvests"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="quantity_non_negative"),
    )

    farmer_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("farmers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    field_name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[str] = mapped_column(
        Text, nullable=False, default="", server_default=""
    )
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    farmer_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="Anonymous Farmer",
        server_default="Anonymous Farmer",
    )

    def __repr__(self) -> str:
        return (
            f"<Harvest id={self.id} field={self.field_name!r} "
            f"quantity={self.quantity}>"
        )
