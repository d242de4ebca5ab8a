"""FarmField and SuggestionBatch ORM models.

A ``SuggestionBatch`` stores one parsed AI answer for a field as an ordered
JSONB list of crop suggestions::

    [
        {
            "cropName": "Rice",
            "reason": "...",
            "bestPlantingMonth": "May",
            "estimatedYield": "4 t/ha",
            "careInstructions": "..."
        },
        ...
    ]

Batches are append-only; the newest ``generated_at`` supersedes older ones.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import DateTime, ForeignKey, Index, String, func, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agrimarket.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from agrimarket.models.farmer import Farmer


class FarmField(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A cultivated plot registered by a farmer."""

    __tablename__ = "fields"

    # NULL for fields registered without a signed-in farmer.
    owner_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("farmers.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    fieldname: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False
    )
    fieldlocation: Mapped[str] = mapped_column(String(255), nullable=False)
    fieldsize: Mapped[str] = mapped_column(String(100), nullable=False)
    fieldtype: Mapped[str] = mapped_column(String(100), nullable=False)
    crops: Mapped[list[str]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default=text("'[]'::jsonb"),
    )

    # ── Relationships ────────────────────────────────────────────────────
    owner: Mapped[Farmer | None] = relationship(back_populates="fields")
    suggestion_batches: Mapped[list[SuggestionBatch]] = relationship(
        back_populates="field",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<FarmField id={self.id} name={self.fieldname!r}>"


class SuggestionBatch(Base, UUIDPrimaryKeyMixin):
    """Immutable snapshot of crop suggestions generated for one field."""

    __tablename__ = "suggestion_batches"
    __table_args__ = (
        Index("ix_suggestion_batches_field_generated", "field_id", "generated_at"),
    )

    field_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("fields.id", ondelete="CASCADE"),
        nullable=False,
    )
    suggestions: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB, nullable=False
    )
    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    field: Mapped[FarmField] = relationship(back_populates="suggestion_batches")

    def __repr__(self) -> str:
        return (
            f"<SuggestionBatch id={self.id} field={self.field_id} "
            f"count={len(self.suggestions)}>"
        )
