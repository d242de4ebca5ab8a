"""initial_schema

Revision ID: 3f1c9a27d5e0
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the farmers, fields, suggestion_batches and harvests tables.
Requires the uuid-ossp extension for server-side UUID defaults.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3f1c9a27d5e0"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("uuid_generate_v4()"),
        nullable=False,
    )


def _timestamp_columns() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # farmers
    op.create_table(
        "farmers",
        _id_column(),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("hashed_password", sa.String(128), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(64), nullable=False),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("insurance_preference", sa.String(100), nullable=False),
        sa.Column("experience_level", sa.String(100), nullable=False),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id", name="pk_farmers"),
        sa.UniqueConstraint("email", name="uq_farmers_email"),
    )
    op.create_index("ix_farmers_email", "farmers", ["email"])

    # fields
    op.create_table(
        "fields",
        _id_column(),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("fieldname", sa.String(255), nullable=False),
        sa.Column("fieldlocation", sa.String(255), nullable=False),
        sa.Column("fieldsize", sa.String(100), nullable=False),
        sa.Column("fieldtype", sa.String(100), nullable=False),
        sa.Column(
            "crops",
            postgresql.JSONB(),
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
        ),
        *_timestamp_columns(),
        sa.ForeignKeyConstraint(
            ["owner_id"], ["farmers.id"], name="fk_fields_owner_id_farmers", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_fields"),
        sa.UniqueConstraint("fieldname", name="uq_fields_fieldname"),
    )
    op.create_index("ix_fields_owner_id", "fields", ["owner_id"])

    # suggestion_batches
    op.create_table(
        "suggestion_batches",
        _id_column(),
        sa.Column("field_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("suggestions", postgresql.JSONB(), nullable=False),
        sa.Column(
            "generated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["field_id"], ["fields.id"], name="fk_suggestion_batches_field_id_fields", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_suggestion_batches"),
    )
    op.create_index(
        "ix_suggestion_batches_field_generated",
        "suggestion_batches",
        ["field_id", "generated_at"],
    )

    # harvests
    op.create_table(
        "harvests",
        _id_column(),
        sa.Column("farmer_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("field_name", sa.String(255), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("description", sa.Text(), server_default="", nullable=False),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column(
            "farmer_name",
            sa.String(255),
            server_default="Anonymous Farmer",
            nullable=False,
        ),
        *_timestamp_columns(),
        sa.CheckConstraint("quantity >= 0", name="ck_harvests_quantity_non_negative"),
        sa.ForeignKeyConstraint(
            ["farmer_id"], ["farmers.id"], name="fk_harvests_farmer_id_farmers", ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_harvests"),
    )
    op.create_index("ix_harvests_farmer_id", "harvests", ["farmer_id"])


def downgrade() -> None:
    op.drop_index("ix_harvests_farmer_id", table_name="harvests")
    op.drop_table("harvests")
    op.drop_index("ix_suggestion_batches_field_generated", table_name="suggestion_batches")
    op.drop_table("suggestion_batches")
    op.drop_index("ix_fields_owner_id", table_name="fields")
    op.drop_table("fields")
    op.drop_index("ix_farmers_email", table_name="farmers")
    op.drop_table("farmers")
