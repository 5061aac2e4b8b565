"""create load_profiles table

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "load_profiles",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("meter_name", sa.String(length=255), nullable=False,
                  comment="Meter identifier; one stored profile per meter"),
        sa.Column("source_filename", sa.String(length=512), nullable=True),
        sa.Column("weekday_profile", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("weekend_profile", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("weekday_days", sa.Integer(), nullable=False),
        sa.Column("weekend_days", sa.Integer(), nullable=False),
        sa.Column("peak_kw", sa.Float(), nullable=False),
        sa.Column("avg_kw", sa.Float(), nullable=False),
        sa.Column("total_kwh", sa.Float(), nullable=False),
        sa.Column("load_factor", sa.Float(), nullable=False),
        sa.Column("data_points", sa.Integer(), nullable=False),
        sa.Column("date_range_start", sa.Date(), nullable=True),
        sa.Column("date_range_end", sa.Date(), nullable=True),
        sa.Column("detected_interval_minutes", sa.Integer(), nullable=False),
        sa.Column("processing_config", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column(
            "processed_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
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
        sa.PrimaryKeyConstraint("id", name="pk_load_profiles"),
        sa.UniqueConstraint("meter_name", name="uq_load_profiles_meter_name"),
    )
    op.create_index(
        "ix_load_profiles_date_range_start",
        "load_profiles",
        ["date_range_start"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_load_profiles_date_range_start", table_name="load_profiles")
    op.drop_table("load_profiles")
