"""Create emergency_records and emergency_acknowledgments tables.

Revision ID: 001_emergency_records
Revises:
Create Date: 2026-10-18
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "001_emergency_records"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "emergency_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("emergency_id", sa.String(255), nullable=False),
        sa.Column("emergency_type", sa.String(64), nullable=False),
        sa.Column("segment", sa.Text(), nullable=False),
        sa.Column("cause", sa.Text(), nullable=False),
        sa.Column("severity", sa.String(32), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column(
            "escalated",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("escalated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "notification_channels",
            postgresql.JSONB(),
            nullable=False,
            server_default="{}",
        ),
        sa.Column(
            "contacts",
            postgresql.JSONB(),
            nullable=False,
            server_default="[]",
        ),
        sa.Column(
            "recorded_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    op.create_index(
        "ix_emergency_records_emergency_id",
        "emergency_records",
        ["emergency_id"],
    )

    op.create_table(
        "emergency_acknowledgments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("emergency_id", sa.String(255), nullable=False),
        sa.Column("acknowledged_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("acknowledged_by", sa.String(100), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column(
            "recorded_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    op.create_index(
        "ix_emergency_acknowledgments_emergency_id",
        "emergency_acknowledgments",
        ["emergency_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_emergency_acknowledgments_emergency_id")
    op.drop_table("emergency_acknowledgments")
    op.drop_index("ix_emergency_records_emergency_id")
    op.drop_table("emergency_records")
