"""opportunities, assignments and volunteer feedback

Revision ID: 0001_opportunity_core
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_opportunity_core"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "opportunities",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("owner_id", sa.String(length=128), nullable=False),

        sa.Column("title", sa.String(length=256), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("location", sa.String(length=256), nullable=False, server_default=sa.text("''")),
        sa.Column("tags", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),

        sa.Column("status", sa.String(length=16), nullable=False, server_default=sa.text("'open'")),
        sa.Column("priority", sa.String(length=16), nullable=False, server_default=sa.text("'medium'")),

        sa.Column("event_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),

        sa.Column("max_volunteers", sa.Integer(), nullable=False),
        sa.Column("current_volunteers", sa.Integer(), nullable=False, server_default=sa.text("0")),

        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),

        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),

        sa.CheckConstraint(
            "status IN ('open', 'in_progress', 'waiting', 'resolved', 'closed', 'assigned')",
            name="ck_opportunities_status",
        ),
        sa.CheckConstraint(
            "priority IN ('low', 'medium', 'high', 'urgent')",
            name="ck_opportunities_priority",
        ),
        sa.CheckConstraint("max_volunteers >= 1", name="ck_opportunities_max_positive"),
        sa.CheckConstraint("current_volunteers >= 0", name="ck_opportunities_current_nonnegative"),
        sa.CheckConstraint(
            "current_volunteers <= max_volunteers", name="ck_opportunities_within_capacity"
        ),
        sa.CheckConstraint("duration_minutes > 0", name="ck_opportunities_duration_positive"),
    )
    op.create_index("ix_opportunities_owner_id", "opportunities", ["owner_id"])
    op.create_index("ix_opportunities_status_start", "opportunities", ["status", "event_start"])

    op.create_table(
        "assignments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "opportunity_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("opportunities.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("volunteer_id", sa.String(length=128), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("released_at", sa.DateTime(timezone=True), nullable=True),
    )
    # one live claim per volunteer per opportunity; history rows are unconstrained
    op.create_index(
        "uq_assignments_one_active",
        "assignments",
        ["opportunity_id", "volunteer_id"],
        unique=True,
        postgresql_where=sa.text("active"),
    )
    op.create_index("ix_assignments_opportunity_active", "assignments", ["opportunity_id", "active"])
    op.create_index("ix_assignments_volunteer_active", "assignments", ["volunteer_id", "active"])

    op.create_table(
        "volunteer_feedback",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "opportunity_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("opportunities.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("volunteer_id", sa.String(length=128), nullable=False),
        sa.Column("organization_id", sa.String(length=128), nullable=False),

        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("feedback", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("skills", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("areas_of_improvement", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("would_work_again", sa.Boolean(), nullable=False, server_default=sa.text("false")),

        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),

        sa.UniqueConstraint("opportunity_id", "volunteer_id", name="uq_feedback_opportunity_volunteer"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_feedback_rating_range"),
    )
    op.create_index("ix_feedback_volunteer", "volunteer_feedback", ["volunteer_id"])


def downgrade():
    op.drop_index("ix_feedback_volunteer", table_name="volunteer_feedback")
    op.drop_table("volunteer_feedback")

    op.drop_index("ix_assignments_volunteer_active", table_name="assignments")
    op.drop_index("ix_assignments_opportunity_active", table_name="assignments")
    op.drop_index("uq_assignments_one_active", table_name="assignments")
    op.drop_table("assignments")

    op.drop_index("ix_opportunities_status_start", table_name="opportunities")
    op.drop_index("ix_opportunities_owner_id", table_name="opportunities")
    op.drop_table("opportunities")
