"""Onboarding schema: candidates, offers, notifications, cohorts

Revision ID: 0001_initial
Revises: None
Create Date: 2025-08-20 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "candidates",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("personal_info", sa.JSON, nullable=False),
        sa.Column("call_center", sa.String(8)),
        sa.Column("license_status", sa.String(20)),
        sa.Column("status", sa.String(20)),
        sa.Column("ready_to_go", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.Text),
        sa.Column("interview", sa.JSON),
        sa.Column("background_check", sa.JSON),
        sa.Column("offers", sa.JSON),
        sa.Column("licensing", sa.JSON),
        sa.Column("class_assignment", sa.JSON),
        *_timestamps(),
    )
    op.create_index("ix_candidates_call_center", "candidates", ["call_center"])
    op.create_index("ix_candidates_status", "candidates", ["status"])

    op.create_table(
        "offers",
        sa.Column("id", sa.String(80), primary_key=True),
        sa.Column("candidate_id", sa.String(64), sa.ForeignKey("candidates.id"), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("sent", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("signed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("sent_at", sa.DateTime),
        sa.Column("signed_at", sa.DateTime),
        sa.Column("signer_ip", sa.String(64)),
        sa.Column("download_url", sa.String(512)),
        *_timestamps(),
    )
    op.create_index("ix_offers_candidate_id", "offers", ["candidate_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("type", sa.String(50)),
        sa.Column("candidate_id", sa.String(64), nullable=False),
        sa.Column("candidate_name", sa.String(200)),
        sa.Column("previous_status", sa.String(30)),
        sa.Column("new_status", sa.String(30), nullable=False),
        sa.Column("ibr_id", sa.String(64)),
        sa.Column("message", sa.Text),
        sa.Column("read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime),
        sa.Column("priority", sa.String(10)),
        sa.Column("recipient_role", sa.String(30)),
        *_timestamps(),
    )
    op.create_index("ix_notifications_candidate_id", "notifications", ["candidate_id"])
    op.create_index("ix_notifications_read", "notifications", ["read"])

    op.create_table(
        "cohorts",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("call_center", sa.String(8), nullable=False),
        sa.Column("class_type", sa.String(10), nullable=False),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("expected_end_date", sa.Date, nullable=False),
        sa.Column("trainer", sa.JSON),
        sa.Column("participants", sa.JSON),
        sa.Column("current_stage", sa.String(20)),
        sa.Column("week_number", sa.Integer),
        sa.Column("status", sa.String(20)),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("cohorts")
    op.drop_index("ix_notifications_read", table_name="notifications")
    op.drop_index("ix_notifications_candidate_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_offers_candidate_id", table_name="offers")
    op.drop_table("offers")
    op.drop_index("ix_candidates_status", table_name="candidates")
    op.drop_index("ix_candidates_call_center", table_name="candidates")
    op.drop_table("candidates")
