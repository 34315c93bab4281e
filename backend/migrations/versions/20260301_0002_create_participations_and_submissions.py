"""participations + submissions with the exclusivity constraints the lifecycle relies on

Revision ID: 20260301_0002
Revises: 20260301_0001
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "20260301_0002"
down_revision = "20260301_0001"
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "participations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("campaign_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("submission_status", sa.String(length=16), nullable=True),
        sa.Column("motivation", sa.Text(), nullable=False),
        sa.Column("experience", sa.Text(), nullable=False),
        sa.Column("portfolio", sa.Text(), nullable=True),
        sa.Column("additional_info", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("reviewed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("reviewed_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("review_notes", sa.Text(), nullable=True),
        sa.UniqueConstraint("campaign_id", "user_id", name="uq_participation_once_per_campaign"),
    )
    op.create_index("ix_participations_campaign_id", "participations", ["campaign_id"])
    op.create_index("ix_participations_user_id", "participations", ["user_id"])

    op.create_table(
        "submissions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("campaign_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False),
        sa.Column("participation_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("participations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("project_title", sa.String(length=200), nullable=False),
        sa.Column("project_description", sa.Text(), nullable=False),
        sa.Column("project_screenshots", postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("project_links", postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column("pitch_deck_url", sa.Text(), nullable=True),
        sa.Column("submission_date", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="submitted"),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("grade", sa.String(length=4), nullable=True),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=True),
        sa.Column("prize_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("graded_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("graded_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.UniqueConstraint("participation_id", name="uq_submission_once_per_participation"),
        sa.UniqueConstraint("campaign_id", "position", name="uq_submission_position_per_campaign"),
    )
    op.create_index("ix_submissions_campaign_id", "submissions", ["campaign_id"])
    op.create_index("ix_submissions_participation_id", "submissions", ["participation_id"])
    op.create_index("ix_submissions_user_id", "submissions", ["user_id"])

    # Mirror the enum and range rules the commands enforce
    op.execute("""
        ALTER TABLE submissions
        ADD CONSTRAINT ck_submission_score_range CHECK (score IS NULL OR (score >= 0 AND score <= 100)),
        ADD CONSTRAINT ck_submission_position_range CHECK (position IS NULL OR position BETWEEN 1 AND 3)
    """)

def downgrade() -> None:
    op.execute("ALTER TABLE submissions DROP CONSTRAINT IF EXISTS ck_submission_position_range")
    op.execute("ALTER TABLE submissions DROP CONSTRAINT IF EXISTS ck_submission_score_range")
    op.drop_index("ix_submissions_user_id", table_name="submissions")
    op.drop_index("ix_submissions_participation_id", table_name="submissions")
    op.drop_index("ix_submissions_campaign_id", table_name="submissions")
    op.drop_table("submissions")
    op.drop_index("ix_participations_user_id", table_name="participations")
    op.drop_index("ix_participations_campaign_id", table_name="participations")
    op.drop_table("participations")
