from __future__ import annotations
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "20260301_0001"
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="base_user"),
        sa.Column("verification_status", sa.String(length=16), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "campaigns",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("campaign_type", sa.String(length=16), nullable=False, server_default="custom"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="draft"),
        sa.Column("start_date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("end_date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("registration_start_date", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("registration_end_date", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("submission_start_date", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("submission_end_date", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("results_announcement_date", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("award_distribution_date", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("funding_trail", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("prize_pool", sa.Numeric(12, 2), nullable=True),
        sa.Column("prizes_json", postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint("start_date < end_date", name="ck_campaign_dates_ordered"),
        sa.CheckConstraint("status IN ('draft','active','completed','cancelled')", name="ck_campaign_status"),
    )
    op.create_index("ix_campaigns_created_by", "campaigns", ["created_by"])

def downgrade() -> None:
    op.drop_index("ix_campaigns_created_by", table_name="campaigns")
    op.drop_table("campaigns")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
