from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Boolean, DateTime, ForeignKey, Numeric, Text, Uuid, JSON, CheckConstraint, func
from sqlalchemy.dialects.postgresql import JSONB
from app.db import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")

class Campaign(Base):
    __tablename__ = "campaigns"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text())
    campaign_type: Mapped[str] = mapped_column(String(16), nullable=False, default="custom")  # custom|mini
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="draft")  # draft|active|completed|cancelled

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    registration_start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    registration_end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    submission_start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    submission_end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    # Informational milestones, never gating
    results_announcement_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    award_distribution_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    funding_trail: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    prize_pool: Mapped[float | None] = mapped_column(Numeric(12, 2, asdecimal=False))
    prizes_json: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)  # {"1": "$1000 + laptop", ...}

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("start_date < end_date", name="ck_campaign_dates_ordered"),
    )
