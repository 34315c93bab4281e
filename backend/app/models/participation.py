from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, DateTime, ForeignKey, UniqueConstraint, Uuid, func
from app.db import Base


class Participation(Base):
    """
    A student's request to join a campaign.

    Field groups:
      - actor-authored (create only): motivation, experience, portfolio, additional_info
      - reviewer-owned: status, reviewed_at, reviewed_by, review_notes
      - submission_status mirrors Submission.status (NULL until approved) and is written
        in the same transaction as the submission it mirrors.
    """
    __tablename__ = "participations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    campaign_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("campaigns.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )

    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")  # pending|approved|rejected
    submission_status: Mapped[str | None] = mapped_column(String(16), nullable=True)

    motivation: Mapped[str] = mapped_column(Text(), nullable=False)
    experience: Mapped[str] = mapped_column(Text(), nullable=False)
    portfolio: Mapped[str | None] = mapped_column(Text(), nullable=True)
    additional_info: Mapped[str | None] = mapped_column(Text(), nullable=True)

    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    review_notes: Mapped[str | None] = mapped_column(Text(), nullable=True)

    __table_args__ = (
        UniqueConstraint("campaign_id", "user_id", name="uq_participation_once_per_campaign"),
    )
