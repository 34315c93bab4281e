from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, DateTime, Float, ForeignKey, Integer, Numeric, UniqueConstraint, Uuid, func
from app.db import Base
from app.models.campaign import JSONType


class Submission(Base):
    __tablename__ = "submissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    campaign_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("campaigns.id", ondelete="CASCADE"), index=True, nullable=False
    )
    participation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("participations.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )

    # Authored by the student at submit time, never edited by reviewers
    project_title: Mapped[str] = mapped_column(String(200), nullable=False)
    project_description: Mapped[str] = mapped_column(Text(), nullable=False)
    project_screenshots: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    project_links: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)  # demo_url|github_url|files_url
    pitch_deck_url: Mapped[str | None] = mapped_column(Text(), nullable=True)
    submission_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Owned by reviewers
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="submitted")
    score: Mapped[float | None] = mapped_column(Float, nullable=True)
    grade: Mapped[str | None] = mapped_column(String(4), nullable=True)
    feedback: Mapped[str | None] = mapped_column(Text(), nullable=True)
    position: Mapped[int | None] = mapped_column(Integer, nullable=True)
    prize_amount: Mapped[float | None] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=True)
    graded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    graded_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        UniqueConstraint("participation_id", name="uq_submission_once_per_participation"),
        # NULL positions never collide, so only podium slots are exclusive
        UniqueConstraint("campaign_id", "position", name="uq_submission_position_per_campaign"),
    )
