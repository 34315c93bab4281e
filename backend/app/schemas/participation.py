from __future__ import annotations
from pydantic import BaseModel
from typing import Literal
from uuid import UUID
from datetime import datetime

ParticipationStatus = Literal["pending", "approved", "rejected"]
ReviewOutcome = Literal["approved", "rejected"]


class ParticipationCreate(BaseModel):
    # Blank-after-trim is rejected by the register command, not here
    motivation: str
    experience: str
    portfolio: str | None = None
    additional_info: str | None = None


class ParticipationReview(BaseModel):
    outcome: ReviewOutcome
    notes: str | None = None


class ParticipationPublic(BaseModel):
    id: UUID
    campaign_id: UUID
    user_id: UUID
    status: ParticipationStatus
    submission_status: str | None = None
    motivation: str
    experience: str
    portfolio: str | None = None
    additional_info: str | None = None
    submitted_at: datetime
    reviewed_at: datetime | None = None
    review_notes: str | None = None
