from __future__ import annotations
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Literal
from uuid import UUID
from datetime import datetime

from app.services.eligibility import Decision
from app.services.timeline import Milestone, RuntimeState
from app.schemas.participation import ParticipationPublic
from app.schemas.submission import SubmissionPublic

CampaignStatus = Literal["draft", "active", "completed", "cancelled"]
CampaignType = Literal["custom", "mini"]
PRIZE_SLOTS = ("1", "2", "3")


def prize_problems(campaign_type: str, prize_pool: float | None, prizes: dict[str, str]) -> list[str]:
    """Prize metadata a campaign type needs before it can be published."""
    problems = []
    if not prize_pool or prize_pool <= 0:
        problems.append(f"Prize pool is required for {campaign_type} campaigns.")
    required = ("1",) if campaign_type == "custom" else PRIZE_SLOTS
    missing = [slot for slot in required if not (prizes.get(slot) or "").strip()]
    if missing:
        problems.append(f"Prizes for position(s) {', '.join(missing)} are required for {campaign_type} campaigns.")
    return problems


class CampaignDates(BaseModel):
    start_date: datetime | None = None
    end_date: datetime | None = None
    registration_start_date: datetime | None = None
    registration_end_date: datetime | None = None
    submission_start_date: datetime | None = None
    submission_end_date: datetime | None = None
    results_announcement_date: datetime | None = None
    award_distribution_date: datetime | None = None


class CampaignCreate(CampaignDates):
    title: str = Field(min_length=3, max_length=200)
    description: str | None = None
    campaign_type: CampaignType = "custom"
    status: Literal["draft", "active"] = "draft"
    start_date: datetime
    end_date: datetime
    funding_trail: bool = False
    prize_pool: float | None = Field(default=None, ge=0)
    prizes: dict[str, str] = Field(default_factory=dict)

    @field_validator("prizes")
    @classmethod
    def known_slots(cls, v: dict[str, str]):
        for slot in v:
            if slot not in PRIZE_SLOTS:
                raise ValueError("prizes keys must be positions '1', '2' or '3'")
        return v

    @model_validator(mode="after")
    def prizes_for_type(self):
        problems = prize_problems(self.campaign_type, self.prize_pool, self.prizes)
        if problems:
            raise ValueError(" ".join(problems))
        return self


class CampaignUpdate(CampaignDates):
    # Only fields present in the request body are applied (exclude_unset)
    title: str | None = Field(default=None, min_length=3, max_length=200)
    description: str | None = None
    campaign_type: CampaignType | None = None
    status: CampaignStatus | None = None
    funding_trail: bool | None = None
    prize_pool: float | None = Field(default=None, ge=0)
    prizes: dict[str, str] | None = None

    @model_validator(mode="after")
    def no_null_required_fields(self):
        # omitted means "leave as is"; an explicit null would blank a NOT NULL column
        nulled = [f for f in ("title", "campaign_type", "status", "funding_trail")
                  if f in self.model_fields_set and getattr(self, f) is None]
        if nulled:
            raise ValueError(f"{', '.join(nulled)} cannot be null")
        return self


class CampaignPublic(BaseModel):
    id: UUID
    created_by: UUID
    title: str
    description: str | None
    campaign_type: CampaignType
    status: CampaignStatus
    start_date: datetime
    end_date: datetime
    registration_start_date: datetime | None = None
    registration_end_date: datetime | None = None
    submission_start_date: datetime | None = None
    submission_end_date: datetime | None = None
    results_announcement_date: datetime | None = None
    award_distribution_date: datetime | None = None
    funding_trail: bool
    prize_pool: float | None = None
    prizes: dict[str, str] = Field(default_factory=dict)
    created_at: datetime
    runtime_state: RuntimeState
    days_left: int


class CampaignTimeline(BaseModel):
    campaign_id: UUID
    runtime_state: RuntimeState
    days_left: int
    milestones: list[Milestone]


class ParticipationStatusView(BaseModel):
    campaign_id: UUID
    campaign_status: CampaignStatus
    participation: ParticipationPublic | None = None
    submission: SubmissionPublic | None = None
    decision: Decision
