from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Literal
from uuid import UUID
from datetime import datetime

SubmissionStatus = Literal["submitted", "under_review", "graded", "winner", "runner_up", "not_selected"]
Grade = Literal["A+", "A", "B+", "B", "C+", "C", "D", "F"]
GradeOutcome = Literal["graded", "winner", "runner_up", "not_selected"]


class ProjectLinks(BaseModel):
    demo_url: str | None = None
    github_url: str | None = None
    files_url: str | None = None


class SubmissionCreate(BaseModel):
    project_title: str
    project_description: str
    project_screenshots: list[str] = Field(default_factory=list)
    project_links: ProjectLinks = Field(default_factory=ProjectLinks)
    pitch_deck_url: str | None = None


class GradeSubmission(BaseModel):
    # score range is enforced by the grading command (InvalidScoreError), not here
    score: float
    grade: Grade
    feedback: str | None = None
    status: GradeOutcome = "graded"
    position: int | None = None
    prize_amount: float | None = Field(default=None, ge=0)


class SubmissionPublic(BaseModel):
    id: UUID
    campaign_id: UUID
    participation_id: UUID
    user_id: UUID
    project_title: str
    project_description: str
    project_screenshots: list[str] = Field(default_factory=list)
    project_links: ProjectLinks = Field(default_factory=ProjectLinks)
    pitch_deck_url: str | None = None
    submission_date: datetime
    status: SubmissionStatus
    score: float | None = None
    grade: Grade | None = None
    feedback: str | None = None
    position: int | None = None
    prize_amount: float | None = None


class SubmissionBoard(BaseModel):
    campaign_id: UUID
    counts: dict[str, int]
    submissions: list[SubmissionPublic]
