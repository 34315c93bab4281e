from __future__ import annotations
from datetime import datetime
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.db import get_session
from app.auth_deps import get_current_user, get_now
from app.models.campaign import Campaign
from app.models.submission import Submission
from app.routes.campaigns import load_campaign
from app.schemas.submission import GradeSubmission, SubmissionBoard, SubmissionCreate, SubmissionPublic, SubmissionStatus
from app.services import lifecycle
from app.services.errors import PermissionDeniedError
from app.services.submissions import (
    grade_submission, list_submissions, list_user_submissions, start_review, status_counts, submit_project,
)

router = APIRouter(tags=["submissions"])

def _pub(s: Submission) -> SubmissionPublic:
    return SubmissionPublic.model_validate(s, from_attributes=True)

@router.post("/campaigns/{campaign_id}/submit", response_model=SubmissionPublic, status_code=201)
async def submit(
    campaign_id: UUID,
    payload: SubmissionCreate,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    return _pub(await submit_project(session, user, campaign_id, payload, now=now))

@router.get("/campaigns/{campaign_id}/submissions", response_model=SubmissionBoard)
async def campaign_submissions(
    campaign_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
    status: SubmissionStatus | None = Query(default=None),
):
    ch = await load_campaign(session, campaign_id)
    if not lifecycle.is_reviewer(user, ch):
        raise PermissionDeniedError("Only admins or the campaign creator can view campaign submissions.")
    everything = await list_submissions(session, ch.id)
    shown = [s for s in everything if s.status == status] if status else everything
    return SubmissionBoard(campaign_id=ch.id, counts=status_counts(everything), submissions=[_pub(s) for s in shown])

@router.get("/submissions/mine", response_model=list[SubmissionPublic])
async def my_submissions(session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    return [_pub(s) for s in await list_user_submissions(session, user.id)]

@router.get("/submissions/{submission_id}", response_model=SubmissionPublic)
async def get_submission(submission_id: UUID, session: AsyncSession = Depends(get_session), user=Depends(get_current_user)):
    s = await session.get(Submission, submission_id)
    if not s:
        raise HTTPException(status_code=404, detail="Submission not found")
    if s.user_id != user.id and not lifecycle.is_reviewer(user, await session.get(Campaign, s.campaign_id)):
        raise HTTPException(status_code=403, detail="Not your submission")
    return _pub(s)

@router.post("/submissions/{submission_id}/start-review", response_model=SubmissionPublic)
async def begin_review(
    submission_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    return _pub(await start_review(session, user, submission_id, now=now))

@router.put("/submissions/{submission_id}/grade", response_model=SubmissionPublic)
async def grade(
    submission_id: UUID,
    payload: GradeSubmission,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    return _pub(await grade_submission(session, user, submission_id, payload, now=now))
