from __future__ import annotations
from datetime import datetime
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.config import settings
from app.db import get_session
from app.auth_deps import get_current_user, get_optional_user, get_now
from app.models.campaign import Campaign
from app.schemas.campaign import (
    CampaignCreate, CampaignDates, CampaignPublic, CampaignStatus, CampaignTimeline, CampaignUpdate,
    ParticipationStatusView, prize_problems,
)
from app.schemas.participation import ParticipationPublic
from app.schemas.submission import SubmissionPublic
from app.services import lifecycle
from app.services.eligibility import decide
from app.services.errors import FormValidationError, PermissionDeniedError, TimelineValidationError
from app.services.participations import find_participation
from app.services.submissions import get_submission_for_participation
from app.services.timeline import days_left, errors_only, milestones, runtime_state, validate_timeline
import structlog

router = APIRouter(prefix="/campaigns", tags=["campaigns"])
log = structlog.get_logger()

def to_public(ch: Campaign, now: datetime) -> CampaignPublic:
    return CampaignPublic(
        id=ch.id, created_by=ch.created_by, title=ch.title, description=ch.description,
        campaign_type=ch.campaign_type, status=ch.status,
        start_date=ch.start_date, end_date=ch.end_date,
        registration_start_date=ch.registration_start_date, registration_end_date=ch.registration_end_date,
        submission_start_date=ch.submission_start_date, submission_end_date=ch.submission_end_date,
        results_announcement_date=ch.results_announcement_date, award_distribution_date=ch.award_distribution_date,
        funding_trail=ch.funding_trail, prize_pool=ch.prize_pool, prizes=ch.prizes_json or {},
        created_at=ch.created_at,
        runtime_state=runtime_state(ch, now),
        days_left=days_left(ch.end_date, now),
    )

async def load_campaign(session: AsyncSession, campaign_id: UUID) -> Campaign:
    ch = await session.get(Campaign, campaign_id)
    if not ch:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return ch

def _check_timeline(dates) -> None:
    violations = validate_timeline(dates, strict_window_order=settings.strict_window_order)
    errors = errors_only(violations)
    if errors:
        raise TimelineValidationError(errors)
    for w in violations:
        log.info("timeline_warning", field=w.field, code=w.code)

@router.post("", response_model=CampaignPublic, status_code=201)
async def create_campaign(
    payload: CampaignCreate,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    if (user.role or "").lower() not in lifecycle.REVIEWER_ROLES:
        raise PermissionDeniedError("Only admins can create campaigns.")
    _check_timeline(payload)
    data = payload.model_dump(exclude={"prizes"})
    ch = Campaign(created_by=user.id, prizes_json=dict(payload.prizes), **data)
    session.add(ch)
    await session.commit()
    await session.refresh(ch)
    log.info("campaign_created", campaign_id=str(ch.id), status=ch.status, campaign_type=ch.campaign_type)
    return to_public(ch, now)

@router.patch("/{campaign_id}", response_model=CampaignPublic)
async def update_campaign(
    campaign_id: UUID,
    payload: CampaignUpdate,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    ch = await load_campaign(session, campaign_id)
    if not lifecycle.is_reviewer(user, ch):
        raise PermissionDeniedError("Only admins or the campaign creator can edit this campaign.")
    changes = payload.model_dump(exclude_unset=True)
    if "prizes" in changes:
        changes["prizes_json"] = dict(changes.pop("prizes") or {})

    # Validate the campaign as it will look after the update, not the patch alone
    merged = CampaignDates.model_validate({
        name: changes.get(name, getattr(ch, name)) for name in CampaignDates.model_fields
    })
    _check_timeline(merged)
    if "status" in changes:
        lifecycle.validate_campaign_transition(ch.status, changes["status"])
    if {"campaign_type", "prize_pool", "prizes_json"} & changes.keys():
        problems = prize_problems(
            changes.get("campaign_type", ch.campaign_type),
            changes.get("prize_pool", ch.prize_pool),
            changes.get("prizes_json", ch.prizes_json or {}),
        )
        if problems:
            raise FormValidationError(" ".join(problems))

    for name, value in changes.items():
        setattr(ch, name, value)
    await session.commit()
    await session.refresh(ch)
    log.info("campaign_updated", campaign_id=str(ch.id), fields=sorted(changes))
    return to_public(ch, now)

@router.get("", response_model=list[CampaignPublic])
async def list_campaigns(
    session: AsyncSession = Depends(get_session),
    now: datetime = Depends(get_now),
    status: CampaignStatus | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
):
    q = select(Campaign)
    if status:
        q = q.where(Campaign.status == status)
    q = q.order_by(Campaign.start_date.desc()).limit(limit)
    rows = (await session.execute(q)).scalars().all()
    return [to_public(c, now) for c in rows]

@router.get("/{campaign_id}", response_model=CampaignPublic)
async def get_campaign(campaign_id: UUID, session: AsyncSession = Depends(get_session), now: datetime = Depends(get_now)):
    return to_public(await load_campaign(session, campaign_id), now)

@router.get("/{campaign_id}/timeline", response_model=CampaignTimeline)
async def get_timeline(campaign_id: UUID, session: AsyncSession = Depends(get_session), now: datetime = Depends(get_now)):
    ch = await load_campaign(session, campaign_id)
    return CampaignTimeline(
        campaign_id=ch.id,
        runtime_state=runtime_state(ch, now),
        days_left=days_left(ch.end_date, now),
        milestones=milestones(ch, now),
    )

@router.get("/{campaign_id}/participation-status", response_model=ParticipationStatusView)
async def participation_status(
    campaign_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_optional_user),
    now: datetime = Depends(get_now),
):
    ch = await load_campaign(session, campaign_id)
    p = await find_participation(session, ch.id, user.id) if user is not None else None
    s = await get_submission_for_participation(session, p.id) if p is not None else None
    return ParticipationStatusView(
        campaign_id=ch.id,
        campaign_status=ch.status,
        participation=ParticipationPublic.model_validate(p, from_attributes=True) if p else None,
        submission=SubmissionPublic.model_validate(s, from_attributes=True) if s else None,
        decision=decide(user, ch, p, s, now=now),
    )
