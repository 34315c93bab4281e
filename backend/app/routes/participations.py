from __future__ import annotations
from datetime import datetime
from uuid import UUID
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.db import get_session
from app.auth_deps import get_current_user, get_now
from app.routes.campaigns import load_campaign
from app.schemas.participation import ParticipationCreate, ParticipationPublic, ParticipationReview, ParticipationStatus
from app.services import lifecycle
from app.services.errors import PermissionDeniedError
from app.services.participations import list_participations, register, review_participation

router = APIRouter(tags=["participations"])

def _pub(p) -> ParticipationPublic:
    return ParticipationPublic.model_validate(p, from_attributes=True)

@router.post("/campaigns/{campaign_id}/participate", response_model=ParticipationPublic, status_code=201)
async def participate(
    campaign_id: UUID,
    payload: ParticipationCreate,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    return _pub(await register(session, user, campaign_id, payload, now=now))

@router.get("/campaigns/{campaign_id}/participations", response_model=list[ParticipationPublic])
async def campaign_participations(
    campaign_id: UUID,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
    status: ParticipationStatus | None = Query(default=None),
):
    ch = await load_campaign(session, campaign_id)
    if not lifecycle.is_reviewer(user, ch):
        raise PermissionDeniedError("Only admins or the campaign creator can list participation requests.")
    return [_pub(p) for p in await list_participations(session, ch.id, status)]

@router.post("/participations/{participation_id}/review", response_model=ParticipationPublic)
async def review(
    participation_id: UUID,
    payload: ParticipationReview,
    session: AsyncSession = Depends(get_session),
    user=Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    p = await review_participation(session, user, participation_id, payload.outcome, payload.notes, now=now)
    return _pub(p)
