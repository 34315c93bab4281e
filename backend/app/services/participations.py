from __future__ import annotations
from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import atomic
from app.models.campaign import Campaign
from app.models.participation import Participation
from app.services import lifecycle
from app.services.eligibility import DecisionKind, decide
from app.services.errors import (
    AlreadyReviewedError,
    CampaignClosedError,
    DuplicateParticipationError,
    FormValidationError,
    LifecycleError,
    NotEligibleError,
    NotFoundError,
    PermissionDeniedError,
)
from app.services.time_windows import to_utc

log = structlog.get_logger()

# Decision kinds that block registration, and how the command reports them
_REGISTER_BLOCKED = {
    DecisionKind.NOT_AUTHENTICATED: PermissionDeniedError,
    DecisionKind.NOT_ELIGIBLE_ROLE: NotEligibleError,
    DecisionKind.VERIFICATION_REQUIRED: NotEligibleError,
    DecisionKind.CAMPAIGN_NOT_OPEN: CampaignClosedError,
    DecisionKind.REGISTRATION_NOT_STARTED: CampaignClosedError,
    DecisionKind.REGISTRATION_ENDED: CampaignClosedError,
}


def _clean(value: str | None) -> str | None:
    value = (value or "").strip()
    return value or None


async def get_campaign_or_none(session: AsyncSession, campaign_id: UUID, lock: bool = False) -> Campaign | None:
    q = select(Campaign).where(Campaign.id == campaign_id).execution_options(populate_existing=True)
    if lock:
        q = q.with_for_update()
    return await session.scalar(q)


async def find_participation(session: AsyncSession, campaign_id: UUID, user_id: UUID, lock: bool = False) -> Participation | None:
    q = (
        select(Participation)
        .where(Participation.campaign_id == campaign_id, Participation.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    if lock:
        q = q.with_for_update()
    return await session.scalar(q)


async def register(session: AsyncSession, actor, campaign_id: UUID, form, *, now: datetime) -> Participation:
    """
    Create a pending participation for `actor`.

    Eligibility is re-evaluated against the rows read inside this transaction, never
    taken from an earlier decision the caller saw. The unique (campaign, user)
    constraint settles concurrent attempts: exactly one insert wins.

    Raises:
        NotEligibleError, CampaignClosedError, DuplicateParticipationError,
        FormValidationError, PermissionDeniedError
    """
    try:
        async with atomic(session):
            campaign = await get_campaign_or_none(session, campaign_id)
            if campaign is None:
                raise NotFoundError("Campaign not found")
            if actor is not None and await find_participation(session, campaign_id, actor.id, lock=True) is not None:
                raise DuplicateParticipationError()
            decision = decide(actor, campaign, None, now=now)
            if decision.kind is not DecisionKind.CAN_REGISTER:
                raise _REGISTER_BLOCKED[decision.kind](_register_reason(decision))

            motivation, experience = _clean(form.motivation), _clean(form.experience)
            missing = [name for name, v in (("motivation", motivation), ("experience", experience)) if v is None]
            if missing:
                raise FormValidationError(f"Please fill in all required fields: {', '.join(missing)}.")

            p = Participation(
                campaign_id=campaign.id,
                user_id=actor.id,
                status="pending",
                motivation=motivation,
                experience=experience,
                portfolio=_clean(form.portfolio),
                additional_info=_clean(form.additional_info),
                submitted_at=to_utc(now),
            )
            session.add(p)
            await session.flush()
        await session.refresh(p)
    except IntegrityError:
        log.warning("command_rejected", command="register", code=DuplicateParticipationError.code, campaign_id=str(campaign_id))
        raise DuplicateParticipationError() from None
    except LifecycleError as e:
        log.warning("command_rejected", command="register", code=e.code, campaign_id=str(campaign_id))
        raise

    log.info("participation_registered", participation_id=str(p.id), campaign_id=str(campaign_id), user_id=str(actor.id))
    return p


def _register_reason(decision) -> str:
    if decision.kind is DecisionKind.VERIFICATION_REQUIRED:
        return f"Student verification required (current status: {decision.verification_status})."
    if decision.kind is DecisionKind.REGISTRATION_NOT_STARTED:
        return f"Registration opens on {decision.opens_at.isoformat()}."
    if decision.kind is DecisionKind.REGISTRATION_ENDED:
        return f"Registration ended on {decision.ended_at.isoformat()}."
    if decision.kind is DecisionKind.CAMPAIGN_NOT_OPEN:
        return f"Campaign is not active (status: {decision.campaign_status})."
    return _REGISTER_BLOCKED[decision.kind].__doc__


async def review_participation(
    session: AsyncSession,
    reviewer,
    participation_id: UUID,
    outcome: str,
    notes: str | None = None,
    *,
    now: datetime,
) -> Participation:
    """
    Approve or reject a pending participation, exactly once.

    The status change is a compare-and-set on status='pending'; a second reviewer
    racing on the same row updates nothing and gets AlreadyReviewedError.
    Approval opens the submission stage (submission_status='not_submitted').
    """
    try:
        if outcome not in ("approved", "rejected"):
            raise FormValidationError("Review outcome must be 'approved' or 'rejected'.")
        async with atomic(session):
            p = await session.get(Participation, participation_id, populate_existing=True)
            if p is None:
                raise NotFoundError("Participation not found")
            campaign = await session.get(Campaign, p.campaign_id)
            if not lifecycle.is_reviewer(reviewer, campaign):
                raise PermissionDeniedError("Only admins or the campaign creator can review participation requests.")
            if reviewer.id == p.user_id:
                raise PermissionDeniedError("Cannot review your own participation request.")
            if p.status != "pending":
                raise AlreadyReviewedError()

            res = await session.execute(
                update(Participation)
                .where(Participation.id == p.id, Participation.status == "pending")
                .values(
                    status=outcome,
                    submission_status="not_submitted" if outcome == "approved" else None,
                    reviewed_at=to_utc(now),
                    reviewed_by=reviewer.id,
                    review_notes=_clean(notes),
                )
                .execution_options(synchronize_session=False)
            )
            if res.rowcount != 1:
                raise AlreadyReviewedError()
        await session.refresh(p)
    except LifecycleError as e:
        log.warning("command_rejected", command="review_participation", code=e.code, participation_id=str(participation_id))
        raise

    log.info("participation_reviewed", participation_id=str(p.id), outcome=outcome, reviewer_id=str(reviewer.id))
    return p


async def list_participations(session: AsyncSession, campaign_id: UUID, status: str | None = None) -> list[Participation]:
    q = select(Participation).where(Participation.campaign_id == campaign_id)
    if status:
        lifecycle.ensure_member(status, lifecycle.PARTICIPATION_STATUSES, "participation status")
        q = q.where(Participation.status == status)
    q = q.order_by(Participation.submitted_at.asc())
    return list((await session.execute(q)).scalars().all())
