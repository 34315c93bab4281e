from __future__ import annotations
from collections import Counter
from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.db import atomic
from app.models.campaign import Campaign
from app.models.participation import Participation
from app.models.submission import Submission
from app.services import lifecycle
from app.services.eligibility import DecisionKind, decide
from app.services.errors import (
    AlreadyFinalizedError,
    AlreadySubmittedError,
    CampaignClosedError,
    FormValidationError,
    InvalidScoreError,
    InvalidTransitionError,
    LifecycleError,
    NotApprovedError,
    NotEligibleError,
    NotFoundError,
    PermissionDeniedError,
    PositionConflictError,
    SubmissionWindowClosedError,
)
from app.services.participations import find_participation, get_campaign_or_none
from app.services.time_windows import to_utc

log = structlog.get_logger()


def _clean(value: str | None) -> str | None:
    value = (value or "").strip()
    return value or None


async def _mirror(session: AsyncSession, participation_id: UUID, expected: str, status: str, error=InvalidTransitionError) -> None:
    """Copy a submission status onto its participation, only from the expected stage."""
    res = await session.execute(
        update(Participation)
        .where(Participation.id == participation_id, Participation.submission_status == expected)
        .values(submission_status=status)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        raise error("Participation changed while the submission was being processed.")


# ---------- student: submit ----------

async def _has_submission(session: AsyncSession, participation: Participation) -> bool:
    if (participation.submission_status or "not_submitted") != "not_submitted":
        return True
    return await get_submission_for_participation(session, participation.id) is not None


async def submit_project(session: AsyncSession, actor, campaign_id: UUID, payload, *, now: datetime) -> Submission:
    """
    Deliver the student's project for a campaign.

    Requires an approved participation with nothing submitted yet and an open (or
    absent) submission window, all re-checked inside this transaction. Creates the
    Submission as 'submitted' and moves the participation mirror
    not_submitted -> submitted in the same commit.
    """
    try:
        async with atomic(session):
            campaign = await get_campaign_or_none(session, campaign_id)
            if campaign is None:
                raise NotFoundError("Campaign not found")
            p = await find_participation(session, campaign_id, actor.id, lock=True)
            if p is None or p.status != "approved":
                raise NotApprovedError()
            if await _has_submission(session, p):
                raise AlreadySubmittedError()

            decision = decide(actor, campaign, p, None, now=now)
            if decision.kind in (DecisionKind.NOT_ELIGIBLE_ROLE, DecisionKind.VERIFICATION_REQUIRED):
                raise NotEligibleError()
            if decision.kind is DecisionKind.CAMPAIGN_NOT_OPEN:
                raise CampaignClosedError(f"Campaign is not active (status: {decision.campaign_status}).")
            if decision.kind is DecisionKind.SUBMISSION_NOT_STARTED:
                raise SubmissionWindowClosedError(f"Submission period starts on {decision.opens_at.isoformat()}.")
            if decision.kind is DecisionKind.SUBMISSION_ENDED:
                raise SubmissionWindowClosedError(f"Submission period ended on {decision.ended_at.isoformat()}.")

            title, description = _clean(payload.project_title), _clean(payload.project_description)
            missing = [n for n, v in (("project_title", title), ("project_description", description)) if v is None]
            if missing:
                raise FormValidationError(f"Please fill in all required fields: {', '.join(missing)}.")

            links = payload.project_links
            s = Submission(
                campaign_id=campaign.id,
                participation_id=p.id,
                user_id=actor.id,
                project_title=title,
                project_description=description,
                project_screenshots=[u for u in (payload.project_screenshots or []) if u and u.strip()],
                project_links=links.model_dump(exclude_none=True) if hasattr(links, "model_dump") else dict(links or {}),
                pitch_deck_url=_clean(payload.pitch_deck_url),
                submission_date=to_utc(now),
                status="submitted",
            )
            session.add(s)
            await session.flush()
            await _mirror(session, p.id, "not_submitted", "submitted", AlreadySubmittedError)
        await session.refresh(s)
    except IntegrityError:
        log.warning("command_rejected", command="submit_project", code=AlreadySubmittedError.code, campaign_id=str(campaign_id))
        raise AlreadySubmittedError() from None
    except LifecycleError as e:
        log.warning("command_rejected", command="submit_project", code=e.code, campaign_id=str(campaign_id))
        raise

    log.info("project_submitted", submission_id=str(s.id), campaign_id=str(campaign_id), user_id=str(actor.id))
    return s


# ---------- reviewer: review & grade ----------

async def _load_for_reviewer(session: AsyncSession, reviewer, submission_id: UUID) -> tuple[Submission, Campaign]:
    s = await session.get(Submission, submission_id, populate_existing=True, with_for_update=True)
    if s is None:
        raise NotFoundError("Submission not found")
    campaign = await session.get(Campaign, s.campaign_id)
    if not lifecycle.is_reviewer(reviewer, campaign):
        raise PermissionDeniedError("Only admins or the campaign creator can review submissions.")
    if reviewer.id == s.user_id:
        raise PermissionDeniedError("Cannot review your own submission.")
    return s, campaign


async def start_review(session: AsyncSession, reviewer, submission_id: UUID, *, now: datetime) -> Submission:
    """Move a fresh submission into the review queue (submitted -> under_review)."""
    try:
        async with atomic(session):
            s, _ = await _load_for_reviewer(session, reviewer, submission_id)
            if s.status in lifecycle.FINAL_SUBMISSION_STATUSES:
                raise AlreadyFinalizedError()
            lifecycle.validate_transition(s.status, "under_review")
            res = await session.execute(
                update(Submission)
                .where(Submission.id == s.id, Submission.status == "submitted")
                .values(status="under_review")
                .execution_options(synchronize_session=False)
            )
            if res.rowcount != 1:
                raise InvalidTransitionError("Submission left the submitted stage concurrently; reload and try again.")
            await _mirror(session, s.participation_id, "submitted", "under_review")
        await session.refresh(s)
    except LifecycleError as e:
        log.warning("command_rejected", command="start_review", code=e.code, submission_id=str(submission_id))
        raise

    log.info("submission_review_started", submission_id=str(s.id), reviewer_id=str(reviewer.id))
    return s


async def _position_holder(session: AsyncSession, campaign_id: UUID, position: int, exclude_id: UUID) -> UUID | None:
    return await session.scalar(
        select(Submission.id).where(
            Submission.campaign_id == campaign_id,
            Submission.position == position,
            Submission.id != exclude_id,
        )
    )


def check_grade(grade, max_positions: int | None = None) -> int | None:
    """
    Validate a grading request and return the podium position it claims.

    winner holds position 1 (implied when omitted), runner_up holds 2 or 3 (2 when
    omitted), not_selected holds none, graded may hold any podium slot.
    """
    max_positions = max_positions or settings.max_ranked_positions
    score = grade.score
    if score is None or not (0 <= score <= 100):
        raise InvalidScoreError(f"Score must be between 0 and 100 (got {score}).")
    if grade.grade not in lifecycle.GRADES:
        raise FormValidationError(f"Grade must be one of {', '.join(lifecycle.GRADES)} (got {grade.grade!r}).")
    status = grade.status or "graded"
    if status not in lifecycle.GRADE_OUTCOMES:
        raise FormValidationError(f"Outcome must be one of {', '.join(lifecycle.GRADE_OUTCOMES)}.")

    position = grade.position
    if status == "winner":
        position = 1 if position is None else position
        if position != 1:
            raise FormValidationError("A winner must hold position 1.")
    elif status == "runner_up":
        position = 2 if position is None else position
        if position not in range(2, max_positions + 1):
            raise FormValidationError(f"A runner-up must hold a position between 2 and {max_positions}.")
    elif status == "not_selected" and position is not None:
        raise FormValidationError("A submission that was not selected cannot hold a position.")
    if position is not None and position not in range(1, max_positions + 1):
        raise FormValidationError(f"Position must be between 1 and {max_positions}.")
    return position


async def grade_submission(session: AsyncSession, reviewer, submission_id: UUID, grade, *, now: datetime) -> Submission:
    """
    Record score, grade and outcome for a submission.

    Re-grading is allowed while the submission is submitted, under_review or graded;
    winner, runner_up and not_selected are final. A podium position is exclusive per
    campaign: the pre-check reports the holder, the unique (campaign_id, position)
    constraint settles races. Nothing changes on failure.
    """
    try:
        position = check_grade(grade)
        status = grade.status or "graded"
        async with atomic(session):
            s, _ = await _load_for_reviewer(session, reviewer, submission_id)
            if s.status in lifecycle.FINAL_SUBMISSION_STATUSES:
                raise AlreadyFinalizedError()
            lifecycle.validate_transition(s.status, status)

            if position is not None:
                if await _position_holder(session, s.campaign_id, position, s.id) is not None:
                    raise PositionConflictError(f"Position {position} is already held by another submission.")

            previous = s.status
            res = await session.execute(
                update(Submission)
                .where(Submission.id == s.id, Submission.status == previous)
                .values(
                    status=status,
                    score=float(grade.score),
                    grade=grade.grade,
                    feedback=_clean(grade.feedback),
                    position=position,
                    prize_amount=grade.prize_amount,
                    graded_at=to_utc(now),
                    graded_by=reviewer.id,
                )
                .execution_options(synchronize_session=False)
            )
            if res.rowcount != 1:
                raise AlreadyFinalizedError("Submission was graded concurrently; reload and try again.")
            await _mirror(session, s.participation_id, previous, status)
        await session.refresh(s)
    except IntegrityError:
        log.warning("command_rejected", command="grade_submission", code=PositionConflictError.code, submission_id=str(submission_id))
        raise PositionConflictError() from None
    except LifecycleError as e:
        log.warning("command_rejected", command="grade_submission", code=e.code, submission_id=str(submission_id))
        raise

    log.info("submission_graded", submission_id=str(s.id), status=s.status, score=s.score, position=s.position,
             reviewer_id=str(reviewer.id))
    return s


# ---------- queries ----------

async def get_submission_for_participation(session: AsyncSession, participation_id: UUID) -> Submission | None:
    return await session.scalar(select(Submission).where(Submission.participation_id == participation_id))


async def list_submissions(session: AsyncSession, campaign_id: UUID, status: str | None = None) -> list[Submission]:
    q = select(Submission).where(Submission.campaign_id == campaign_id)
    if status:
        lifecycle.ensure_member(status, lifecycle.SUBMISSION_STATUSES, "submission status")
        q = q.where(Submission.status == status)
    q = q.order_by(Submission.submission_date.desc())
    return list((await session.execute(q)).scalars().all())


async def list_user_submissions(session: AsyncSession, user_id: UUID) -> list[Submission]:
    q = select(Submission).where(Submission.user_id == user_id).order_by(Submission.submission_date.desc())
    return list((await session.execute(q)).scalars().all())


def status_counts(submissions: list[Submission]) -> dict[str, int]:
    """Per-status totals for the grading board, every status present (zero when empty)."""
    c = Counter(s.status for s in submissions)
    counts = {"all": len(submissions)}
    counts.update({st: int(c.get(st, 0)) for st in lifecycle.SUBMISSION_STATUSES})
    return counts
