"""
What may this actor do next in this campaign?

`decide()` folds actor, campaign, participation, submission and `now` into exactly one
Decision. Several blocking reasons can hold at once (a rejected participation in a
cancelled campaign, an unverified student outside the registration window...); the
fixed evaluation order below picks the one reported:

  1. not authenticated
  2. role is not the participating role
  3. student verification not approved
  4. campaign not active
  5. no participation   -> registration window: not started | ended | can register
  6. pending            -> awaiting approval
  7. rejected           -> participation rejected
  8. approved           -> by submission stage:
                             not_submitted  -> submission window: not started | ended | can submit
                             submitted, under_review -> under review
                             graded | winner | runner_up | not_selected

The function reads only its arguments: no clock, no I/O, no mutation.
"""
from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict

from app.services import lifecycle
from app.services.errors import InvalidStateError
from app.services.time_windows import WindowPhase, classify, to_utc

Action = Literal["register", "submit"]


class DecisionKind(str, Enum):
    NOT_AUTHENTICATED = "not_authenticated"
    NOT_ELIGIBLE_ROLE = "not_eligible_role"
    VERIFICATION_REQUIRED = "verification_required"
    CAMPAIGN_NOT_OPEN = "campaign_not_open"
    REGISTRATION_NOT_STARTED = "registration_not_started"
    REGISTRATION_ENDED = "registration_ended"
    CAN_REGISTER = "can_register"
    AWAITING_APPROVAL = "awaiting_approval"
    PARTICIPATION_REJECTED = "participation_rejected"
    SUBMISSION_NOT_STARTED = "submission_not_started"
    SUBMISSION_ENDED = "submission_ended"
    CAN_SUBMIT = "can_submit"
    UNDER_REVIEW = "under_review"
    GRADED = "graded"
    WINNER = "winner"
    RUNNER_UP = "runner_up"
    NOT_SELECTED = "not_selected"


_FAMILY = {
    DecisionKind.REGISTRATION_NOT_STARTED: "registration_not_open",
    DecisionKind.REGISTRATION_ENDED: "registration_not_open",
    DecisionKind.SUBMISSION_NOT_STARTED: "submission_window_not_open",
    DecisionKind.SUBMISSION_ENDED: "submission_window_not_open",
}

_OUTCOME_KIND = {
    "submitted": DecisionKind.UNDER_REVIEW,
    "under_review": DecisionKind.UNDER_REVIEW,
    "graded": DecisionKind.GRADED,
    "winner": DecisionKind.WINNER,
    "runner_up": DecisionKind.RUNNER_UP,
    "not_selected": DecisionKind.NOT_SELECTED,
}


class Decision(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: DecisionKind
    action: Action | None = None  # the single primary action, only on can_register / can_submit
    opens_at: datetime | None = None  # *_not_started
    ended_at: datetime | None = None  # *_ended
    verification_status: str | None = None  # verification_required ("none" when never submitted)
    campaign_status: str | None = None  # campaign_not_open

    @property
    def enabled(self) -> bool:
        return self.action is not None

    @property
    def family(self) -> str:
        return _FAMILY.get(self.kind, self.kind.value)


def submission_stage(participation, submission=None) -> str:
    """Current submission stage; the Submission row wins over the participation mirror."""
    if submission is not None:
        return lifecycle.ensure_member(submission.status, lifecycle.SUBMISSION_STATUSES, "submission status")
    stage = participation.submission_status or "not_submitted"
    return lifecycle.ensure_member(stage, lifecycle.MIRROR_STATUSES, "submission status")


def _window_decision(
    now: datetime,
    start,
    end,
    before: DecisionKind,
    after: DecisionKind,
    open_kind: DecisionKind,
    action: Action,
) -> Decision:
    phase = classify(now, start, end)
    if phase is WindowPhase.BEFORE:
        return Decision(kind=before, opens_at=to_utc(start))
    if phase is WindowPhase.AFTER:
        return Decision(kind=after, ended_at=to_utc(end))
    return Decision(kind=open_kind, action=action)


def decide(actor, campaign, participation=None, submission=None, *, now: datetime) -> Decision:
    """
    Derive the one Decision for `actor` in `campaign` at `now`.

    `actor` is None when unauthenticated. `participation` and `submission` are the
    actor's records for this campaign, or None. The result is a derivation only:
    after any command runs, re-query with fresh records.

    Raises:
        InvalidWindowError: campaign window dates are malformed or inverted.
        InvalidStateError: a status is outside its enum, or records belong elsewhere.
    """
    if actor is None:
        return Decision(kind=DecisionKind.NOT_AUTHENTICATED)
    if not lifecycle.is_participant_role(actor):
        return Decision(kind=DecisionKind.NOT_ELIGIBLE_ROLE)
    verification = (actor.verification_status or "none").lower()
    if verification != "approved":
        return Decision(kind=DecisionKind.VERIFICATION_REQUIRED, verification_status=verification)

    lifecycle.ensure_member(campaign.status, lifecycle.CAMPAIGN_STATUSES, "campaign status")
    if campaign.status != "active":
        return Decision(kind=DecisionKind.CAMPAIGN_NOT_OPEN, campaign_status=campaign.status)

    if participation is None:
        return _window_decision(
            now,
            campaign.registration_start_date,
            campaign.registration_end_date,
            DecisionKind.REGISTRATION_NOT_STARTED,
            DecisionKind.REGISTRATION_ENDED,
            DecisionKind.CAN_REGISTER,
            "register",
        )

    _check_ownership(actor, campaign, participation, submission)
    status = lifecycle.ensure_member(participation.status, lifecycle.PARTICIPATION_STATUSES, "participation status")
    if status == "pending":
        return Decision(kind=DecisionKind.AWAITING_APPROVAL)
    if status == "rejected":
        return Decision(kind=DecisionKind.PARTICIPATION_REJECTED)

    stage = submission_stage(participation, submission)
    if stage == "not_submitted":
        return _window_decision(
            now,
            campaign.submission_start_date,
            campaign.submission_end_date,
            DecisionKind.SUBMISSION_NOT_STARTED,
            DecisionKind.SUBMISSION_ENDED,
            DecisionKind.CAN_SUBMIT,
            "submit",
        )
    return Decision(kind=_OUTCOME_KIND[stage])


def _check_ownership(actor, campaign, participation, submission) -> None:
    # Only compares ids that are actually set; transient snapshots may omit them.
    def _mismatch(a, b) -> bool:
        return a is not None and b is not None and a != b

    if _mismatch(participation.campaign_id, campaign.id) or _mismatch(participation.user_id, actor.id):
        raise InvalidStateError("participation does not belong to this actor and campaign")
    if submission is not None and (
        _mismatch(submission.participation_id, participation.id) or _mismatch(submission.campaign_id, campaign.id)
    ):
        raise InvalidStateError("submission does not belong to this participation")
