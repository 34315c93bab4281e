"""Status vocabularies and transition rules for campaigns, participations and submissions.

Participation:  pending -> approved | rejected          (exactly once, by a reviewer)
Submission:     not_submitted -> submitted -> under_review -> graded -> winner | runner_up | not_selected
                (submitted/under_review may be graded straight into a final outcome;
                 graded -> graded is a re-grade; final outcomes are terminal)
Campaign:       draft -> active | cancelled;  active -> completed | cancelled
"""
from __future__ import annotations
from typing import Any

from app.services.errors import InvalidStateError, InvalidTransitionError

PARTICIPANT_ROLE = "student"
REVIEWER_ROLES = frozenset({"admin"})

CAMPAIGN_STATUSES = ("draft", "active", "completed", "cancelled")

PARTICIPATION_STATUSES = ("pending", "approved", "rejected")

SUBMISSION_STATUSES = ("submitted", "under_review", "graded", "winner", "runner_up", "not_selected")
# Participation.submission_status mirrors Submission.status, plus the pre-submission stage
MIRROR_STATUSES = ("not_submitted",) + SUBMISSION_STATUSES

FINAL_SUBMISSION_STATUSES = frozenset({"winner", "runner_up", "not_selected"})
GRADE_OUTCOMES = ("graded", "winner", "runner_up", "not_selected")
GRADES = ("A+", "A", "B+", "B", "C+", "C", "D", "F")

VALID_TRANSITIONS: dict[str, frozenset[str]] = {
    "not_submitted": frozenset({"submitted"}),
    "submitted": frozenset({"under_review", "graded", "winner", "runner_up", "not_selected"}),
    "under_review": frozenset({"graded", "winner", "runner_up", "not_selected"}),
    "graded": frozenset({"graded", "winner", "runner_up", "not_selected"}),
    "winner": frozenset(),        # terminal
    "runner_up": frozenset(),     # terminal
    "not_selected": frozenset(),  # terminal
}

CAMPAIGN_TRANSITIONS: dict[str, frozenset[str]] = {
    "draft": frozenset({"active", "cancelled"}),
    "active": frozenset({"completed", "cancelled"}),
    "completed": frozenset(),
    "cancelled": frozenset(),
}

# Stage order for monotonicity checks; final outcomes share the last stage.
STAGE = {"not_submitted": 0, "submitted": 1, "under_review": 2, "graded": 3,
         "winner": 4, "runner_up": 4, "not_selected": 4}


def ensure_member(value: Any, allowed: tuple[str, ...], what: str) -> str:
    if value not in allowed:
        raise InvalidStateError(f"{what} {value!r} is not one of {', '.join(allowed)}")
    return value


def can_transition(current: str, target: str) -> bool:
    """Check a submission status change against the forward-only table."""
    ensure_member(current, MIRROR_STATUSES, "submission status")
    return target in VALID_TRANSITIONS[current]


def validate_transition(current: str, target: str) -> None:
    if not can_transition(current, target):
        allowed = sorted(VALID_TRANSITIONS[current])
        raise InvalidTransitionError(
            f"Cannot move submission from '{current}' to '{target}'. Allowed from '{current}': {allowed}"
        )


def validate_campaign_transition(current: str, target: str) -> None:
    ensure_member(current, CAMPAIGN_STATUSES, "campaign status")
    if current == target:
        return
    if target not in CAMPAIGN_TRANSITIONS[current]:
        allowed = sorted(CAMPAIGN_TRANSITIONS[current])
        raise InvalidTransitionError(
            f"Cannot move campaign from '{current}' to '{target}'. Allowed from '{current}': {allowed}"
        )


def is_participant_role(actor) -> bool:
    return (actor.role or "").lower() == PARTICIPANT_ROLE


def is_reviewer(actor, campaign) -> bool:
    """Admins review every campaign; a creator reviews their own."""
    if actor is None:
        return False
    if (actor.role or "").lower() in REVIEWER_ROLES:
        return True
    return campaign is not None and campaign.created_by is not None and campaign.created_by == actor.id
