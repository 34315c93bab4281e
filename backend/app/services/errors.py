"""
Errors raised by the participation/submission lifecycle.

Kinds:
  - input        caller-correctable form data; surface verbatim
  - conflict     race or stale client view; re-fetch the decision, don't retry blindly
  - eligibility  live state no longer allows the command (window closed, not approved)
  - permission   actor lacks the capability for the command
  - not_found    referenced campaign, participation or submission does not exist
"""
from __future__ import annotations
from typing import Any


class LifecycleError(Exception):
    kind: str = "input"
    code: str = "lifecycle_error"
    status_code: int = 400

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.__class__.__doc__ or self.code
        super().__init__(self.detail)

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.detail, "code": self.code, "kind": self.kind}


class InvalidStateError(ValueError):
    """A record carries a status outside its enum. Programming error, never coerced."""


# ---------- input ----------

class FormValidationError(LifecycleError):
    """Submitted form is incomplete or inconsistent."""
    kind = "input"
    code = "validation_error"
    status_code = 422


class TimelineValidationError(FormValidationError):
    """Campaign dates violate ordering invariants."""
    code = "timeline_invalid"

    def __init__(self, violations: list):
        self.violations = violations
        super().__init__("; ".join(v.message for v in violations) or "Invalid campaign timeline")

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d["errors"] = [v.model_dump() for v in self.violations]
        return d


class InvalidScoreError(LifecycleError):
    """Score must be between 0 and 100."""
    kind = "input"
    code = "invalid_score"
    status_code = 422


class InvalidWindowError(LifecycleError):
    """Window bounds are malformed or inverted."""
    kind = "input"
    code = "invalid_window"
    status_code = 422


# ---------- conflict ----------

class DuplicateParticipationError(LifecycleError):
    """You have already requested to participate in this campaign."""
    kind = "conflict"
    code = "duplicate_participation"
    status_code = 409


class AlreadyReviewedError(LifecycleError):
    """Participation request has already been reviewed."""
    kind = "conflict"
    code = "already_reviewed"
    status_code = 409


class AlreadySubmittedError(LifecycleError):
    """A project has already been submitted for this campaign."""
    kind = "conflict"
    code = "already_submitted"
    status_code = 409


class AlreadyFinalizedError(LifecycleError):
    """Submission outcome is final and cannot be re-graded."""
    kind = "conflict"
    code = "already_finalized"
    status_code = 409


class PositionConflictError(LifecycleError):
    """Position is already held by another submission in this campaign."""
    kind = "conflict"
    code = "position_conflict"
    status_code = 409


class InvalidTransitionError(LifecycleError):
    """Status change is not allowed from the current status."""
    kind = "conflict"
    code = "invalid_transition"
    status_code = 409


# ---------- eligibility ----------

class CampaignClosedError(LifecycleError):
    """Campaign is not accepting participation requests."""
    kind = "eligibility"
    code = "campaign_closed"


class SubmissionWindowClosedError(LifecycleError):
    """Submission period is not open."""
    kind = "eligibility"
    code = "submission_window_closed"


class NotApprovedError(LifecycleError):
    """Participation must be approved before submitting a project."""
    kind = "eligibility"
    code = "not_approved"


class NotEligibleError(LifecycleError):
    """Only verified students can participate in campaigns."""
    kind = "eligibility"
    code = "not_eligible"


# ---------- permission ----------

class PermissionDeniedError(LifecycleError):
    """You are not allowed to perform this action."""
    kind = "permission"
    code = "permission_denied"
    status_code = 403


class NotFoundError(LifecycleError):
    """Record not found."""
    kind = "not_found"
    code = "not_found"
    status_code = 404
