from __future__ import annotations
from datetime import datetime
from math import ceil
from typing import Literal

from pydantic import BaseModel

from app.services.errors import InvalidWindowError
from app.services.time_windows import WindowPhase, classify, to_utc

Severity = Literal["error", "warning"]
RuntimeState = Literal["draft", "upcoming", "running", "ended", "completed", "cancelled"]

DATE_FIELDS = (
    "start_date",
    "end_date",
    "registration_start_date",
    "registration_end_date",
    "submission_start_date",
    "submission_end_date",
    "results_announcement_date",
    "award_distribution_date",
)


class TimelineViolation(BaseModel):
    field: str
    code: str
    message: str
    severity: Severity = "error"


class Milestone(BaseModel):
    name: str
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    phase: WindowPhase


def validate_timeline(dates, *, strict_window_order: bool = True) -> list[TimelineViolation]:
    """
    Check every date-ordering rule of a campaign and return all violations.

    `dates` is anything exposing the campaign date attributes (ORM row, pydantic
    payload). Nothing is raised for bad data; unparsable values come back as
    `invalid_date` violations so a form can show every problem at once.

    Rules:
      - start_date and end_date are required, start_date < end_date
      - registration_start_date < registration_end_date when both are set
      - the registration window does not run past end_date
      - submission_start_date < submission_end_date when both are set
      - submission opens no earlier than registration closes
        (error when strict_window_order, warning otherwise)
      - results are announced after submissions close, awards after results (warnings)
    """
    out: list[TimelineViolation] = []
    d: dict[str, datetime | None] = {}
    for name in DATE_FIELDS:
        raw = getattr(dates, name, None)
        if raw is None:
            d[name] = None
            continue
        try:
            d[name] = to_utc(raw, name)
        except InvalidWindowError as e:
            d[name] = None
            out.append(TimelineViolation(field=name, code="invalid_date", message=e.detail))

    invalid = {v.field for v in out}

    def _missing(name: str, label: str):
        if d[name] is None and name not in invalid:
            out.append(TimelineViolation(field=name, code="required", message=f"{label} is required."))

    _missing("start_date", "Start date")
    _missing("end_date", "End date")

    def _order(first: str, second: str, code: str, message: str, severity: Severity = "error", strict: bool = True):
        a, b = d[first], d[second]
        if a is None or b is None:
            return
        if a < b or (not strict and a == b):
            return
        out.append(TimelineViolation(field=second, code=code, message=message, severity=severity))

    _order("start_date", "end_date", "end_before_start", "End date must be after start date.")
    _order("registration_start_date", "registration_end_date", "registration_end_before_start",
           "Registration end date must be after registration start date.")
    _order("registration_end_date", "end_date", "registration_after_campaign",
           "Registration must close before the campaign ends.", strict=False)
    if d["registration_end_date"] is None:
        _order("registration_start_date", "end_date", "registration_after_campaign",
               "Registration must open before the campaign ends.")
    _order("submission_start_date", "submission_end_date", "submission_end_before_start",
           "Submission end date must be after submission start date.")
    _order("registration_end_date", "submission_start_date", "submission_before_registration_closes",
           "Submissions should not open before registration closes.",
           severity="error" if strict_window_order else "warning", strict=False)
    _order("submission_end_date", "results_announcement_date", "results_before_submission_closes",
           "Results are announced before submissions close.", severity="warning", strict=False)
    _order("results_announcement_date", "award_distribution_date", "awards_before_results",
           "Awards are distributed before results are announced.", severity="warning", strict=False)
    return out


def errors_only(violations: list[TimelineViolation]) -> list[TimelineViolation]:
    return [v for v in violations if v.severity == "error"]


def runtime_state(campaign, now: datetime) -> RuntimeState:
    if campaign.status in ("draft", "completed", "cancelled"):
        return campaign.status
    phase = classify(now, campaign.start_date, campaign.end_date)
    if phase is WindowPhase.BEFORE:
        return "upcoming"
    if phase is WindowPhase.AFTER:
        return "ended"
    return "running"


def milestones(campaign, now: datetime) -> list[Milestone]:
    """Registration, submission, results and award milestones as shown on a campaign page."""
    def _window(name: str, start, end) -> Milestone:
        return Milestone(
            name=name,
            starts_at=to_utc(start) if start is not None else None,
            ends_at=to_utc(end) if end is not None else None,
            phase=classify(now, start, end),
        )

    def _point(name: str, at) -> Milestone:
        # a single date is reached once now passes it
        return _window(name, at, None)

    return [
        _window("campaign", campaign.start_date, campaign.end_date),
        _window("registration", campaign.registration_start_date, campaign.registration_end_date),
        _window("submission", campaign.submission_start_date, campaign.submission_end_date),
        _point("results_announcement", campaign.results_announcement_date),
        _point("award_distribution", campaign.award_distribution_date),
    ]


def days_left(end, now: datetime) -> int:
    """Whole days until `end`, rounded up; 0 once it has passed or when there is no end."""
    if end is None:
        return 0
    seconds = (to_utc(end) - to_utc(now)).total_seconds()
    return max(0, ceil(seconds / 86400))
