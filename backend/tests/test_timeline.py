from __future__ import annotations
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from app.schemas.campaign import CampaignDates
from app.services.time_windows import WindowPhase
from app.services.timeline import days_left, errors_only, milestones, runtime_state, validate_timeline

T0 = datetime(2026, 3, 1, tzinfo=timezone.utc)
DAY = timedelta(days=1)


def _dates(**kw):
    fields = dict(
        start_date=T0,
        end_date=T0 + 60 * DAY,
        registration_start_date=T0,
        registration_end_date=T0 + 10 * DAY,
        submission_start_date=T0 + 10 * DAY,
        submission_end_date=T0 + 40 * DAY,
        results_announcement_date=T0 + 45 * DAY,
        award_distribution_date=T0 + 50 * DAY,
    )
    fields.update(kw)
    return CampaignDates(**fields)


def _codes(violations):
    return {v.code for v in violations}


def test_well_ordered_timeline_has_no_violations():
    assert validate_timeline(_dates()) == []


def test_start_and_end_are_required():
    violations = validate_timeline(CampaignDates())
    assert {(v.field, v.code) for v in violations} == {("start_date", "required"), ("end_date", "required")}


def test_all_violations_are_collected():
    violations = validate_timeline(_dates(
        end_date=T0 - DAY,
        registration_end_date=T0 - 2 * DAY,
        submission_end_date=T0 + 5 * DAY,
    ))
    assert {"end_before_start", "registration_end_before_start", "submission_end_before_start"} <= _codes(violations)


def test_registration_may_not_outlast_the_campaign():
    violations = validate_timeline(_dates(registration_end_date=T0 + 61 * DAY, submission_start_date=T0 + 61 * DAY,
                                          submission_end_date=T0 + 62 * DAY))
    assert "registration_after_campaign" in _codes(violations)
    # closing exactly at the end is fine
    assert "registration_after_campaign" not in _codes(validate_timeline(_dates(registration_end_date=T0 + 60 * DAY,
                                                                               submission_start_date=T0 + 60 * DAY)))


def test_submission_opening_before_registration_closes():
    dates = _dates(submission_start_date=T0 + 5 * DAY)
    strict = validate_timeline(dates)
    lenient = validate_timeline(dates, strict_window_order=False)
    assert [(v.code, v.severity) for v in strict] == [("submission_before_registration_closes", "error")]
    assert [(v.code, v.severity) for v in lenient] == [("submission_before_registration_closes", "warning")]
    assert errors_only(lenient) == []


def test_late_milestones_are_warnings():
    violations = validate_timeline(_dates(results_announcement_date=T0 + 30 * DAY, award_distribution_date=T0 + 20 * DAY))
    assert _codes(violations) == {"results_before_submission_closes", "awards_before_results"}
    assert errors_only(violations) == []


def test_unparsable_dates_are_reported_once():
    raw = SimpleNamespace(start_date="soon", end_date="2026-05-01T00:00:00Z")
    violations = validate_timeline(raw)
    assert [(v.field, v.code) for v in violations] == [("start_date", "invalid_date")]


def _campaign(status="active", **kw):
    fields = dict(status=status, start_date=T0, end_date=T0 + 30 * DAY,
                  registration_start_date=T0, registration_end_date=T0 + 5 * DAY,
                  submission_start_date=None, submission_end_date=None,
                  results_announcement_date=T0 + 35 * DAY, award_distribution_date=None)
    fields.update(kw)
    return SimpleNamespace(**fields)


def test_runtime_state():
    assert runtime_state(_campaign(), T0 - DAY) == "upcoming"
    assert runtime_state(_campaign(), T0 + DAY) == "running"
    assert runtime_state(_campaign(), T0 + 31 * DAY) == "ended"
    for status in ("draft", "completed", "cancelled"):
        assert runtime_state(_campaign(status), T0 + DAY) == status


def test_milestones():
    ms = {m.name: m for m in milestones(_campaign(), T0 + 7 * DAY)}
    assert list(ms) == ["campaign", "registration", "submission", "results_announcement", "award_distribution"]
    assert ms["campaign"].phase is WindowPhase.DURING
    assert ms["registration"].phase is WindowPhase.AFTER
    assert ms["submission"].phase is WindowPhase.NO_WINDOW
    assert ms["results_announcement"].phase is WindowPhase.BEFORE
    assert ms["results_announcement"].starts_at == T0 + 35 * DAY
    assert ms["award_distribution"].phase is WindowPhase.NO_WINDOW


def test_days_left_rounds_up_and_stops_at_zero():
    end = T0 + 3 * DAY
    assert days_left(end, T0) == 3
    assert days_left(end, T0 + timedelta(hours=1)) == 3
    assert days_left(end, end) == 0
    assert days_left(end, end + DAY) == 0
    assert days_left(None, T0) == 0
