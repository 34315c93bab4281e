from __future__ import annotations
from types import SimpleNamespace
import pytest
import pytest_asyncio
from app.models.participation import Participation
from app.models.submission import Submission
from app.schemas.submission import GradeSubmission, ProjectLinks, SubmissionCreate
from app.services.eligibility import DecisionKind, decide
from app.services.errors import (
    AlreadyFinalizedError, AlreadySubmittedError, CampaignClosedError, FormValidationError, InvalidScoreError,
    InvalidTransitionError, NotApprovedError, PermissionDeniedError, PositionConflictError,
    SubmissionWindowClosedError,
)
from app.services import submissions
from app.services.submissions import (
    check_grade, grade_submission, list_submissions, start_review, status_counts, submit_project,
)
from conftest import DAY, NOW


def _project(**kw) -> SubmissionCreate:
    fields = dict(
        project_title="  Solar Sentinel ",
        project_description="Tracks panel output across campus buildings",
        project_screenshots=["https://img.example.com/1.png", "  "],
        project_links=ProjectLinks(github_url="https://github.com/example/solar"),
    )
    fields.update(kw)
    return SubmissionCreate(**fields)


async def _reload(sessionmaker, model, pk):
    async with sessionmaker() as s:
        return await s.get(model, pk)


@pytest_asyncio.fixture
async def world(make_user, make_campaign, make_participation):
    """An active campaign with an open submission window and one approved student."""
    admin, student = await make_user("admin"), await make_user()
    campaign = await make_campaign(admin, submission_start_date=NOW - DAY, submission_end_date=NOW + 10 * DAY,
                                   prizes_json={"1": "$1000", "2": "$500", "3": "$250"})
    participation = await make_participation(student, campaign)
    return SimpleNamespace(admin=admin, student=student, campaign=campaign, participation=participation)


async def _entry(world, make_user, make_participation, session):
    """Another approved student with a submitted project in the same campaign."""
    student = await make_user()
    await make_participation(student, world.campaign)
    return await submit_project(session, student, world.campaign.id, _project(project_title="Wind Watch"), now=NOW)


# ---------- submit ----------

@pytest.mark.asyncio
async def test_submit_moves_the_mirror_with_the_submission(session, sessionmaker, world):
    s = await submit_project(session, world.student, world.campaign.id, _project(), now=NOW)

    assert s.status == "submitted"
    assert s.project_title == "Solar Sentinel"
    assert s.project_screenshots == ["https://img.example.com/1.png"]
    assert s.project_links == {"github_url": "https://github.com/example/solar"}
    assert s.score is None and s.position is None

    p = await _reload(sessionmaker, Participation, world.participation.id)
    assert p.submission_status == "submitted"
    d = decide(world.student, world.campaign, p, s, now=NOW)
    assert d.kind is DecisionKind.UNDER_REVIEW


@pytest.mark.asyncio
async def test_second_submit_is_rejected(session, sessionmaker, world):
    await submit_project(session, world.student, world.campaign.id, _project(), now=NOW)
    with pytest.raises(AlreadySubmittedError):
        await submit_project(session, world.student, world.campaign.id, _project(project_title="Again"), now=NOW)
    assert len(await list_submissions(session, world.campaign.id)) == 1


@pytest.mark.asyncio
async def test_submit_needs_an_approved_participation(session, make_user, make_participation, world):
    stranger = await make_user()
    with pytest.raises(NotApprovedError):
        await submit_project(session, stranger, world.campaign.id, _project(), now=NOW)
    await make_participation(stranger, world.campaign, "pending")
    with pytest.raises(NotApprovedError):
        await submit_project(session, stranger, world.campaign.id, _project(), now=NOW)


@pytest.mark.asyncio
async def test_submit_after_window_closed(session, sessionmaker, make_user, make_campaign, make_participation):
    admin, student = await make_user("admin"), await make_user()
    campaign = await make_campaign(admin, submission_start_date=NOW - 10 * DAY, submission_end_date=NOW - DAY)
    p = await make_participation(student, campaign)

    with pytest.raises(SubmissionWindowClosedError) as exc:
        await submit_project(session, student, campaign.id, _project(), now=NOW)
    assert "ended" in exc.value.detail
    assert await list_submissions(session, campaign.id) == []
    assert (await _reload(sessionmaker, Participation, p.id)).submission_status == "not_submitted"


@pytest.mark.asyncio
async def test_submit_in_completed_campaign(session, make_user, make_campaign, make_participation):
    admin, student = await make_user("admin"), await make_user()
    campaign = await make_campaign(admin, status="completed")
    await make_participation(student, campaign)
    with pytest.raises(CampaignClosedError):
        await submit_project(session, student, campaign.id, _project(), now=NOW)


@pytest.mark.asyncio
async def test_submit_rejects_blank_fields(session, sessionmaker, world):
    with pytest.raises(FormValidationError):
        await submit_project(session, world.student, world.campaign.id, _project(project_description="  "), now=NOW)
    assert (await _reload(sessionmaker, Participation, world.participation.id)).submission_status == "not_submitted"


# ---------- review ----------

@pytest.mark.asyncio
async def test_start_review(session, sessionmaker, world):
    s = await submit_project(session, world.student, world.campaign.id, _project(), now=NOW)

    s = await start_review(session, world.admin, s.id, now=NOW)
    assert s.status == "under_review"
    assert (await _reload(sessionmaker, Participation, world.participation.id)).submission_status == "under_review"

    with pytest.raises(InvalidTransitionError):
        await start_review(session, world.admin, s.id, now=NOW)


@pytest.mark.asyncio
async def test_students_cannot_review(session, world):
    s = await submit_project(session, world.student, world.campaign.id, _project(), now=NOW)
    with pytest.raises(PermissionDeniedError):
        await start_review(session, world.student, s.id, now=NOW)
    with pytest.raises(PermissionDeniedError):
        await grade_submission(session, world.student, s.id, GradeSubmission(score=99, grade="A+"), now=NOW)


# ---------- grade ----------

@pytest.mark.asyncio
async def test_grade_records_everything_and_mirrors(session, sessionmaker, world):
    s = await submit_project(session, world.student, world.campaign.id, _project(), now=NOW)

    s = await grade_submission(session, world.admin, s.id,
                               GradeSubmission(score=91.5, grade="A", feedback=" Solid work ", prize_amount=500),
                               now=NOW)
    assert (s.status, s.score, s.grade, s.feedback) == ("graded", 91.5, "A", "Solid work")
    assert s.graded_by == world.admin.id
    assert s.prize_amount == 500
    assert (await _reload(sessionmaker, Participation, world.participation.id)).submission_status == "graded"


@pytest.mark.asyncio
async def test_out_of_range_score_changes_nothing(session, sessionmaker, world):
    s = await submit_project(session, world.student, world.campaign.id, _project(), now=NOW)
    before = await _reload(sessionmaker, Submission, s.id)

    with pytest.raises(InvalidScoreError):
        await grade_submission(session, world.admin, s.id, GradeSubmission(score=150, grade="A"), now=NOW)

    after = await _reload(sessionmaker, Submission, s.id)
    for field in ("status", "score", "grade", "feedback", "position", "prize_amount", "graded_at", "graded_by"):
        assert getattr(after, field) == getattr(before, field), field
    assert (await _reload(sessionmaker, Participation, world.participation.id)).submission_status == "submitted"


@pytest.mark.asyncio
async def test_regrading_is_allowed_until_an_outcome_is_final(session, sessionmaker, world):
    s = await submit_project(session, world.student, world.campaign.id, _project(), now=NOW)
    await grade_submission(session, world.admin, s.id, GradeSubmission(score=70, grade="B"), now=NOW)
    s = await grade_submission(session, world.admin, s.id, GradeSubmission(score=88, grade="B+"), now=NOW)
    assert (s.status, s.score) == ("graded", 88)

    s = await grade_submission(session, world.admin, s.id, GradeSubmission(score=95, grade="A+", status="winner"), now=NOW)
    assert (s.status, s.position) == ("winner", 1)

    with pytest.raises(AlreadyFinalizedError):
        await grade_submission(session, world.admin, s.id, GradeSubmission(score=10, grade="F"), now=NOW)
    final = await _reload(sessionmaker, Submission, s.id)
    assert (final.status, final.score, final.grade) == ("winner", 95, "A+")


@pytest.mark.asyncio
async def test_podium_position_is_exclusive(session, sessionmaker, make_user, make_participation, world):
    a = await submit_project(session, world.student, world.campaign.id, _project(), now=NOW)
    b = await _entry(world, make_user, make_participation, session)
    await grade_submission(session, world.admin, a.id, GradeSubmission(score=97, grade="A+", status="winner"), now=NOW)

    with pytest.raises(PositionConflictError):
        await grade_submission(session, world.admin, b.id,
                               GradeSubmission(score=96, grade="A+", status="winner", position=1), now=NOW)
    with pytest.raises(PositionConflictError):
        await grade_submission(session, world.admin, b.id, GradeSubmission(score=96, grade="A", position=1), now=NOW)

    b_after = await _reload(sessionmaker, Submission, b.id)
    assert (b_after.status, b_after.position, b_after.score) == ("submitted", None, None)

    b_after = await grade_submission(session, world.admin, b.id,
                                     GradeSubmission(score=90, grade="A", status="runner_up"), now=NOW)
    assert b_after.position == 2


@pytest.mark.asyncio
async def test_status_counts_on_the_board(session, make_user, make_participation, world):
    a = await submit_project(session, world.student, world.campaign.id, _project(), now=NOW)
    await _entry(world, make_user, make_participation, session)
    await start_review(session, world.admin, a.id, now=NOW)

    everything = await list_submissions(session, world.campaign.id)
    counts = status_counts(everything)
    assert counts["all"] == 2
    assert counts["submitted"] == 1 and counts["under_review"] == 1
    assert counts["winner"] == 0
    assert [s.status for s in await list_submissions(session, world.campaign.id, "under_review")] == ["under_review"]


# ---------- grading rules ----------

@pytest.mark.parametrize("score", [-0.1, 100.01, 150])
def test_score_outside_range(score):
    with pytest.raises(InvalidScoreError):
        check_grade(GradeSubmission(score=score, grade="A"))


def test_score_edges_are_valid():
    assert check_grade(GradeSubmission(score=0, grade="F")) is None
    assert check_grade(GradeSubmission(score=100, grade="A+")) is None


@pytest.mark.parametrize("status,position,expected", [
    ("winner", None, 1),
    ("winner", 1, 1),
    ("runner_up", None, 2),
    ("runner_up", 3, 3),
    ("graded", 2, 2),
    ("not_selected", None, None),
])
def test_outcome_positions(status, position, expected):
    assert check_grade(GradeSubmission(score=80, grade="B", status=status, position=position)) == expected


@pytest.mark.parametrize("status,position", [
    ("winner", 2),
    ("runner_up", 1),
    ("runner_up", 4),
    ("not_selected", 3),
    ("graded", 4),
    ("graded", 0),
])
def test_outcome_position_mismatch(status, position):
    with pytest.raises(FormValidationError):
        check_grade(GradeSubmission(score=80, grade="B", status=status, position=position))


def test_unknown_letter_grade():
    with pytest.raises(FormValidationError):
        check_grade(SimpleNamespace(score=80, grade="Z", status="graded", position=None))


# ---------- stale pre-checks ----------

@pytest.mark.asyncio
async def test_unique_submission_settles_a_stale_duplicate_check(session, sessionmaker, world, monkeypatch):
    await submit_project(session, world.student, world.campaign.id, _project(), now=NOW)

    # A second request that read before the first one committed sees nothing submitted
    async def _stale(*args, **kwargs):
        return False
    monkeypatch.setattr(submissions, "_has_submission", _stale)

    async with sessionmaker() as other:
        with pytest.raises(AlreadySubmittedError):
            await submit_project(other, world.student, world.campaign.id, _project(project_title="Again"), now=NOW)

    rows = await list_submissions(session, world.campaign.id)
    assert [s.project_title for s in rows] == ["Solar Sentinel"]
    assert (await _reload(sessionmaker, Participation, world.participation.id)).submission_status == "submitted"


@pytest.mark.asyncio
async def test_unique_position_settles_a_stale_holder_check(session, sessionmaker, make_user, make_participation, world,
                                                            monkeypatch):
    a = await submit_project(session, world.student, world.campaign.id, _project(), now=NOW)
    b = await _entry(world, make_user, make_participation, session)
    await grade_submission(session, world.admin, a.id, GradeSubmission(score=97, grade="A+", status="winner"), now=NOW)
    a_before = await _reload(sessionmaker, Submission, a.id)

    # The second grader looked for a position-1 holder before the first one committed
    async def _no_holder(*args, **kwargs):
        return None
    monkeypatch.setattr(submissions, "_position_holder", _no_holder)

    async with sessionmaker() as other:
        with pytest.raises(PositionConflictError):
            await grade_submission(other, world.admin, b.id,
                                   GradeSubmission(score=96, grade="A+", status="winner"), now=NOW)

    a_after = await _reload(sessionmaker, Submission, a.id)
    assert (a_after.status, a_after.position, a_after.score) == (a_before.status, a_before.position, a_before.score)
    b_after = await _reload(sessionmaker, Submission, b.id)
    assert (b_after.status, b_after.position, b_after.score, b_after.graded_by) == ("submitted", None, None, None)
    assert sum(s.position == 1 for s in await list_submissions(session, world.campaign.id)) == 1


@pytest.mark.asyncio
async def test_grading_a_stale_submission_changes_nothing(session, sessionmaker, world, monkeypatch):
    s = await submit_project(session, world.student, world.campaign.id, _project(), now=NOW)
    stale = SimpleNamespace(id=s.id, status="submitted", campaign_id=s.campaign_id,
                            participation_id=s.participation_id, user_id=s.user_id)
    await grade_submission(session, world.admin, s.id, GradeSubmission(score=90, grade="A", status="winner"), now=NOW)

    # The second grader still holds the row as it was before the first grade committed
    async def _stale_load(*args, **kwargs):
        return stale, world.campaign
    monkeypatch.setattr(submissions, "_load_for_reviewer", _stale_load)

    async with sessionmaker() as other:
        with pytest.raises(AlreadyFinalizedError):
            await grade_submission(other, world.admin, s.id, GradeSubmission(score=40, grade="D"), now=NOW)

    after = await _reload(sessionmaker, Submission, s.id)
    assert (after.status, after.score, after.grade, after.position) == ("winner", 90, "A", 1)
    assert (await _reload(sessionmaker, Participation, world.participation.id)).submission_status == "winner"
