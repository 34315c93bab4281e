from __future__ import annotations
import uuid
from types import SimpleNamespace
from app.services import lifecycle
from app.services.errors import InvalidStateError, InvalidTransitionError
import pytest


@pytest.mark.parametrize("current,target", [
    ("not_submitted", "submitted"),
    ("submitted", "under_review"),
    ("submitted", "winner"),
    ("under_review", "graded"),
    ("under_review", "not_selected"),
    ("graded", "graded"),
    ("graded", "runner_up"),
])
def test_allowed_submission_transitions(current, target):
    assert lifecycle.can_transition(current, target)
    lifecycle.validate_transition(current, target)


@pytest.mark.parametrize("current,target", [
    ("submitted", "submitted"),
    ("under_review", "submitted"),
    ("graded", "under_review"),
    ("winner", "graded"),
    ("runner_up", "winner"),
    ("not_selected", "graded"),
    ("not_submitted", "graded"),
])
def test_rejected_submission_transitions(current, target):
    assert not lifecycle.can_transition(current, target)
    with pytest.raises(InvalidTransitionError):
        lifecycle.validate_transition(current, target)


def test_status_never_moves_backward():
    for current, targets in lifecycle.VALID_TRANSITIONS.items():
        for target in targets:
            assert lifecycle.STAGE[target] >= lifecycle.STAGE[current], (current, target)


def test_final_outcomes_are_terminal():
    for status in lifecycle.FINAL_SUBMISSION_STATUSES:
        assert lifecycle.VALID_TRANSITIONS[status] == frozenset()


def test_unknown_status_is_a_state_error():
    with pytest.raises(InvalidStateError):
        lifecycle.can_transition("archived", "graded")


def test_campaign_transitions():
    lifecycle.validate_campaign_transition("draft", "active")
    lifecycle.validate_campaign_transition("active", "completed")
    lifecycle.validate_campaign_transition("active", "active")
    with pytest.raises(InvalidTransitionError):
        lifecycle.validate_campaign_transition("active", "draft")
    with pytest.raises(InvalidTransitionError):
        lifecycle.validate_campaign_transition("cancelled", "active")


def test_reviewer_is_admin_or_campaign_creator():
    creator = SimpleNamespace(id=uuid.uuid4(), role="institution")
    campaign = SimpleNamespace(created_by=creator.id)
    assert lifecycle.is_reviewer(SimpleNamespace(id=uuid.uuid4(), role="admin"), campaign)
    assert lifecycle.is_reviewer(creator, campaign)
    assert not lifecycle.is_reviewer(SimpleNamespace(id=uuid.uuid4(), role="student"), campaign)
    assert not lifecycle.is_reviewer(None, campaign)
