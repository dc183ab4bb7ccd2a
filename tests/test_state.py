"""Tests for the lifecycle state machine."""

import pytest

from cms_migrator.exceptions import IllegalTransitionError
from cms_migrator.models.entities import DashboardItem, PressRelease
from cms_migrator.models.state import REVERT_LIFECYCLE, STANDARD_LIFECYCLE, State


@pytest.fixture()
def release() -> PressRelease:
    return PressRelease(href="https://cms.example.com/news/1", title="Q1 Results")


def test_walks_forward_one_step_at_a_time(release):
    lifecycle = release.lifecycle
    assert lifecycle is STANDARD_LIFECYCLE
    for target in (State.INDEX, State.DETAILS, State.CREATED):
        lifecycle.advance(release, target)
        assert release.state is target


@pytest.mark.parametrize(
    ("start", "target"),
    [
        (State.UNINITIALIZED, State.DETAILS),
        (State.INDEX, State.CREATED),
        (State.DETAILS, State.INDEX),
        (State.CREATED, State.DETAILS),
        (State.INDEX, State.REVERTED),
    ],
)
def test_illegal_transitions_raise(release, start, target):
    release.state = start
    with pytest.raises(IllegalTransitionError):
        release.lifecycle.advance(release, target)
    assert release.state is start


def test_fail_records_message_and_previous_state(release):
    release.state = State.DETAILS
    release.lifecycle.fail(release, "Headline is required.")
    assert release.state is State.ERROR
    assert release.error_state is State.DETAILS
    assert release.error_message == "Headline is required."


def test_error_is_terminal_within_a_run(release):
    release.state = State.INDEX
    release.lifecycle.fail(release, "timeout")
    with pytest.raises(IllegalTransitionError):
        release.lifecycle.advance(release, State.DETAILS)
    with pytest.raises(IllegalTransitionError):
        release.lifecycle.fail(release, "again")


def test_created_cannot_fail(release):
    release.state = State.CREATED
    with pytest.raises(IllegalTransitionError):
        release.lifecycle.fail(release, "late error")


def test_resume_restores_failed_state(release):
    release.state = State.DETAILS
    release.lifecycle.fail(release, "banner said no")
    assert release.lifecycle.resume(release) is True
    assert release.state is State.DETAILS
    assert release.error_state is None
    assert release.error_message is None
    assert "errorState" not in release.to_dict()
    assert "errorMessage" not in release.to_dict()
    assert release.lifecycle.resume(release) is False


def test_has_reached(release):
    release.state = State.DETAILS
    assert release.lifecycle.has_reached(release, State.INDEX)
    assert release.lifecycle.has_reached(release, State.DETAILS)
    assert not release.lifecycle.has_reached(release, State.CREATED)
    release.state = State.ERROR
    assert not release.lifecycle.has_reached(release, State.INDEX)


def test_dashboard_items_use_the_revert_lifecycle():
    item = DashboardItem(href="https://cms.example.com/dashboard/9", title="Pending edit")
    assert item.lifecycle is REVERT_LIFECYCLE
    item.lifecycle.advance(item, State.INDEX)
    with pytest.raises(IllegalTransitionError):
        item.lifecycle.advance(item, State.DETAILS)
    item.lifecycle.advance(item, State.REVERTED)
    assert item.state is State.REVERTED
