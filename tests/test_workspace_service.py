from datetime import datetime, timedelta

import pytest

from devdash.exceptions import NotFoundError, ValidationError
from devdash.models.workspace_models import TimerMode
from devdash.services.workspace_service import PomodoroTimer, WorkspaceService, format_time


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, 9, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def workspace(db, clock):
    return WorkspaceService(db, clock=clock)


@pytest.mark.parametrize("seconds,expected", [
    (1500, "25:00"),
    (65, "01:05"),
    (0, "00:00"),
    (-3, "00:00"),
])
def test_format_time(seconds, expected):
    assert format_time(seconds) == expected


def test_notes_crud_and_ownership(workspace, clock):
    first = workspace.add_note("me", "first")
    clock.advance(1)
    second = workspace.add_note("me", "second")

    assert {note.id for note in workspace.list_notes("me")} == {first.id, second.id}

    updated = workspace.update_note("me", first.id, "edited")
    assert updated.content == "edited"

    with pytest.raises(NotFoundError):
        workspace.update_note("intruder", first.id, "hacked")
    with pytest.raises(NotFoundError):
        workspace.delete_note("intruder", first.id)

    workspace.delete_note("me", first.id)
    assert [note.id for note in workspace.list_notes("me")] == [second.id]


def test_blank_note_is_rejected(workspace):
    with pytest.raises(ValidationError):
        workspace.add_note("me", "   ")
    assert workspace.list_notes("me") == []


def test_goal_progress(workspace):
    assert workspace.goal_progress("me").percentage == 0

    goals = [workspace.add_goal("me", text) for text in ("one", "two", "three")]
    workspace.toggle_goal("me", goals[0].id)

    progress = workspace.goal_progress("me")
    assert progress.total == 3
    assert progress.completed == 1
    assert progress.percentage == 33

    workspace.toggle_goal("me", goals[1].id)
    assert workspace.goal_progress("me").percentage == 67

    workspace.toggle_goal("me", goals[1].id)
    workspace.delete_goal("me", goals[2].id)
    assert workspace.goal_progress("me").percentage == 50


def test_goal_progress_rounds_halves_up(workspace):
    goals = [workspace.add_goal("me", f"goal {n}") for n in range(8)]
    workspace.toggle_goal("me", goals[0].id)

    assert workspace.goal_progress("me").percentage == 13

    for goal in goals[1:3]:
        workspace.toggle_goal("me", goal.id)
    assert workspace.goal_progress("me").percentage == 38


def test_blank_goal_is_rejected(workspace):
    with pytest.raises(ValidationError):
        workspace.add_goal("me", "")


def test_timer_counts_down_from_wall_clock(clock):
    timer = PomodoroTimer(clock)
    assert timer.remaining_seconds == 25 * 60

    timer.start()
    clock.advance(90)
    assert timer.snapshot().display == "23:30"

    timer.pause()
    clock.advance(600)
    assert timer.remaining_seconds == 1410
    assert timer.is_running is False


def test_timer_stops_at_zero(clock):
    timer = PomodoroTimer(clock)
    timer.select_mode(TimerMode.SHORT_BREAK)
    timer.start()
    clock.advance(10 * 60)

    assert timer.remaining_seconds == 0
    assert timer.is_running is False

    # Nothing left to run
    timer.start()
    assert timer.is_running is False


def test_select_mode_resets_and_stops(clock):
    timer = PomodoroTimer(clock)
    timer.start()
    clock.advance(30)

    timer.select_mode(TimerMode.LONG_BREAK)

    assert timer.is_running is False
    assert timer.remaining_seconds == 15 * 60


def test_timer_actions(workspace, clock):
    state = workspace.timer_action("me", "toggle")
    assert state.is_running is True

    clock.advance(60)
    state = workspace.timer_action("me", "toggle")
    assert state.is_running is False
    assert state.display == "24:00"

    state = workspace.timer_action("me", "mode", TimerMode.SHORT_BREAK)
    assert state.display == "05:00"

    state = workspace.timer_action("me", "reset")
    assert state.remaining_seconds == 300

    with pytest.raises(ValidationError):
        workspace.timer_action("me", "explode")
    with pytest.raises(ValidationError):
        workspace.timer_action("me", "mode")


def test_timers_are_per_user(workspace):
    workspace.timer_action("me", "start")

    assert workspace.timer("me").is_running is True
    assert workspace.timer("you").is_running is False
