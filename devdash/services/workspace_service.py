"""
Personal workspace: notes, goals and the pomodoro timer.
"""

from datetime import datetime
from typing import Callable, Dict, List, Optional
import structlog

from ..database import GoalDB, NoteDB
from ..exceptions import ValidationError
from ..models.workspace_models import Goal, GoalProgress, Note, TimerMode, TimerState
from .database_service import DatabaseService

logger = structlog.get_logger(__name__)


def format_time(seconds: int) -> str:
    """Render seconds as ``MM:SS``."""
    minutes, secs = divmod(max(int(seconds), 0), 60)
    return f"{minutes:02d}:{secs:02d}"


def _to_note(row: NoteDB) -> Note:
    return Note(id=row.id, content=row.content, date=row.date, user_id=row.user_id)


def _to_goal(row: GoalDB) -> Goal:
    return Goal(id=row.id, text=row.text, completed=bool(row.completed), user_id=row.user_id)


class PomodoroTimer:
    """Countdown timer driven by wall-clock time rather than ticks."""

    def __init__(self, clock: Callable[[], datetime] = datetime.utcnow):
        self.clock = clock
        self.mode = TimerMode.POMODORO
        self._remaining = float(self.mode.duration)
        self._started_at: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self._started_at is not None

    @property
    def remaining_seconds(self) -> int:
        remaining = self._remaining
        if self._started_at is not None:
            remaining -= (self.clock() - self._started_at).total_seconds()
            if remaining <= 0:
                # Finished: stop where we are
                self._remaining = 0.0
                self._started_at = None
                return 0
        return int(round(remaining))

    def select_mode(self, mode: TimerMode) -> None:
        self.mode = mode
        self.reset()

    def start(self) -> None:
        if self.is_running or self.remaining_seconds <= 0:
            return
        self._started_at = self.clock()

    def pause(self) -> None:
        if not self.is_running:
            return
        self._remaining = float(self.remaining_seconds)
        self._started_at = None

    def toggle(self) -> None:
        if self.is_running:
            self.pause()
        else:
            self.start()

    def reset(self) -> None:
        self._remaining = float(self.mode.duration)
        self._started_at = None

    def snapshot(self) -> TimerState:
        remaining = self.remaining_seconds
        return TimerState(
            mode=self.mode,
            remaining_seconds=remaining,
            is_running=self.is_running,
            display=format_time(remaining),
            started_at=self._started_at,
        )


class WorkspaceService:
    """Notes and goals for one owner, plus per-user timers kept in memory."""

    def __init__(self, db: DatabaseService, timers: Optional[Dict[str, PomodoroTimer]] = None,
                 clock: Callable[[], datetime] = datetime.utcnow):
        self.db = db
        self.timers = timers if timers is not None else {}
        self.clock = clock

    # Notes

    def list_notes(self, user_id: str) -> List[Note]:
        return [_to_note(row) for row in self.db.list_notes(user_id)]

    def add_note(self, user_id: str, content: str) -> Note:
        if not (content or "").strip():
            raise ValidationError("Note content cannot be empty")
        note = _to_note(self.db.add_note(user_id, content))
        logger.info("Note added", user_id=user_id, note_id=note.id)
        return note

    def update_note(self, user_id: str, note_id: str, content: str) -> Note:
        return _to_note(self.db.update_note(user_id, note_id, content))

    def delete_note(self, user_id: str, note_id: str) -> None:
        self.db.delete_note(user_id, note_id)
        logger.info("Note deleted", user_id=user_id, note_id=note_id)

    # Goals

    def list_goals(self, user_id: str) -> List[Goal]:
        return [_to_goal(row) for row in self.db.list_goals(user_id)]

    def add_goal(self, user_id: str, text: str) -> Goal:
        if not (text or "").strip():
            raise ValidationError("Goal text cannot be empty")
        goal = _to_goal(self.db.add_goal(user_id, text))
        logger.info("Goal added", user_id=user_id, goal_id=goal.id)
        return goal

    def toggle_goal(self, user_id: str, goal_id: str) -> Goal:
        current = self.db.get_goal(user_id, goal_id)
        return _to_goal(self.db.set_goal_completed(user_id, goal_id, not current.completed))

    def delete_goal(self, user_id: str, goal_id: str) -> None:
        self.db.delete_goal(user_id, goal_id)
        logger.info("Goal deleted", user_id=user_id, goal_id=goal_id)

    def goal_progress(self, user_id: str) -> GoalProgress:
        goals = self.list_goals(user_id)
        completed = sum(1 for goal in goals if goal.completed)
        # Halves round up
        percentage = int(completed * 100 / len(goals) + 0.5) if goals else 0
        return GoalProgress(total=len(goals), completed=completed, percentage=percentage)

    # Timer

    def timer(self, user_id: str) -> PomodoroTimer:
        timer = self.timers.get(user_id)
        if timer is None:
            timer = self.timers[user_id] = PomodoroTimer(self.clock)
        return timer

    def timer_action(self, user_id: str, action: str, mode: Optional[TimerMode] = None) -> TimerState:
        """Apply ``start``, ``pause``, ``toggle``, ``reset`` or ``mode``."""
        timer = self.timer(user_id)
        if action == "mode":
            if mode is None:
                raise ValidationError("A timer mode is required")
            timer.select_mode(mode)
        elif action in ("start", "pause", "toggle", "reset"):
            getattr(timer, action)()
        else:
            raise ValidationError(f"Unknown timer action: {action}")
        return timer.snapshot()
