"""
Pydantic models for the personal workspace: notes, goals and the pomodoro timer.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel


class Note(BaseModel):
    id: str
    content: str
    date: datetime
    user_id: str


class NoteRequest(BaseModel):
    content: str


class Goal(BaseModel):
    id: str
    text: str
    completed: bool = False
    user_id: str


class GoalRequest(BaseModel):
    text: str


class GoalProgress(BaseModel):
    total: int = 0
    completed: int = 0
    percentage: int = 0


class TimerMode(str, Enum):
    """Pomodoro timer tabs and their lengths in seconds."""
    POMODORO = "pomodoro"
    SHORT_BREAK = "short"
    LONG_BREAK = "long"

    @property
    def duration(self) -> int:
        return {
            TimerMode.POMODORO: 25 * 60,
            TimerMode.SHORT_BREAK: 5 * 60,
            TimerMode.LONG_BREAK: 15 * 60,
        }[self]


class TimerState(BaseModel):
    """Snapshot of a user's timer."""
    mode: TimerMode = TimerMode.POMODORO
    remaining_seconds: int = TimerMode.POMODORO.duration
    is_running: bool = False
    display: str = "25:00"
    started_at: Optional[datetime] = None
