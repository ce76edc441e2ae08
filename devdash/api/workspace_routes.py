"""
Workspace routes: notes, goals and the pomodoro timer.
"""

from typing import List, Optional
import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..auth.dependencies import get_current_user, get_workspace_service
from ..database import UserDB
from ..models.workspace_models import (
    Goal, GoalProgress, GoalRequest, Note, NoteRequest, TimerMode, TimerState
)
from ..services.workspace_service import WorkspaceService

logger = structlog.get_logger(__name__)
router = APIRouter()


class TimerAction(BaseModel):
    """``start``, ``pause``, ``toggle``, ``reset`` or ``mode``."""
    action: str
    mode: Optional[TimerMode] = None


@router.get("/notes", response_model=List[Note])
async def list_notes(
    user: UserDB = Depends(get_current_user),
    workspace: WorkspaceService = Depends(get_workspace_service)
):
    """The user's notes, newest first."""
    return workspace.list_notes(user.id)


@router.post("/notes", response_model=Note, status_code=201)
async def add_note(
    request: NoteRequest,
    user: UserDB = Depends(get_current_user),
    workspace: WorkspaceService = Depends(get_workspace_service)
):
    return workspace.add_note(user.id, request.content)


@router.put("/notes/{note_id}", response_model=Note)
async def update_note(
    note_id: str,
    request: NoteRequest,
    user: UserDB = Depends(get_current_user),
    workspace: WorkspaceService = Depends(get_workspace_service)
):
    return workspace.update_note(user.id, note_id, request.content)


@router.delete("/notes/{note_id}", status_code=204)
async def delete_note(
    note_id: str,
    user: UserDB = Depends(get_current_user),
    workspace: WorkspaceService = Depends(get_workspace_service)
):
    workspace.delete_note(user.id, note_id)


@router.get("/goals", response_model=List[Goal])
async def list_goals(
    user: UserDB = Depends(get_current_user),
    workspace: WorkspaceService = Depends(get_workspace_service)
):
    return workspace.list_goals(user.id)


@router.get("/goals/progress", response_model=GoalProgress)
async def goal_progress(
    user: UserDB = Depends(get_current_user),
    workspace: WorkspaceService = Depends(get_workspace_service)
):
    """Completed goals as a rounded percentage."""
    return workspace.goal_progress(user.id)


@router.post("/goals", response_model=Goal, status_code=201)
async def add_goal(
    request: GoalRequest,
    user: UserDB = Depends(get_current_user),
    workspace: WorkspaceService = Depends(get_workspace_service)
):
    return workspace.add_goal(user.id, request.text)


@router.post("/goals/{goal_id}/toggle", response_model=Goal)
async def toggle_goal(
    goal_id: str,
    user: UserDB = Depends(get_current_user),
    workspace: WorkspaceService = Depends(get_workspace_service)
):
    return workspace.toggle_goal(user.id, goal_id)


@router.delete("/goals/{goal_id}", status_code=204)
async def delete_goal(
    goal_id: str,
    user: UserDB = Depends(get_current_user),
    workspace: WorkspaceService = Depends(get_workspace_service)
):
    workspace.delete_goal(user.id, goal_id)


@router.get("/timer", response_model=TimerState)
async def get_timer(
    user: UserDB = Depends(get_current_user),
    workspace: WorkspaceService = Depends(get_workspace_service)
):
    return workspace.timer(user.id).snapshot()


@router.post("/timer", response_model=TimerState)
async def update_timer(
    request: TimerAction,
    user: UserDB = Depends(get_current_user),
    workspace: WorkspaceService = Depends(get_workspace_service)
):
    """Drive the timer and return its new state."""
    state = workspace.timer_action(user.id, request.action, request.mode)
    logger.info("Timer updated", user_id=user.id, action=request.action, mode=state.mode.value)
    return state
