"""
Dashboard API routes: the summary cards shown on the home page.
"""

from typing import List, Optional
import structlog
from fastapi import APIRouter, Depends, Query

from ..auth.dependencies import (
    get_connection_service, get_current_user, get_workspace_service
)
from ..database import UserDB
from ..models.dashboard_models import DashboardSummary
from ..models.github_models import GitHubPullRequest
from ..services.github_connection_service import GitHubConnectionService
from ..services.workspace_service import WorkspaceService

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/summary", response_model=DashboardSummary)
async def get_dashboard_summary(
    user: UserDB = Depends(get_current_user),
    connections: GitHubConnectionService = Depends(get_connection_service),
    workspace: WorkspaceService = Depends(get_workspace_service)
):
    """Counts from the last GitHub refresh plus the user's workspace."""
    state = connections.get_state(user.id)

    summary = DashboardSummary(
        github_status=state.status,
        github_username=state.username,
        open_issues=len(state.issues),
        open_pull_requests=len(state.pull_requests),
        reviews_waiting=len(connections.pending_reviews(user.id)),
        selected_repos=state.selected_repos,
        notes=workspace.db.count_notes(user.id),
        goals=workspace.goal_progress(user.id),
    )

    logger.info("Dashboard summary",
               user_id=user.id,
               github_status=summary.github_status.value,
               open_issues=summary.open_issues,
               open_pull_requests=summary.open_pull_requests)
    return summary


@router.get("/reviews", response_model=List[GitHubPullRequest])
async def get_pending_reviews(
    limit: Optional[int] = Query(5, ge=1, le=30, description="Maximum number of pull requests"),
    user: UserDB = Depends(get_current_user),
    connections: GitHubConnectionService = Depends(get_connection_service)
):
    """Pull requests waiting on the user's review, most recently updated first."""
    return connections.pending_reviews(user.id, limit)


@router.post("/refresh", response_model=DashboardSummary)
async def refresh_dashboard_data(
    user: UserDB = Depends(get_current_user),
    connections: GitHubConnectionService = Depends(get_connection_service),
    workspace: WorkspaceService = Depends(get_workspace_service)
):
    """Refetch GitHub data, then return the new summary."""
    await connections.refresh_all(user.id)
    return await get_dashboard_summary(user, connections, workspace)
