"""
GitHub API routes: connection state, issues, pull requests, repository
filters and review submission.
"""

from typing import List, Optional
import structlog
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ..auth.dependencies import get_connection_service, get_current_user
from ..database import UserDB
from ..models.dashboard_models import GitHubConnectionState, filter_issues, repos_with_items
from ..models.github_models import (
    GitHubIssue, GitHubPullRequest, GitHubRepo, ReviewResult, ReviewSubmission
)
from ..services.github_connection_service import GitHubConnectionService

logger = structlog.get_logger(__name__)
router = APIRouter()


class RepoFilterToggle(BaseModel):
    """Repository to add to or remove from the filter set."""
    repo_full_name: str


@router.get("/connection", response_model=GitHubConnectionState)
async def get_connection(
    user: UserDB = Depends(get_current_user),
    connections: GitHubConnectionService = Depends(get_connection_service)
):
    """Current connection state and the last fetched data."""
    return connections.get_state(user.id)


@router.post("/connection/refresh", response_model=GitHubConnectionState)
async def refresh_connection(
    user: UserDB = Depends(get_current_user),
    connections: GitHubConnectionService = Depends(get_connection_service)
):
    """Refetch issues, pull requests and repositories."""
    return await connections.refresh_all(user.id)


@router.delete("/connection", response_model=GitHubConnectionState)
async def disconnect(
    user: UserDB = Depends(get_current_user),
    connections: GitHubConnectionService = Depends(get_connection_service)
):
    """Forget the stored GitHub token."""
    return connections.disconnect(user.id)


@router.get("/issues", response_model=List[GitHubIssue])
async def get_issues(
    refresh: bool = Query(True, description="Fetch from GitHub before answering"),
    search: Optional[str] = Query(None, description="Match title, repository or label"),
    user: UserDB = Depends(get_current_user),
    connections: GitHubConnectionService = Depends(get_connection_service)
):
    """Open issues assigned to the user, narrowed by the saved repo filters."""
    state = await connections.refresh_issues(user.id) if refresh else connections.get_state(user.id)
    issues = filter_issues(state.issues, search) if search else state.issues

    logger.info("Retrieved issues", user_id=user.id, count=len(issues), refreshed=refresh)
    return issues


@router.get("/pull-requests", response_model=List[GitHubPullRequest])
async def get_pull_requests(
    refresh: bool = Query(True, description="Fetch from GitHub before answering"),
    user: UserDB = Depends(get_current_user),
    connections: GitHubConnectionService = Depends(get_connection_service)
):
    """Open pull requests authored by or awaiting review from the user."""
    if refresh:
        state = await connections.refresh_pull_requests(user.id)
    else:
        state = connections.get_state(user.id)

    logger.info("Retrieved pull requests", user_id=user.id, count=len(state.pull_requests))
    return state.pull_requests


@router.get("/repos", response_model=List[GitHubRepo])
async def get_repos(
    refresh: bool = Query(True, description="Fetch from GitHub before answering"),
    active_only: bool = Query(False, description="Only repositories with open issues or pull requests"),
    user: UserDB = Depends(get_current_user),
    connections: GitHubConnectionService = Depends(get_connection_service)
):
    """Repositories for the filter picker."""
    state = await connections.refresh_repos(user.id) if refresh else connections.get_state(user.id)
    if active_only:
        return repos_with_items(state.repos, [*state.issues, *state.pull_requests])
    return state.repos


@router.get("/filters", response_model=List[str])
async def get_filters(
    user: UserDB = Depends(get_current_user),
    connections: GitHubConnectionService = Depends(get_connection_service)
):
    return connections.get_state(user.id).selected_repos


@router.post("/filters/toggle", response_model=GitHubConnectionState)
async def toggle_filter(
    request: RepoFilterToggle,
    user: UserDB = Depends(get_current_user),
    connections: GitHubConnectionService = Depends(get_connection_service)
):
    """Toggle one repository in the saved filter set and refetch."""
    return await connections.toggle_repo_filter(user.id, request.repo_full_name)


@router.delete("/filters", response_model=GitHubConnectionState)
async def clear_filters(
    user: UserDB = Depends(get_current_user),
    connections: GitHubConnectionService = Depends(get_connection_service)
):
    return await connections.clear_repo_filters(user.id)


@router.post("/reviews", response_model=ReviewResult)
async def submit_review(
    submission: ReviewSubmission,
    user: UserDB = Depends(get_current_user),
    connections: GitHubConnectionService = Depends(get_connection_service)
):
    """Submit a review. Failures come back as ``success: false``."""
    result = await connections.submit_review(user.id, submission)

    logger.info("Review submission",
               user_id=user.id,
               repository=submission.repository_full_name,
               number=submission.pull_request_number,
               success=result.success)
    return result
