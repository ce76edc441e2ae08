"""
Pydantic models for the Developer Dashboard application.
"""

from .github_models import (
    GitHubIssue, GitHubPullRequest, GitHubRepo, GitHubProfile,
    ReviewCounts, ReviewType, ReviewSubmission, ReviewResult
)
from .user_models import UserRecord, AdminUser, UserPage, AdminOverview
from .workspace_models import Note, Goal, GoalProgress, TimerMode, TimerState
from .dashboard_models import ConnectionStatus, GitHubConnectionState, DashboardSummary

__all__ = [
    "GitHubIssue",
    "GitHubPullRequest",
    "GitHubRepo",
    "GitHubProfile",
    "ReviewCounts",
    "ReviewType",
    "ReviewSubmission",
    "ReviewResult",
    "UserRecord",
    "AdminUser",
    "UserPage",
    "AdminOverview",
    "Note",
    "Goal",
    "GoalProgress",
    "TimerMode",
    "TimerState",
    "ConnectionStatus",
    "GitHubConnectionState",
    "DashboardSummary",
]
