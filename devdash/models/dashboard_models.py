"""
Pydantic models for dashboard state and views.
"""

from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Union
from pydantic import BaseModel, Field

from .github_models import GitHubIssue, GitHubPullRequest, GitHubRepo
from .workspace_models import GoalProgress


class ConnectionStatus(str, Enum):
    """GitHub connection lifecycle."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"    # OAuth redirect in flight
    CONNECTED = "connected"


class GitHubConnectionState(BaseModel):
    """Everything the dashboard knows about one user's GitHub connection.

    Issues, pull requests and repos are whatever the last refresh returned;
    they are dropped on disconnect and never written back to storage.
    """
    user_id: str
    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    access_token: Optional[str] = Field(default=None, exclude=True)
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    selected_repos: List[str] = []
    issues: List[GitHubIssue] = []
    pull_requests: List[GitHubPullRequest] = []
    repos: List[GitHubRepo] = []
    last_error: Optional[str] = None
    last_refreshed_at: Optional[datetime] = None

    @property
    def is_connected(self) -> bool:
        return self.status == ConnectionStatus.CONNECTED and bool(self.access_token)

    @property
    def repo_filter(self) -> Optional[List[str]]:
        """The filter to pass to fetches; None means unfiltered."""
        return list(self.selected_repos) if self.selected_repos else None

    def clear(self) -> None:
        """Reset to a disconnected state."""
        self.status = ConnectionStatus.DISCONNECTED
        self.access_token = None
        self.username = None
        self.avatar_url = None
        self.selected_repos = []
        self.issues = []
        self.pull_requests = []
        self.repos = []


class DashboardSummary(BaseModel):
    """Counts shown on the dashboard cards."""
    github_status: ConnectionStatus
    github_username: Optional[str] = None
    open_issues: int = 0
    open_pull_requests: int = 0
    reviews_waiting: int = 0
    selected_repos: List[str] = []
    notes: int = 0
    goals: GoalProgress = Field(default_factory=GoalProgress)


def filter_issues(issues: Iterable[GitHubIssue], term: str) -> List[GitHubIssue]:
    """Case-insensitive search over title, repository and label names."""
    term = (term or "").strip().lower()
    if not term:
        return list(issues)

    return [
        issue for issue in issues
        if term in issue.title.lower()
        or term in issue.repository.full_name.lower()
        or any(term in label.name.lower() for label in issue.labels)
    ]


def repos_with_items(
    repos: Iterable[GitHubRepo],
    items: Sequence[Union[GitHubIssue, GitHubPullRequest]],
) -> List[GitHubRepo]:
    """Repositories owning at least one of ``items``, sorted by full name."""
    owners = {item.repository.full_name for item in items}
    return sorted(
        (repo for repo in repos if repo.full_name in owners),
        key=lambda repo: repo.full_name,
    )
