"""
Pydantic models for GitHub API data structures.

These shapes are recomputed from live API responses on every refresh and
are never persisted.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, computed_field


class GitHubUserRef(BaseModel):
    """Minimal GitHub user reference."""
    login: str
    avatar_url: Optional[str] = None


class GitHubLabel(BaseModel):
    """GitHub issue label model."""
    name: str
    color: str = "ededed"


class GitHubRepositoryRef(BaseModel):
    """Repository owning an issue or pull request."""
    name: str
    full_name: str


class GitHubRepo(BaseModel):
    """GitHub repository model."""
    id: int
    name: str
    full_name: str
    html_url: str
    description: Optional[str] = None
    private: bool = False
    owner: GitHubUserRef


class GitHubProfile(BaseModel):
    """Profile of the authenticated GitHub user."""
    id: int
    login: str
    avatar_url: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    html_url: Optional[str] = None


class GitHubIssue(BaseModel):
    """Issue assigned to the current user."""
    id: int
    title: str
    html_url: str
    state: str  # "open" or "closed"
    repository: GitHubRepositoryRef
    created_at: datetime
    updated_at: datetime
    labels: List[GitHubLabel] = []


class ReviewCounts(BaseModel):
    """Latest-review-per-reviewer tallies for a pull request."""
    approved: int = 0
    changes_requested: int = 0
    commented: int = 0
    pending: int = 0


class GitHubPullRequest(BaseModel):
    """Pull request authored by, or awaiting review from, the current user."""
    id: int
    number: int
    title: str
    html_url: str
    state: str
    merged: bool = False
    draft: bool = False
    created_at: datetime
    updated_at: datetime
    closed_at: Optional[datetime] = None
    merged_at: Optional[datetime] = None
    user: GitHubUserRef
    repository: GitHubRepositoryRef
    requested_reviewers: List[GitHubUserRef] = []
    labels: List[GitHubLabel] = []
    reviews: ReviewCounts = Field(default_factory=ReviewCounts)
    can_review: bool = False

    @computed_field
    @property
    def status_text(self) -> str:
        """Label shown next to the pull request title."""
        if self.state == "closed":
            return "Merged" if self.merged else "Closed"
        if self.draft:
            return "Draft"
        return "Open"

    @computed_field
    @property
    def review_summary(self) -> Optional[str]:
        """One-line review status, or None when nothing has happened yet."""
        counts = self.reviews
        if counts.changes_requested > 0:
            return "Changes requested"
        if counts.approved > 0 and counts.pending == 0:
            return "Approved"
        if counts.approved > 0:
            return f"{counts.approved} approved, {counts.pending} pending"
        if counts.pending > 0:
            return f"{counts.pending} pending reviews"
        if counts.commented > 0:
            return f"{counts.commented} comments"
        return None


class ReviewType(str, Enum):
    """Review verdicts accepted by the GitHub API."""
    APPROVE = "APPROVE"
    REQUEST_CHANGES = "REQUEST_CHANGES"
    COMMENT = "COMMENT"


class ReviewSubmission(BaseModel):
    """A review to submit against a pull request."""
    pull_request_id: int
    repository_full_name: str
    pull_request_number: int
    review_type: ReviewType = ReviewType.COMMENT
    comment: str = ""


class ReviewResult(BaseModel):
    """Outcome of a review submission; submissions never raise."""
    success: bool
    message: str
