"""
GitHub API integration service for fetching issues, pull requests and
repositories of the authenticated user, and for submitting reviews.
"""

from itertools import islice
from typing import Dict, Iterable, List, Optional
import structlog
from github import Auth, Github, GithubException

from ..exceptions import GitHubAPIError, GitHubAuthError
from ..models.github_models import (
    GitHubIssue, GitHubPullRequest, GitHubRepo, GitHubProfile,
    GitHubLabel, GitHubRepositoryRef, GitHubUserRef, ReviewCounts,
    ReviewSubmission, ReviewResult
)

logger = structlog.get_logger(__name__)

ISSUES_LIMIT = 30
PULL_REQUESTS_LIMIT = 30
REPOS_LIMIT = 100

_REVIEW_STATE_FIELDS = {
    "APPROVED": "approved",
    "CHANGES_REQUESTED": "changes_requested",
    "COMMENTED": "commented",
}


def parse_repository_url(repository_url: str) -> GitHubRepositoryRef:
    """Derive owner/name from an API URL such as
    ``https://api.github.com/repos/owner/repo``."""
    parts = repository_url.rstrip("/").split("/")
    owner, name = parts[-2], parts[-1]
    return GitHubRepositoryRef(name=name, full_name=f"{owner}/{name}")


def latest_reviews_by_reviewer(reviews: Iterable) -> Dict[str, object]:
    """Keep only each reviewer's most recently submitted review."""
    latest = {}
    for review in reviews:
        if review.user is None:
            continue
        reviewer = review.user.login
        existing = latest.get(reviewer)
        if existing is None:
            latest[reviewer] = review
        elif review.submitted_at is not None and (
            existing.submitted_at is None or review.submitted_at > existing.submitted_at
        ):
            latest[reviewer] = review
    return latest


def aggregate_reviews(reviews: Iterable, requested_reviewer_count: int) -> ReviewCounts:
    """Tally latest reviews by state; pending counts reviewers still requested."""
    counts = ReviewCounts(pending=requested_reviewer_count)
    for review in latest_reviews_by_reviewer(reviews).values():
        field = _REVIEW_STATE_FIELDS.get(review.state)
        if field:
            setattr(counts, field, getattr(counts, field) + 1)
    return counts


def filter_by_repository(items: List, repo_filter: Optional[List[str]]) -> List:
    """Apply an allow-list of repository full names; empty means no filter."""
    if not repo_filter:
        return items
    allowed = set(repo_filter)
    return [item for item in items if item.repository.full_name in allowed]


class GitHubService:
    """Service for interacting with the GitHub API on behalf of one user."""

    def __init__(self, access_token: str, client: Optional[Github] = None):
        """Initialize GitHub service with the user's OAuth token."""
        self.github = client or Github(auth=Auth.Token(access_token))

    def _translate_error(self, error: GithubException) -> GitHubAPIError:
        if error.status == 401:
            return GitHubAuthError()
        message = error.data.get("message") if isinstance(error.data, dict) else None
        return GitHubAPIError(message or str(error), status=error.status)

    def _convert_user(self, github_user) -> GitHubUserRef:
        return GitHubUserRef(login=github_user.login, avatar_url=github_user.avatar_url)

    def _convert_labels(self, labels) -> List[GitHubLabel]:
        return [GitHubLabel(name=label.name, color=label.color) for label in labels]

    def _convert_issue(self, github_issue) -> GitHubIssue:
        """Convert GitHub issue object to our model."""
        return GitHubIssue(
            id=github_issue.id,
            title=github_issue.title,
            html_url=github_issue.html_url,
            state=github_issue.state,
            repository=parse_repository_url(github_issue.repository_url),
            created_at=github_issue.created_at,
            updated_at=github_issue.updated_at,
            labels=self._convert_labels(github_issue.labels),
        )

    def _convert_pull_request(self, item, detail, repository: GitHubRepositoryRef) -> GitHubPullRequest:
        """Combine a search hit with its pull request detail."""
        requested = [self._convert_user(user) for user in detail.requested_reviewers]
        return GitHubPullRequest(
            id=item.id,
            number=item.number,
            title=item.title,
            html_url=item.html_url,
            state=detail.state,
            merged=bool(detail.merged),
            draft=bool(detail.draft),
            created_at=detail.created_at,
            updated_at=detail.updated_at,
            closed_at=detail.closed_at,
            merged_at=detail.merged_at,
            user=self._convert_user(detail.user),
            repository=repository,
            requested_reviewers=requested,
            labels=self._convert_labels(item.labels),
            reviews=ReviewCounts(pending=len(requested)),
        )

    def _get_pull_detail(self, repository: GitHubRepositoryRef, number: int):
        return self.github.get_repo(repository.full_name).get_pull(number)

    async def fetch_user_issues(self, repo_filter: Optional[List[str]] = None) -> List[GitHubIssue]:
        """
        Fetch open issues assigned to the authenticated user.

        Args:
            repo_filter: Repository full names to keep; empty or None keeps all

        Returns:
            Issues sorted by most recent update
        """
        try:
            github_issues = self.github.get_user().get_issues(
                filter="assigned", state="open", sort="updated"
            )
            issues = [self._convert_issue(issue) for issue in islice(github_issues, ISSUES_LIMIT)]
        except GithubException as e:
            logger.error("Failed to fetch GitHub issues", status=e.status, error=str(e))
            raise self._translate_error(e) from e

        issues = filter_by_repository(issues, repo_filter)
        logger.info("Fetched issues", count=len(issues), filtered=bool(repo_filter))
        return issues

    async def fetch_user_pull_requests(
        self,
        username: str,
        repo_filter: Optional[List[str]] = None
    ) -> List[GitHubPullRequest]:
        """
        Fetch open pull requests authored by ``username`` or awaiting their review.

        Review counts are aggregated for review-requested pull requests only;
        authored pull requests report pending reviewers and are never reviewable.

        Args:
            username: GitHub login of the authenticated user
            repo_filter: Repository full names to keep; empty or None keeps all

        Returns:
            Pull requests deduplicated by id
        """
        pull_requests: Dict[int, GitHubPullRequest] = {}

        try:
            authored = self.github.search_issues(
                f"is:pr is:open author:{username}", sort="updated"
            )
            for item in islice(authored, PULL_REQUESTS_LIMIT):
                repository = parse_repository_url(item.repository_url)
                detail = self._get_pull_detail(repository, item.number)
                pr = self._convert_pull_request(item, detail, repository)
                pr.can_review = False
                pull_requests[pr.id] = pr

            requested = self.github.search_issues(
                f"is:pr is:open review-requested:{username}", sort="updated"
            )
            for item in islice(requested, PULL_REQUESTS_LIMIT):
                if item.pull_request is None:
                    continue
                repository = parse_repository_url(item.repository_url)
                detail = self._get_pull_detail(repository, item.number)
                pr = self._convert_pull_request(item, detail, repository)
                pr.can_review = pr.user.login != username
                self._apply_reviews(pr, detail, username)
                pull_requests[pr.id] = pr

        except GithubException as e:
            logger.error("Failed to fetch GitHub pull requests", status=e.status, error=str(e))
            raise self._translate_error(e) from e

        results = filter_by_repository(list(pull_requests.values()), repo_filter)
        logger.info("Fetched pull requests", count=len(results), filtered=bool(repo_filter))
        return results

    def _apply_reviews(self, pr: GitHubPullRequest, detail, username: str) -> None:
        """Fill in review counts and let past reviewers update their review."""
        try:
            reviews = list(detail.get_reviews())
        except GithubException as e:
            if e.status == 401:
                raise
            logger.warning("Failed to fetch reviews",
                          repository=pr.repository.full_name,
                          number=pr.number,
                          error=str(e))
            return

        pr.reviews = aggregate_reviews(reviews, len(pr.requested_reviewers))
        if any(review.user is not None and review.user.login == username for review in reviews):
            pr.can_review = True

    async def submit_pull_request_review(self, submission: ReviewSubmission) -> ReviewResult:
        """
        Submit a review. Failures are reported in the result, never raised.
        """
        try:
            pull = self.github.get_repo(submission.repository_full_name).get_pull(
                submission.pull_request_number
            )
            pull.create_review(body=submission.comment, event=submission.review_type.value)

            logger.info("Submitted review",
                       repository=submission.repository_full_name,
                       number=submission.pull_request_number,
                       review_type=submission.review_type.value)
            return ReviewResult(success=True, message="Review submitted successfully")

        except Exception as e:
            logger.error("Failed to submit review",
                        repository=submission.repository_full_name,
                        number=submission.pull_request_number,
                        error=str(e))
            if isinstance(e, GithubException):
                message = str(self._translate_error(e))
            else:
                message = str(e) or "An unknown error occurred"
            return ReviewResult(success=False, message=message)

    async def fetch_user_repos(self) -> List[GitHubRepo]:
        """Repositories the user can access, most recently updated first."""
        try:
            repos = self.github.get_user().get_repos(sort="updated")
            return [
                GitHubRepo(
                    id=repo.id,
                    name=repo.name,
                    full_name=repo.full_name,
                    html_url=repo.html_url,
                    description=repo.description,
                    private=repo.private,
                    owner=self._convert_user(repo.owner),
                )
                for repo in islice(repos, REPOS_LIMIT)
            ]
        except GithubException as e:
            logger.error("Failed to fetch GitHub repositories", status=e.status, error=str(e))
            raise self._translate_error(e) from e

    async def get_user_profile(self) -> GitHubProfile:
        """Profile of the token owner."""
        try:
            user = self.github.get_user()
            return GitHubProfile(
                id=user.id,
                login=user.login,
                avatar_url=user.avatar_url,
                name=user.name,
                email=user.email,
                html_url=user.html_url,
            )
        except GithubException as e:
            logger.error("Failed to fetch GitHub profile", status=e.status, error=str(e))
            raise self._translate_error(e) from e
