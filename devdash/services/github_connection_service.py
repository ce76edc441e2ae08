"""
Per-user GitHub connection state: stored token, repository filters and the
issues / pull requests / repos fetched for the current session.

State changes are explicit: every action that changes the token or the
filter set calls ``refresh_all`` itself.
"""

from datetime import datetime
from typing import Callable, Dict, List, Optional
import structlog

from ..exceptions import GitHubAPIError, GitHubAuthError
from ..models.dashboard_models import ConnectionStatus, GitHubConnectionState
from ..models.github_models import ReviewResult, ReviewSubmission, ReviewType
from .database_service import DatabaseService
from .github_service import GitHubService

logger = structlog.get_logger(__name__)


class GitHubConnectionService:
    """Service holding one ``GitHubConnectionState`` per signed-in user."""

    def __init__(
        self,
        db: DatabaseService,
        github_service_factory: Callable[[str], GitHubService] = GitHubService
    ):
        self.db = db
        self.github_service_factory = github_service_factory
        self._states: Dict[str, GitHubConnectionState] = {}

    def _client(self, state: GitHubConnectionState) -> GitHubService:
        return self.github_service_factory(state.access_token)

    def get_state(self, user_id: str) -> GitHubConnectionState:
        """Current state, loading it from the user record on first use."""
        state = self._states.get(user_id)
        if state is None:
            state = self.load(user_id)
        return state

    def load(self, user_id: str) -> GitHubConnectionState:
        """Read the stored token, profile and filters from the user record."""
        state = GitHubConnectionState(user_id=user_id)
        user = self.db.get_user(user_id)

        if user is not None and user.github_access_token:
            state.access_token = user.github_access_token
            state.status = ConnectionStatus.CONNECTED
            state.username = user.github_username
            state.avatar_url = user.github_avatar_url
            state.selected_repos = list(user.github_selected_repos or [])

        self._states[user_id] = state
        logger.info("Loaded GitHub connection", user_id=user_id, status=state.status.value)
        return state

    def forget(self, user_id: str) -> None:
        """Drop session state, e.g. on sign-out."""
        self._states.pop(user_id, None)

    def begin_connect(self, user_id: str) -> GitHubConnectionState:
        """Mark the OAuth redirect as in flight."""
        state = self.get_state(user_id)
        if state.status != ConnectionStatus.CONNECTED:
            state.status = ConnectionStatus.CONNECTING
        return state

    async def complete_connection(self, user_id: str, access_token: str) -> GitHubConnectionState:
        """Store a freshly issued token and load everything it can see."""
        profile = await self.github_service_factory(access_token).get_user_profile()

        self.db.merge_user(
            user_id,
            github_access_token=access_token,
            github_username=profile.login,
            github_avatar_url=profile.avatar_url,
            github_connected_at=datetime.utcnow(),
        )
        self.load(user_id)
        logger.info("GitHub connected", user_id=user_id, github_username=profile.login)

        try:
            await self.refresh_all(user_id)
        except GitHubAPIError as e:
            logger.warning("Initial GitHub refresh failed", user_id=user_id, error=str(e))
        return self.get_state(user_id)

    def disconnect(self, user_id: str) -> GitHubConnectionState:
        """Clear the stored token fields and reset to disconnected."""
        self.db.merge_user(
            user_id,
            github_access_token=None,
            github_username=None,
            github_avatar_url=None,
            github_selected_repos=[],
        )
        state = self.get_state(user_id)
        state.clear()
        logger.info("GitHub disconnected", user_id=user_id)
        return state

    def _handle_error(self, state: GitHubConnectionState, error: GitHubAPIError, action: str):
        if isinstance(error, GitHubAuthError):
            logger.warning("GitHub token rejected, disconnecting", user_id=state.user_id, action=action)
            self.disconnect(state.user_id)
        else:
            logger.error("GitHub refresh failed", user_id=state.user_id, action=action, error=str(error))
        state.last_error = str(error)

    async def refresh_issues(self, user_id: str) -> GitHubConnectionState:
        state = self.get_state(user_id)
        if not state.access_token:
            return state

        try:
            state.issues = await self._client(state).fetch_user_issues(state.repo_filter)

            if not state.username or not state.avatar_url:
                profile = await self._client(state).get_user_profile()
                state.username = profile.login
                state.avatar_url = profile.avatar_url
                self.db.merge_user(
                    user_id,
                    github_username=profile.login,
                    github_avatar_url=profile.avatar_url,
                )
        except GitHubAPIError as e:
            self._handle_error(state, e, "issues")
            raise

        state.last_error = None
        state.last_refreshed_at = datetime.utcnow()
        return state

    async def refresh_pull_requests(self, user_id: str) -> GitHubConnectionState:
        state = self.get_state(user_id)
        if not state.access_token or not state.username:
            return state

        try:
            state.pull_requests = await self._client(state).fetch_user_pull_requests(
                state.username, state.repo_filter
            )
        except GitHubAPIError as e:
            self._handle_error(state, e, "pull_requests")
            raise

        state.last_error = None
        state.last_refreshed_at = datetime.utcnow()
        return state

    async def refresh_repos(self, user_id: str) -> GitHubConnectionState:
        """Refresh the repository list; failures keep the previous list."""
        state = self.get_state(user_id)
        if not state.access_token:
            return state

        try:
            state.repos = await self._client(state).fetch_user_repos()
        except GitHubAPIError as e:
            logger.error("Error fetching GitHub repositories", user_id=user_id, error=str(e))
        return state

    async def refresh_all(self, user_id: str) -> GitHubConnectionState:
        """
        Refetch issues, pull requests and repos for the current token and filters.

        Each refresh runs even if an earlier one failed. A rejected token
        stops at once (the connection is already cleared); any other error is
        re-raised after the remaining refreshes have run.
        """
        state = self.get_state(user_id)
        if not state.access_token:
            return state

        first_error: Optional[GitHubAPIError] = None
        for refresh in (self.refresh_issues, self.refresh_pull_requests):
            try:
                await refresh(user_id)
            except GitHubAuthError:
                raise
            except GitHubAPIError as e:
                first_error = first_error or e
        await self.refresh_repos(user_id)

        state = self.get_state(user_id)
        if first_error is not None:
            state.last_error = str(first_error)
            raise first_error
        return state

    def _save_filters(self, user_id: str, selected: List[str]) -> None:
        state = self.get_state(user_id)
        state.selected_repos = selected
        self.db.merge_user(user_id, github_selected_repos=list(selected))

    async def toggle_repo_filter(self, user_id: str, repo_full_name: str) -> GitHubConnectionState:
        """Add or remove a repository from the filter set, then refresh."""
        state = self.get_state(user_id)
        if repo_full_name in state.selected_repos:
            selected = [repo for repo in state.selected_repos if repo != repo_full_name]
        else:
            selected = [*state.selected_repos, repo_full_name]

        self._save_filters(user_id, selected)
        logger.info("Repository filter toggled", user_id=user_id, repo=repo_full_name,
                   selected=len(selected))
        return await self.refresh_all(user_id)

    async def clear_repo_filters(self, user_id: str) -> GitHubConnectionState:
        self._save_filters(user_id, [])
        return await self.refresh_all(user_id)

    async def submit_review(self, user_id: str, submission: ReviewSubmission) -> ReviewResult:
        """Submit a review and refresh pull requests when it went through."""
        if submission.review_type == ReviewType.REQUEST_CHANGES and not submission.comment.strip():
            return ReviewResult(
                success=False,
                message="A comment is required when requesting changes"
            )

        state = self.get_state(user_id)
        if not state.access_token:
            return ReviewResult(success=False, message="Not authenticated with GitHub")

        result = await self._client(state).submit_pull_request_review(submission)

        if result.success:
            try:
                await self.refresh_pull_requests(user_id)
            except GitHubAPIError as e:
                logger.warning("Refresh after review failed", user_id=user_id, error=str(e))
        return result

    def pending_reviews(self, user_id: str, limit: Optional[int] = None):
        """Pull requests the user can act on, most recently updated first."""
        state = self.get_state(user_id)
        reviewable = sorted(
            (pr for pr in state.pull_requests if pr.can_review),
            key=lambda pr: pr.updated_at,
            reverse=True,
        )
        return reviewable[:limit] if limit else reviewable
