"""
Error types raised by the dashboard services.

Routers translate these into HTTP responses; see ``devdash.api.errors``.
"""

from typing import Optional


class DashboardError(Exception):
    """Base class for all application errors."""


class ValidationError(DashboardError):
    """Input rejected before any storage or network call."""


class NotFoundError(DashboardError):
    """A requested document does not exist or is not owned by the caller."""


class AuthenticationError(DashboardError):
    """Bad credentials, duplicate accounts, suspended users."""


class ReauthenticationRequired(AuthenticationError):
    """A sensitive operation needs fresh credentials."""


class AdminAuthorizationError(DashboardError):
    """A non-admin user attempted an admin action."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ConcurrentModificationError(DashboardError):
    """The stored document version differs from the one the caller saw."""

    def __init__(self, user_id: str, expected: int, actual: int):
        super().__init__(
            f"User {user_id} was modified concurrently "
            f"(expected version {expected}, found {actual})"
        )
        self.user_id = user_id
        self.expected = expected
        self.actual = actual


class GitHubAPIError(DashboardError):
    """A GitHub REST call failed."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class GitHubAuthError(GitHubAPIError):
    """The stored GitHub token was rejected (HTTP 401)."""

    def __init__(self, message: str = "GitHub token is invalid or expired"):
        super().__init__(message, status=401)


class OAuthError(DashboardError):
    """The OAuth redirect flow failed; ``code`` is shown on the error page."""

    def __init__(self, code: str, message: Optional[str] = None):
        super().__init__(message or code)
        self.code = code
