"""
Business logic services for the Developer Dashboard application.
"""

from .github_service import GitHubService
from .database_service import DatabaseService
from .auth_service import AuthService
from .github_connection_service import GitHubConnectionService
from .admin_service import AdminService
from .workspace_service import WorkspaceService, PomodoroTimer

__all__ = [
    "GitHubService",
    "DatabaseService",
    "AuthService",
    "GitHubConnectionService",
    "AdminService",
    "WorkspaceService",
    "PomodoroTimer",
]
