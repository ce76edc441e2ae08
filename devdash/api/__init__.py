"""
API endpoints for the Developer Dashboard application.
"""

from .account_routes import router as account_router
from .admin_routes import router as admin_router
from .auth_routes import router as auth_router
from .dashboard_routes import router as dashboard_router
from .github_routes import router as github_router
from .oauth_routes import router as oauth_router
from .workspace_routes import router as workspace_router

__all__ = [
    "account_router",
    "admin_router",
    "auth_router",
    "dashboard_router",
    "github_router",
    "oauth_router",
    "workspace_router",
]
