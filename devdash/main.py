"""
FastAPI application entry point for the Developer Dashboard.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional

import structlog
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from . import __version__
from .api import (
    account_router, admin_router, auth_router, dashboard_router,
    github_router, oauth_router, workspace_router
)
from .api.errors import register_exception_handlers
from .config import settings
from .database import DatabaseManager, db_manager
from .logging_config import configure_logging
from .middleware import AuthCookieMiddleware
from .pages import router as pages_router
from .services.database_service import DatabaseService
from .services.github_connection_service import GitHubConnectionService
from .services.github_service import GitHubService

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Starting Developer Dashboard",
               version=__version__,
               environment=settings.app_env,
               debug=settings.app_debug,
               github_oauth_configured=bool(settings.github_client_id))

    yield

    # Shutdown
    logger.info("Shutting down Developer Dashboard")
    app.state.db.manager.close()


def create_app(
    database_url: Optional[str] = None,
    github_service_factory: Callable[[str], GitHubService] = GitHubService
) -> FastAPI:
    """
    Build the application.

    Args:
        database_url: Overrides ``DATABASE_URL``; a private engine is created
            when given, otherwise the shared ``db_manager`` is used
        github_service_factory: Builds a ``GitHubService`` from an access token
    """
    manager = DatabaseManager() if database_url else db_manager
    manager.initialize(database_url)
    db = DatabaseService(manager)

    app = FastAPI(
        title=settings.dashboard_title,
        description="Personal developer dashboard: GitHub issues and pull requests, notes, goals and a pomodoro timer",
        version=__version__,
        debug=settings.app_debug,
        lifespan=lifespan
    )

    # Per-process state; GitHub data and timers live only for the session
    app.state.db = db
    app.state.github_service_factory = github_service_factory
    app.state.github_connections = GitHubConnectionService(db, github_service_factory)
    app.state.timers = {}

    app.add_middleware(AuthCookieMiddleware, public_markers=settings.public_path_markers)
    register_exception_handlers(app)

    # OAuth routes carry their own full paths
    app.include_router(oauth_router, tags=["OAuth"])
    app.include_router(auth_router, prefix="/api/auth", tags=["Auth"])
    app.include_router(github_router, prefix="/api/github", tags=["GitHub"])
    app.include_router(dashboard_router, prefix="/api/dashboard", tags=["Dashboard"])
    app.include_router(workspace_router, prefix="/api/workspace", tags=["Workspace"])
    app.include_router(admin_router, prefix="/api/admin", tags=["Admin"])
    app.include_router(account_router, prefix="/api/account", tags=["Account"])
    app.include_router(pages_router, include_in_schema=False)

    # Mount static files (for frontend assets)
    try:
        app.mount("/static", StaticFiles(directory="devdash/static"), name="static")
    except RuntimeError:
        # Directory doesn't exist yet - that's okay
        logger.debug("Static directory not found - frontend assets not available")

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "version": __version__,
        }

    return app


def main():
    """Console entry point: configure logging and serve with uvicorn."""
    import uvicorn

    configure_logging()
    uvicorn.run(
        create_app(),
        host=settings.app_host,
        port=settings.app_port,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    main()
