"""
Exception handlers translating service errors into JSON responses.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import structlog

from ..exceptions import (
    AdminAuthorizationError, AuthenticationError, ConcurrentModificationError,
    DashboardError, GitHubAPIError, GitHubAuthError, NotFoundError, ValidationError
)

logger = structlog.get_logger(__name__)

# Most specific first
STATUS_CODES = [
    (GitHubAuthError, 401),
    (GitHubAPIError, 502),
    (AdminAuthorizationError, 403),
    (AuthenticationError, 401),
    (NotFoundError, 404),
    (ConcurrentModificationError, 409),
    (ValidationError, 400),
]


def status_for(error: DashboardError) -> int:
    for error_type, status_code in STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DashboardError)
    async def dashboard_error_handler(request: Request, exc: DashboardError):
        status_code = status_for(exc)
        detail = str(exc) if status_code != 500 else "Internal server error"
        logger.warning("Request failed",
                      path=request.url.path,
                      error_type=type(exc).__name__,
                      status_code=status_code,
                      error=str(exc))
        return JSONResponse(status_code=status_code, content={"detail": detail})

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled error",
                    path=request.url.path,
                    error_type=type(exc).__name__,
                    error=str(exc))
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
