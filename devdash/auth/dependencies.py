"""
FastAPI dependencies resolving services and the signed-in user.

The session token is read from the Authorization header (API clients) or
the HttpOnly ``session`` cookie (browser).
"""

from typing import Optional

from fastapi import Cookie, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from ..database import UserDB
from ..services.admin_service import AdminService
from ..services.auth_service import AuthService
from ..services.database_service import DatabaseService
from ..services.github_connection_service import GitHubConnectionService
from ..services.workspace_service import WorkspaceService
from .session import SESSION_COOKIE, decode_session_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_database_service(request: Request) -> DatabaseService:
    return request.app.state.db


def get_auth_service(request: Request) -> AuthService:
    return AuthService(request.app.state.db, request.app.state.github_service_factory)


def get_connection_service(request: Request) -> GitHubConnectionService:
    return request.app.state.github_connections


def get_workspace_service(request: Request) -> WorkspaceService:
    return WorkspaceService(request.app.state.db, request.app.state.timers)


def get_optional_user(
    token_header: Optional[str] = Depends(oauth2_scheme),
    session_cookie: Optional[str] = Cookie(None, alias=SESSION_COOKIE),
    auth_service: AuthService = Depends(get_auth_service),
) -> Optional[UserDB]:
    """The signed-in, active user, or None."""
    token = token_header or session_cookie
    if not token:
        return None
    try:
        payload = decode_session_token(token)
    except ValueError:
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None
    return auth_service.get_active_user(user_id)


def get_current_user(user: Optional[UserDB] = Depends(get_optional_user)) -> UserDB:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_admin_service(
    user: UserDB = Depends(get_current_user),
    db: DatabaseService = Depends(get_database_service),
) -> AdminService:
    return AdminService(db, user.id)
