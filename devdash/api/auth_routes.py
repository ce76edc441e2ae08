"""
Email/password authentication routes.
"""

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..auth.dependencies import get_auth_service, get_connection_service, get_current_user
from ..auth.session import clear_session_cookies, set_session_cookies
from ..database import UserDB
from ..models.user_models import SignInRequest, SignUpRequest, UserRecord
from ..services.auth_service import AuthService, to_user_record
from ..services.github_connection_service import GitHubConnectionService

logger = structlog.get_logger(__name__)
router = APIRouter()


def _signed_in_response(user: UserDB, status_code: int = 200) -> JSONResponse:
    response = JSONResponse(
        status_code=status_code,
        content=to_user_record(user).model_dump(mode="json"),
    )
    set_session_cookies(response, user.id)
    return response


@router.post("/signup", response_model=UserRecord, status_code=201)
async def sign_up(
    request: SignUpRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Create an email/password account and sign in."""
    user = auth_service.sign_up(request.email, request.password, request.display_name)
    return _signed_in_response(user, status_code=201)


@router.post("/login", response_model=UserRecord)
async def sign_in(
    request: SignInRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Sign in with email and password."""
    user = auth_service.sign_in(request.email, request.password)
    return _signed_in_response(user)


@router.post("/logout")
async def sign_out(
    user: UserDB = Depends(get_current_user),
    connections: GitHubConnectionService = Depends(get_connection_service)
):
    """Sign out and drop the session's GitHub state."""
    connections.forget(user.id)
    response = JSONResponse(content={"status": "signed_out"})
    clear_session_cookies(response)
    logger.info("User signed out", user_id=user.id)
    return response


@router.get("/me", response_model=UserRecord)
async def get_me(user: UserDB = Depends(get_current_user)):
    return to_user_record(user)
