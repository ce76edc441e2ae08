"""
Account page API: profile and account deletion.
"""

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..auth.dependencies import get_auth_service, get_connection_service, get_current_user
from ..auth.session import clear_session_cookies
from ..database import UserDB
from ..exceptions import ValidationError
from ..models.user_models import DeleteAccountRequest, UserRecord
from ..services.auth_service import GITHUB_PROVIDER, PASSWORD_PROVIDER, AuthService, to_user_record
from ..services.github_connection_service import GitHubConnectionService

logger = structlog.get_logger(__name__)
router = APIRouter()

DELETE_CONFIRMATION = "DELETE"
GITHUB_REAUTH_URL = "/api/github/auth?purpose=reauth"


@router.get("", response_model=UserRecord)
async def get_account(user: UserDB = Depends(get_current_user)):
    return to_user_record(user)


@router.post("/delete")
async def delete_account(
    request: DeleteAccountRequest,
    user: UserDB = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
    connections: GitHubConnectionService = Depends(get_connection_service)
):
    """
    Delete the caller's account after re-authentication.

    Password accounts confirm with their password. GitHub-only accounts get
    a ``reauth_required`` answer pointing at a fresh GitHub round-trip; the
    deletion then finishes on ``/github-success``.
    """
    if request.confirmation != DELETE_CONFIRMATION:
        raise ValidationError('Please type "DELETE" to confirm')

    providers = user.auth_providers or []
    if not request.password and GITHUB_PROVIDER in providers \
            and PASSWORD_PROVIDER not in providers:
        return {"status": "reauth_required", "redirect": GITHUB_REAUTH_URL}

    await auth_service.delete_account(user.id, password=request.password)
    connections.forget(user.id)

    response = JSONResponse(content={"status": "deleted"})
    clear_session_cookies(response)
    return response
