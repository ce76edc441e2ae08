"""
GitHub OAuth redirect flow.

``/api/github/auth`` starts the round-trip, ``/api/github/callback`` checks
the anti-CSRF state and swaps the code for a token, and ``/github-success``
hands the token to whichever flow started it (connect, sign-in, linking or
re-authentication before account deletion).
"""

from typing import Optional
from urllib.parse import urlencode

import structlog
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from ..auth import oauth
from ..auth.dependencies import (
    get_auth_service, get_connection_service, get_optional_user
)
from ..auth.session import clear_session_cookies, set_session_cookies
from ..config import get_settings
from ..database import UserDB
from ..exceptions import DashboardError, OAuthError
from ..services.auth_service import AuthService
from ..services.github_connection_service import GitHubConnectionService

logger = structlog.get_logger(__name__)
router = APIRouter()


def _error_redirect(code: str) -> RedirectResponse:
    return RedirectResponse(f"/github-error?{urlencode({'error': code})}", status_code=302)


@router.get("/api/github/auth")
async def github_auth(
    purpose: str = Query("connect", description="connect, signin, link or reauth"),
    user: Optional[UserDB] = Depends(get_optional_user),
    connections: GitHubConnectionService = Depends(get_connection_service)
):
    """Redirect to GitHub's authorize page with a fresh state cookie."""
    settings = get_settings()
    if not settings.github_client_id:
        logger.error("GitHub OAuth is not configured")
        return JSONResponse(
            status_code=500,
            content={"error": "GitHub client ID not configured"}
        )

    if purpose not in oauth.OAUTH_PURPOSES:
        purpose = "connect"
    if purpose == "connect" and user is not None:
        connections.begin_connect(user.id)

    state = oauth.generate_state()
    response = RedirectResponse(oauth.get_oauth_authorize_url(state), status_code=302)
    cookie_options = dict(
        max_age=settings.oauth_state_max_age,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    response.set_cookie(oauth.STATE_COOKIE, state, **cookie_options)
    response.set_cookie(oauth.PURPOSE_COOKIE, purpose, **cookie_options)

    logger.info("Starting GitHub OAuth", purpose=purpose)
    return response


@router.get("/api/github/callback")
async def github_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None
):
    """Validate state, exchange the code and forward the token."""
    stored_state = request.cookies.get(oauth.STATE_COOKIE)
    purpose = request.cookies.get(oauth.PURPOSE_COOKIE) or "connect"

    if not state or not stored_state or state != stored_state:
        logger.warning("OAuth state mismatch")
        return _error_redirect("invalid_state")
    if error:
        logger.warning("GitHub returned an OAuth error", error=error)
        return _error_redirect(error)
    if not code:
        return _error_redirect("no_code")

    try:
        access_token = await oauth.exchange_code_for_token(code)
    except OAuthError as e:
        return _error_redirect(e.code)

    query = urlencode({"token": access_token, "purpose": purpose})
    response = RedirectResponse(f"/github-success?{query}", status_code=302)
    response.delete_cookie(oauth.STATE_COOKIE)
    return response


@router.get("/github-success")
async def github_success(
    request: Request,
    token: Optional[str] = None,
    user: Optional[UserDB] = Depends(get_optional_user),
    auth_service: AuthService = Depends(get_auth_service),
    connections: GitHubConnectionService = Depends(get_connection_service)
):
    """
    Finish the flow the token was requested for.

    The purpose comes from the cookie set by ``/api/github/auth``, never from
    the query string.
    """
    purpose = request.cookies.get(oauth.PURPOSE_COOKIE)
    if purpose not in oauth.OAUTH_PURPOSES:
        logger.warning("OAuth completion without a pending flow")
        return _error_redirect("invalid_state")
    if not token:
        return _error_redirect("no_code")

    response = await _complete_flow(purpose, token, user, auth_service, connections)
    response.delete_cookie(oauth.PURPOSE_COOKIE)
    return response


async def _complete_flow(
    purpose: str,
    token: str,
    user: Optional[UserDB],
    auth_service: AuthService,
    connections: GitHubConnectionService
) -> RedirectResponse:
    try:
        if purpose == "signin":
            signed_in = await auth_service.sign_in_with_github(token)
            connections.forget(signed_in.id)
            response = RedirectResponse("/", status_code=302)
            set_session_cookies(response, signed_in.id)
            return response

        if user is None:
            logger.warning("OAuth completion without a session", purpose=purpose)
            return RedirectResponse("/login", status_code=302)

        if purpose == "link":
            await auth_service.link_github_account(user.id, token)
            connections.load(user.id)
            return RedirectResponse("/account", status_code=302)

        if purpose == "reauth":
            await auth_service.delete_account(user.id, github_token=token)
            connections.forget(user.id)
            response = RedirectResponse("/login", status_code=302)
            clear_session_cookies(response)
            return response

        await connections.complete_connection(user.id, token)
        return RedirectResponse("/", status_code=302)
    except DashboardError as e:
        logger.error("Failed to complete GitHub OAuth", purpose=purpose, error=str(e))
        return _error_redirect("save_failed")
