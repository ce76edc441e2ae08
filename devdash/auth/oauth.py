"""
Utility functions for the GitHub OAuth redirect flow.
"""

import secrets
from typing import Optional
from urllib.parse import urlencode

import httpx
import structlog

from ..config import get_settings
from ..exceptions import OAuthError

logger = structlog.get_logger(__name__)

GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_ACCESS_TOKEN_URL = "https://github.com/login/oauth/access_token"

STATE_COOKIE = "github_oauth_state"
PURPOSE_COOKIE = "github_oauth_purpose"

# What the token is for once it comes back
OAUTH_PURPOSES = ("connect", "signin", "link", "reauth")

# Messages for /github-error?error=<code>
ERROR_MESSAGES = {
    "invalid_state": "Invalid state parameter. This could be due to a CSRF attack or an expired session.",
    "no_code": "No authorization code received from GitHub.",
    "access_denied": "You denied access to your GitHub account.",
    "server_error": "A server error occurred while processing your request.",
    "save_failed": "Failed to save your GitHub token.",
    "unknown_error": "An unknown error occurred.",
}


def generate_state() -> str:
    """Random anti-CSRF value round-tripped through GitHub."""
    return secrets.token_urlsafe(16)


def error_message(code: Optional[str]) -> str:
    return ERROR_MESSAGES.get(code or "unknown_error", ERROR_MESSAGES["unknown_error"])


def get_oauth_authorize_url(state: str) -> str:
    """Build GitHub OAuth authorize URL with client settings and state."""
    settings = get_settings()
    params = {
        "client_id": settings.github_client_id,
        "redirect_uri": settings.github_redirect_uri,
        "scope": settings.github_oauth_scope,
        "state": state,
    }
    return f"{GITHUB_AUTHORIZE_URL}?{urlencode(params)}"


async def exchange_code_for_token(code: str) -> str:
    """
    Exchange a GitHub OAuth code for an access token.

    Raises:
        OAuthError: ``code`` is GitHub's error code, or ``server_error`` when
            the request itself failed.
    """
    settings = get_settings()
    payload = {
        "client_id": settings.github_client_id,
        "client_secret": settings.github_client_secret,
        "code": code,
    }
    headers = {"Accept": "application/json", "Content-Type": "application/json"}

    try:
        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.post(GITHUB_ACCESS_TOKEN_URL, json=payload, headers=headers)
            response.raise_for_status()
            token_data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error("GitHub token exchange failed", error=str(e))
        raise OAuthError("server_error", str(e)) from e

    if token_data.get("error"):
        logger.error("GitHub OAuth error", error=token_data["error"])
        raise OAuthError(token_data["error"], token_data.get("error_description"))

    access_token = token_data.get("access_token")
    if not access_token:
        raise OAuthError("server_error", "GitHub OAuth token exchange returned no token")
    return access_token
