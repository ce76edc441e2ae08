"""
Coarse route guard: requests without the ``auth=true`` cookie are sent to
the login page. Real authorization happens per route via the session token.
"""

from typing import Iterable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse

from .auth.session import AUTH_COOKIE


def is_public_path(path: str, public_markers: Iterable[str]) -> bool:
    return any(marker in path for marker in public_markers)


class AuthCookieMiddleware(BaseHTTPMiddleware):
    """Redirect to /login when the auth cookie is missing on a protected path."""

    def __init__(self, app, public_markers: Iterable[str], login_path: str = "/login"):
        super().__init__(app)
        self.public_markers = list(public_markers)
        self.login_path = login_path

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not is_public_path(path, self.public_markers) \
                and request.cookies.get(AUTH_COOKIE) != "true":
            return RedirectResponse(self.login_path, status_code=307)
        return await call_next(request)
