"""
Pydantic models for user accounts and the admin panel.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class UserRecord(BaseModel):
    """The signed-in user's own document, without the GitHub token."""
    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    is_admin: bool = False
    is_active: bool = True
    auth_providers: List[str] = []
    github_connected: bool = False
    github_username: Optional[str] = None
    github_avatar_url: Optional[str] = None
    github_connected_at: Optional[datetime] = None
    github_selected_repos: List[str] = []
    created_at: datetime
    last_login_at: Optional[datetime] = None

    @property
    def initials(self) -> str:
        """Two-letter avatar fallback."""
        source = self.display_name or self.email
        return source[:2].upper() if source else "U"


class AdminUser(BaseModel):
    """A user as seen from the admin panel."""
    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    created_at: datetime
    last_login_at: Optional[datetime] = None
    is_admin: bool = False
    is_active: bool = True
    auth_providers: List[str] = []
    github_username: Optional[str] = None
    version: int = 1


class UserPage(BaseModel):
    """One page of the admin user listing."""
    users: List[AdminUser]
    total_users: int
    page_size: int
    next_cursor: Optional[str] = None


class AdminOverview(BaseModel):
    """Counts shown on the admin landing page."""
    total_users: int = 0
    active_users: int = 0
    suspended_users: int = 0
    admin_users: int = 0
    password_users: int = 0
    github_users: int = 0
    recent_users: List[AdminUser] = []


class SignUpRequest(BaseModel):
    email: str
    password: str
    display_name: Optional[str] = None


class SignInRequest(BaseModel):
    email: str
    password: str


class DeleteAccountRequest(BaseModel):
    """Body of the account deletion form."""
    confirmation: str = Field(..., description='Must be the literal text "DELETE"')
    password: Optional[str] = None


class AdminFlagUpdate(BaseModel):
    is_admin: bool
    expected_version: Optional[int] = None


class AdminStatusUpdate(BaseModel):
    is_active: bool
    expected_version: Optional[int] = None
