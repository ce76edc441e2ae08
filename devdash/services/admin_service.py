"""
Admin service for user management.
"""

from datetime import datetime
from typing import List, Optional
import structlog

from ..config import settings
from ..database import UserDB
from ..exceptions import AdminAuthorizationError, NotFoundError
from ..models.user_models import AdminOverview, AdminUser, UserPage
from .database_service import DatabaseService

logger = structlog.get_logger(__name__)


def infer_auth_providers(user: UserDB) -> List[str]:
    """Stored provider list, or a best guess from the record's fields."""
    if user.auth_providers:
        return list(user.auth_providers)

    providers = []
    if user.github_access_token:
        providers.append("github.com")
    if user.email and not user.github_access_token:
        providers.append("password")
    return providers


def to_admin_user(user: UserDB) -> AdminUser:
    return AdminUser(
        id=user.id,
        email=user.email or None,
        display_name=user.display_name or None,
        photo_url=user.photo_url or None,
        created_at=user.created_at or datetime.utcnow(),
        last_login_at=user.last_login_at,
        is_admin=bool(user.is_admin),
        is_active=user.is_active is not False,
        auth_providers=infer_auth_providers(user),
        github_username=user.github_username,
        version=user.version or 1,
    )


class AdminService:
    """User management on behalf of an acting user.

    Every operation re-reads the actor's admin flag first.
    """

    def __init__(self, db: DatabaseService, actor_id: str, page_size: Optional[int] = None):
        self.db = db
        self.actor_id = actor_id
        self.page_size = page_size or settings.admin_users_per_page

    @property
    def is_admin(self) -> bool:
        actor = self.db.get_user(self.actor_id)
        return bool(actor and actor.is_admin)

    def _require_admin(self, action: str) -> None:
        if not self.is_admin:
            logger.warning("Unauthorized admin action", actor_id=self.actor_id, action=action)
            raise AdminAuthorizationError()

    def list_users(self, cursor: Optional[str] = None, search: Optional[str] = None) -> UserPage:
        """
        One page of users, newest first.

        Args:
            cursor: ``next_cursor`` from the previous page; None for the first page
            search: Optional email / display name substring
        """
        self._require_admin("list_users")

        rows = self.db.list_users(limit=self.page_size, cursor=cursor, search=search)
        users = [to_admin_user(row) for row in rows]
        next_cursor = users[-1].id if len(users) == self.page_size else None

        return UserPage(
            users=users,
            total_users=self.db.count_users(),
            page_size=self.page_size,
            next_cursor=next_cursor,
        )

    def get_user_details(self, user_id: str) -> Optional[AdminUser]:
        self._require_admin("get_user_details")
        user = self.db.get_user(user_id)
        return to_admin_user(user) if user else None

    def update_user_admin(
        self,
        user_id: str,
        is_admin: bool,
        expected_version: Optional[int] = None
    ) -> AdminUser:
        """Grant or revoke the admin flag."""
        self._require_admin("update_user_admin")
        user = self.db.update_user(user_id, {"is_admin": is_admin}, expected_version)
        logger.info("User admin flag updated", actor_id=self.actor_id,
                   user_id=user_id, is_admin=is_admin)
        return to_admin_user(user)

    def update_user_status(
        self,
        user_id: str,
        is_active: bool,
        expected_version: Optional[int] = None
    ) -> AdminUser:
        """Suspend or reactivate a user."""
        self._require_admin("update_user_status")
        user = self.db.update_user(user_id, {"is_active": is_active}, expected_version)
        logger.info("User status updated", actor_id=self.actor_id,
                   user_id=user_id, is_active=is_active)
        return to_admin_user(user)

    def delete_user_account(self, user_id: str) -> None:
        """Delete a user's notes, goals and user document."""
        self._require_admin("delete_user_account")
        if self.db.get_user(user_id) is None:
            raise NotFoundError(f"User {user_id} not found")

        counts = self.db.delete_user_data(user_id)
        logger.info("User account deleted by admin", actor_id=self.actor_id,
                   user_id=user_id, **counts)

    def get_overview(self, recent: int = 5) -> AdminOverview:
        self._require_admin("get_overview")
        users = [to_admin_user(row) for row in self.db.list_all_users()]

        return AdminOverview(
            total_users=len(users),
            active_users=sum(1 for user in users if user.is_active),
            suspended_users=sum(1 for user in users if not user.is_active),
            admin_users=sum(1 for user in users if user.is_admin),
            password_users=sum(1 for user in users if "password" in user.auth_providers),
            github_users=sum(1 for user in users if "github.com" in user.auth_providers),
            recent_users=users[:recent],
        )
