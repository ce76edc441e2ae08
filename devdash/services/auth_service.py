"""
Account service: sign-up, sign-in (password and GitHub), GitHub account
linking, re-authentication and account deletion.
"""

from datetime import datetime
from typing import Callable, List, Optional
import structlog

from ..auth.passwords import hash_password, verify_password
from ..database import AuthIdentityDB, UserDB
from ..exceptions import AuthenticationError, DashboardError, ReauthenticationRequired
from ..models.user_models import UserRecord
from .database_service import DatabaseService
from .github_service import GitHubService

logger = structlog.get_logger(__name__)

PASSWORD_PROVIDER = "password"
GITHUB_PROVIDER = "github.com"
MIN_PASSWORD_LENGTH = 6


def to_user_record(user: UserDB) -> UserRecord:
    """Convert a user document to the shape the UI sees."""
    return UserRecord(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        photo_url=user.photo_url,
        is_admin=bool(user.is_admin),
        is_active=user.is_active is not False,
        auth_providers=list(user.auth_providers or []),
        github_connected=bool(user.github_access_token),
        github_username=user.github_username,
        github_avatar_url=user.github_avatar_url,
        github_connected_at=user.github_connected_at,
        github_selected_repos=list(user.github_selected_repos or []),
        created_at=user.created_at,
        last_login_at=user.last_login_at,
    )


def _with_provider(providers: Optional[List[str]], provider: str) -> List[str]:
    providers = list(providers or [])
    if provider not in providers:
        providers.append(provider)
    return providers


class AuthService:
    """Service tracking signed-in identities and their user documents."""

    def __init__(
        self,
        db: DatabaseService,
        github_service_factory: Callable[[str], GitHubService] = GitHubService
    ):
        self.db = db
        self.github_service_factory = github_service_factory

    def ensure_user_record(
        self,
        identity: AuthIdentityDB,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None
    ) -> UserDB:
        """Create the identity's user document on first sight, else touch it."""
        now = datetime.utcnow()
        user, created = self.db.create_user_if_absent(
            identity.uid,
            email=identity.email,
            display_name=display_name,
            photo_url=photo_url,
            is_admin=False,
            is_active=True,
            auth_providers=list(identity.providers or []),
            github_selected_repos=[],
            created_at=now,
            last_login_at=now,
        )
        if created:
            return user

        return self.db.merge_user(
            identity.uid,
            last_login_at=now,
            auth_providers=list(identity.providers or []),
        )

    def get_active_user(self, uid: str) -> Optional[UserDB]:
        """The user behind a session, or None if gone or suspended."""
        identity = self.db.get_identity(uid)
        if identity is None:
            return None
        user = self.db.get_user(uid)
        if user is None:
            user = self.ensure_user_record(identity)
        if user.is_active is False:
            return None
        return user

    def _check_active(self, user: UserDB) -> None:
        if user.is_active is False:
            raise AuthenticationError("This account has been suspended")

    def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> UserDB:
        """Create a password identity and its user document."""
        email = (email or "").strip()
        if not email or "@" not in email:
            raise AuthenticationError("Please enter a valid email address")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise AuthenticationError(
                f"Password should be at least {MIN_PASSWORD_LENGTH} characters"
            )
        if self.db.get_identity_by_email(email) is not None:
            raise AuthenticationError("An account with this email already exists")

        identity = self.db.create_identity(
            email=email,
            password_hash=hash_password(password),
            providers=[PASSWORD_PROVIDER],
            created_at=datetime.utcnow(),
            last_login_at=datetime.utcnow(),
        )
        logger.info("User signed up", uid=identity.uid)
        return self.ensure_user_record(identity, display_name=display_name)

    def sign_in(self, email: str, password: str) -> UserDB:
        """Verify email/password credentials."""
        identity = self.db.get_identity_by_email((email or "").strip())
        if identity is None or not identity.password_hash \
                or not verify_password(password or "", identity.password_hash):
            logger.info("Sign-in rejected", reason="bad_credentials")
            raise AuthenticationError("Invalid email or password")

        self.db.update_identity(identity.uid, last_login_at=datetime.utcnow())
        user = self.ensure_user_record(identity)
        self._check_active(user)
        logger.info("User signed in", uid=identity.uid, provider=PASSWORD_PROVIDER)
        return user

    async def sign_in_with_github(self, access_token: str) -> UserDB:
        """Sign in (or sign up) with a GitHub OAuth token."""
        profile = await self.github_service_factory(access_token).get_user_profile()
        github_id = str(profile.id)

        identity = self.db.get_identity_by_github_id(github_id)
        if identity is None:
            if profile.email and self.db.get_identity_by_email(profile.email) is not None:
                raise AuthenticationError(
                    "An account already exists with the same email address. "
                    "Sign in with your password and link GitHub from your account page."
                )
            identity = self.db.create_identity(
                email=profile.email,
                github_id=github_id,
                github_login=profile.login,
                providers=[GITHUB_PROVIDER],
                created_at=datetime.utcnow(),
            )
        identity = self.db.update_identity(identity.uid, last_login_at=datetime.utcnow(),
                                           github_login=profile.login)

        user = self.ensure_user_record(
            identity,
            display_name=profile.name or profile.login,
            photo_url=profile.avatar_url,
        )
        self._check_active(user)

        user = self.db.merge_user(
            identity.uid,
            github_access_token=access_token,
            github_username=profile.login,
            github_avatar_url=profile.avatar_url,
            github_connected_at=datetime.utcnow(),
        )
        logger.info("User signed in", uid=identity.uid, provider=GITHUB_PROVIDER)
        return user

    async def link_github_account(self, uid: str, access_token: str) -> UserDB:
        """Attach a GitHub login to an existing identity."""
        identity = self.db.get_identity(uid)
        if identity is None:
            raise AuthenticationError("No user logged in")

        profile = await self.github_service_factory(access_token).get_user_profile()
        github_id = str(profile.id)

        owner = self.db.get_identity_by_github_id(github_id)
        if owner is not None and owner.uid != uid:
            raise AuthenticationError("This GitHub account is already linked to another user")

        providers = _with_provider(identity.providers, GITHUB_PROVIDER)
        self.db.update_identity(uid, github_id=github_id, github_login=profile.login,
                                providers=providers)
        user = self.db.merge_user(
            uid,
            auth_providers=providers,
            github_access_token=access_token,
            github_username=profile.login,
            github_avatar_url=profile.avatar_url,
            github_connected_at=datetime.utcnow(),
        )
        logger.info("GitHub account linked", uid=uid, github_username=profile.login)
        return user

    def reauthenticate(self, uid: str, password: str) -> None:
        """Confirm the password of the signed-in identity."""
        identity = self.db.get_identity(uid)
        if identity is None:
            raise AuthenticationError("No user logged in")
        if not identity.email:
            raise AuthenticationError("User has no email")
        if not identity.password_hash or not verify_password(password or "", identity.password_hash):
            logger.info("Re-authentication failed", uid=uid)
            raise ReauthenticationRequired(
                "Failed to re-authenticate. Please check your password and try again."
            )

    async def _reauthenticate_with_github(self, identity: AuthIdentityDB, github_token: str) -> None:
        profile = await self.github_service_factory(github_token).get_user_profile()
        if str(profile.id) != identity.github_id:
            raise ReauthenticationRequired(
                "The GitHub account you signed in with does not match this account."
            )

    async def delete_account(
        self,
        uid: str,
        password: Optional[str] = None,
        github_token: Optional[str] = None
    ) -> None:
        """
        Re-authenticate, then delete the user's notes, goals, user document
        and finally the identity itself.

        Args:
            uid: Identity to delete
            password: Current password, for password identities
            github_token: Token from a fresh GitHub OAuth round-trip, for
                GitHub identities without a password
        """
        identity = self.db.get_identity(uid)
        if identity is None:
            raise AuthenticationError("No user logged in")

        if password:
            self.reauthenticate(uid, password)
        elif GITHUB_PROVIDER in (identity.providers or []) and identity.github_id:
            if not github_token:
                raise ReauthenticationRequired("Please sign in with GitHub again to continue")
            await self._reauthenticate_with_github(identity, github_token)
        else:
            raise ReauthenticationRequired("Password is required for account deletion")

        try:
            counts = self.db.delete_user_data(uid)
        except Exception as e:
            logger.error("Error deleting user data", uid=uid, error=str(e))
            raise DashboardError("Failed to delete user data") from e

        self.db.delete_identity(uid)
        logger.info("Account deleted", uid=uid, **counts)
