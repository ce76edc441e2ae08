"""
Database service for the document store (users, notes, goals) and the
authentication identity store.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Tuple
from sqlalchemy import and_, desc, func, or_
from sqlalchemy.orm import Session
import structlog

from ..database import (
    db_manager, DatabaseManager, AuthIdentityDB, UserDB, NoteDB, GoalDB
)
from ..exceptions import ConcurrentModificationError, NotFoundError

logger = structlog.get_logger(__name__)


class DatabaseService:
    """Service for document-store reads and writes.

    Every method runs in its own session. There is no locking across
    methods; admin writes can opt into a version check instead.
    """

    def __init__(self, manager: Optional[DatabaseManager] = None):
        """Initialize database service."""
        self.manager = manager or db_manager
        # Ensure database is initialized
        self.manager.initialize()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self.manager.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Identities
    # ------------------------------------------------------------------

    def get_identity(self, uid: str) -> Optional[AuthIdentityDB]:
        with self._session() as session:
            return session.get(AuthIdentityDB, uid)

    def get_identity_by_email(self, email: str) -> Optional[AuthIdentityDB]:
        with self._session() as session:
            return session.query(AuthIdentityDB).filter(
                func.lower(AuthIdentityDB.email) == email.lower()
            ).first()

    def get_identity_by_github_id(self, github_id: str) -> Optional[AuthIdentityDB]:
        with self._session() as session:
            return session.query(AuthIdentityDB).filter(
                AuthIdentityDB.github_id == github_id
            ).first()

    def create_identity(self, **fields: Any) -> AuthIdentityDB:
        with self._session() as session:
            identity = AuthIdentityDB(**fields)
            session.add(identity)
            session.flush()
            logger.info("Identity created", uid=identity.uid, providers=identity.providers)
            return identity

    def update_identity(self, uid: str, **fields: Any) -> AuthIdentityDB:
        with self._session() as session:
            identity = session.get(AuthIdentityDB, uid)
            if identity is None:
                raise NotFoundError(f"Identity {uid} not found")
            for key, value in fields.items():
                setattr(identity, key, value)
            return identity

    def delete_identity(self, uid: str) -> bool:
        with self._session() as session:
            deleted = session.query(AuthIdentityDB).filter(AuthIdentityDB.uid == uid).delete()
            logger.info("Identity deleted", uid=uid, deleted=bool(deleted))
            return bool(deleted)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def get_user(self, user_id: str) -> Optional[UserDB]:
        with self._session() as session:
            return session.get(UserDB, user_id)

    def create_user_if_absent(self, user_id: str, **fields: Any) -> Tuple[UserDB, bool]:
        """Create the user document unless one exists; returns (user, created)."""
        with self._session() as session:
            user = session.get(UserDB, user_id)
            if user is not None:
                return user, False

            user = UserDB(id=user_id, **fields)
            session.add(user)
            session.flush()
            logger.info("User record created", user_id=user_id)
            return user, True

    def merge_user(self, user_id: str, **fields: Any) -> UserDB:
        """Set the given fields, creating the document if needed."""
        with self._session() as session:
            user = session.get(UserDB, user_id)
            if user is None:
                user = UserDB(id=user_id)
                session.add(user)
            for key, value in fields.items():
                setattr(user, key, value)
            session.flush()
            return user

    def update_user(
        self,
        user_id: str,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None
    ) -> UserDB:
        """
        Update an existing user document.

        Args:
            user_id: Document id
            fields: Column values to set
            expected_version: If given, the write only happens when the stored
                version still matches

        Raises:
            NotFoundError: No such user
            ConcurrentModificationError: Version check failed
        """
        with self._session() as session:
            user = session.get(UserDB, user_id)
            if user is None:
                raise NotFoundError(f"User {user_id} not found")

            if expected_version is not None:
                updated = session.query(UserDB).filter(
                    and_(UserDB.id == user_id, UserDB.version == expected_version)
                ).update(
                    {**fields, "version": expected_version + 1},
                    synchronize_session="fetch"
                )
                if not updated:
                    raise ConcurrentModificationError(user_id, expected_version, user.version)
            else:
                for key, value in fields.items():
                    setattr(user, key, value)
                user.version = (user.version or 0) + 1

            session.flush()
            session.refresh(user)
            return user

    def delete_user_data(self, user_id: str) -> Dict[str, int]:
        """Delete the user's notes, goals and user document."""
        with self._session() as session:
            notes = session.query(NoteDB).filter(NoteDB.user_id == user_id).delete()
            goals = session.query(GoalDB).filter(GoalDB.user_id == user_id).delete()
            users = session.query(UserDB).filter(UserDB.id == user_id).delete()

        counts = {"notes": notes, "goals": goals, "users": users}
        logger.info("User data deleted", user_id=user_id, **counts)
        return counts

    def count_users(self) -> int:
        with self._session() as session:
            return session.query(func.count(UserDB.id)).scalar() or 0

    def list_all_users(self) -> List[UserDB]:
        with self._session() as session:
            return session.query(UserDB).order_by(
                desc(UserDB.created_at), desc(UserDB.id)
            ).all()

    def list_users(
        self,
        limit: int,
        cursor: Optional[str] = None,
        search: Optional[str] = None
    ) -> List[UserDB]:
        """
        Page through users, newest first.

        Args:
            limit: Page size
            cursor: Id of the last user on the previous page
            search: Case-insensitive substring of email or display name
        """
        with self._session() as session:
            query = session.query(UserDB)

            if search:
                escaped = search.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
                pattern = f"%{escaped}%"
                query = query.filter(or_(
                    func.lower(UserDB.email).like(pattern, escape="\\"),
                    func.lower(UserDB.display_name).like(pattern, escape="\\"),
                ))

            if cursor:
                anchor = session.get(UserDB, cursor)
                if anchor is None:
                    raise NotFoundError(f"Unknown cursor {cursor}")
                query = query.filter(or_(
                    UserDB.created_at < anchor.created_at,
                    and_(UserDB.created_at == anchor.created_at, UserDB.id < anchor.id),
                ))

            return query.order_by(
                desc(UserDB.created_at), desc(UserDB.id)
            ).limit(limit).all()

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    def list_notes(self, user_id: str) -> List[NoteDB]:
        with self._session() as session:
            return session.query(NoteDB).filter(
                NoteDB.user_id == user_id
            ).order_by(desc(NoteDB.date)).all()

    def count_notes(self, user_id: str) -> int:
        with self._session() as session:
            return session.query(func.count(NoteDB.id)).filter(
                NoteDB.user_id == user_id
            ).scalar() or 0

    def add_note(self, user_id: str, content: str) -> NoteDB:
        with self._session() as session:
            note = NoteDB(user_id=user_id, content=content, date=datetime.utcnow())
            session.add(note)
            session.flush()
            return note

    def update_note(self, user_id: str, note_id: str, content: str) -> NoteDB:
        with self._session() as session:
            note = session.get(NoteDB, note_id)
            if note is None or note.user_id != user_id:
                raise NotFoundError(f"Note {note_id} not found")
            note.content = content
            return note

    def delete_note(self, user_id: str, note_id: str) -> None:
        with self._session() as session:
            note = session.get(NoteDB, note_id)
            if note is None or note.user_id != user_id:
                raise NotFoundError(f"Note {note_id} not found")
            session.delete(note)

    # ------------------------------------------------------------------
    # Goals
    # ------------------------------------------------------------------

    def list_goals(self, user_id: str) -> List[GoalDB]:
        with self._session() as session:
            return session.query(GoalDB).filter(
                GoalDB.user_id == user_id
            ).order_by(GoalDB.created_at).all()

    def add_goal(self, user_id: str, text: str) -> GoalDB:
        with self._session() as session:
            goal = GoalDB(user_id=user_id, text=text, completed=False, created_at=datetime.utcnow())
            session.add(goal)
            session.flush()
            return goal

    def set_goal_completed(self, user_id: str, goal_id: str, completed: bool) -> GoalDB:
        with self._session() as session:
            goal = session.get(GoalDB, goal_id)
            if goal is None or goal.user_id != user_id:
                raise NotFoundError(f"Goal {goal_id} not found")
            goal.completed = completed
            return goal

    def get_goal(self, user_id: str, goal_id: str) -> GoalDB:
        with self._session() as session:
            goal = session.get(GoalDB, goal_id)
            if goal is None or goal.user_id != user_id:
                raise NotFoundError(f"Goal {goal_id} not found")
            return goal

    def delete_goal(self, user_id: str, goal_id: str) -> None:
        with self._session() as session:
            goal = session.get(GoalDB, goal_id)
            if goal is None or goal.user_id != user_id:
                raise NotFoundError(f"Goal {goal_id} not found")
            session.delete(goal)
