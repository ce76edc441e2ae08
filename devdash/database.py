"""
Database setup and models for the Developer Dashboard application.

Two stores live side by side:

* ``auth_identities`` plays the role of the authentication provider
  (credentials and linked providers for each identity).
* ``users``, ``notes`` and ``goals`` form the document store. Notes and
  goals carry an owning ``user_id`` and are queried per user; there are no
  foreign keys, so deletes cascade explicitly in the services.
"""

import uuid
from datetime import datetime
from typing import Optional
from sqlalchemy import create_engine, Column, String, Integer, DateTime, Text, Boolean, JSON
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
import structlog

from .config import settings

logger = structlog.get_logger(__name__)

# Create SQLAlchemy base
Base = declarative_base()


def generate_id() -> str:
    return uuid.uuid4().hex


class AuthIdentityDB(Base):
    """Credentials for one authenticated identity."""
    __tablename__ = "auth_identities"

    uid = Column(String(64), primary_key=True, default=generate_id)
    email = Column(String(320), nullable=True, unique=True, index=True)
    password_hash = Column(String(255), nullable=True)
    github_id = Column(String(64), nullable=True, unique=True, index=True)
    github_login = Column(String(255), nullable=True)
    providers = Column(JSON, nullable=False, default=list)  # e.g. ["password", "github.com"]
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    last_login_at = Column(DateTime, nullable=True)


class UserDB(Base):
    """User document, keyed by identity uid."""
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)

    # Profile
    email = Column(String(320), nullable=True, index=True)
    display_name = Column(String(255), nullable=True)
    photo_url = Column(String(1000), nullable=True)

    # Flags
    is_admin = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    auth_providers = Column(JSON, nullable=True)

    # GitHub connection
    github_access_token = Column(String(255), nullable=True)
    github_username = Column(String(255), nullable=True)
    github_avatar_url = Column(String(1000), nullable=True)
    github_connected_at = Column(DateTime, nullable=True)
    github_selected_repos = Column(JSON, nullable=False, default=list)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    last_login_at = Column(DateTime, nullable=True)

    # Bumped on every admin write
    version = Column(Integer, nullable=False, default=1)


class NoteDB(Base):
    """Free-text note owned by a user."""
    __tablename__ = "notes"

    id = Column(String(64), primary_key=True, default=generate_id)
    user_id = Column(String(64), nullable=False, index=True)
    content = Column(Text, nullable=False)
    date = Column(DateTime, nullable=False, default=datetime.utcnow)


class GoalDB(Base):
    """Checklist goal owned by a user."""
    __tablename__ = "goals"

    id = Column(String(64), primary_key=True, default=generate_id)
    user_id = Column(String(64), nullable=False, index=True)
    text = Column(String(1000), nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


# Database connection and session management
class DatabaseManager:
    """Manages database connections and operations."""

    def __init__(self):
        self.engine = None
        self.SessionLocal = None
        self._initialized = False

    def initialize(self, database_url: Optional[str] = None):
        """Initialize database connection and create tables."""
        if self._initialized:
            return

        database_url = database_url or settings.database_url

        try:
            engine_kwargs = {
                "echo": settings.app_debug,  # Log SQL queries in debug mode
                "pool_pre_ping": True,
            }
            if database_url.startswith("sqlite"):
                engine_kwargs["connect_args"] = {"check_same_thread": False}
                if database_url in ("sqlite://", "sqlite:///:memory:"):
                    # One shared connection, otherwise every session sees an empty database
                    engine_kwargs["poolclass"] = StaticPool

            self.engine = create_engine(database_url, **engine_kwargs)

            # Create session factory
            self.SessionLocal = sessionmaker(
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
                bind=self.engine
            )

            # Create all tables
            Base.metadata.create_all(bind=self.engine)

            self._initialized = True
            logger.info("Database initialized successfully",
                       database_url=database_url)

        except Exception as e:
            logger.error("Failed to initialize database", error=str(e))
            raise

    def get_session(self) -> Session:
        """Get a database session."""
        if not self._initialized:
            self.initialize()

        return self.SessionLocal()

    def close(self):
        """Close database connections."""
        if self.engine:
            self.engine.dispose()
            self._initialized = False
            logger.info("Database connections closed")


# Global database manager instance
db_manager = DatabaseManager()
