"""
Configuration management for the Developer Dashboard application.
"""

from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # GitHub OAuth Configuration
    github_client_id: str = ""
    github_client_secret: str = ""
    github_oauth_scope: str = "repo"
    oauth_state_max_age: int = 60 * 5

    # Application Configuration
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_debug: bool = False
    app_env: str = "development"
    app_url: str = "http://localhost:8000"
    app_secret_key: str

    # Session Configuration
    session_expire_minutes: int = 60 * 24 * 7
    jwt_algorithm: str = "HS256"
    password_hash_iterations: int = 390000

    # Database Configuration
    database_url: str = "sqlite:///./developer_dashboard.db"

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "json"

    # Dashboard Configuration
    dashboard_title: str = "Developer Dashboard"
    admin_users_per_page: int = 10

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    @property
    def github_redirect_uri(self) -> str:
        """Callback URL registered with the GitHub OAuth app."""
        return f"{self.app_url.rstrip('/')}/api/github/callback"

    @property
    def public_path_markers(self) -> List[str]:
        """Path fragments that bypass the auth cookie route guard."""
        return [
            "/login",
            "/signup",
            "/github-success",
            "/github-error",
            "/api/github/auth",
            "/api/github/callback",
            "/static",
            "/health",
        ]


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    return settings
