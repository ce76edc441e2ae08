import os

# Settings are read at import time
os.environ.setdefault("APP_SECRET_KEY", "test-secret-key")
os.environ.setdefault("GITHUB_CLIENT_ID", "test-client-id")
os.environ.setdefault("GITHUB_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("PASSWORD_HASH_ITERATIONS", "1000")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from devdash.database import DatabaseManager  # noqa: E402
from devdash.main import create_app  # noqa: E402
from devdash.services.database_service import DatabaseService  # noqa: E402
from devdash.services.github_service import GitHubService  # noqa: E402


@pytest.fixture
def github_accounts():
    """Fake GitHub API keyed by access token."""
    return {}


@pytest.fixture
def github_factory(github_accounts):
    def factory(access_token):
        return GitHubService(access_token, client=github_accounts[access_token])
    return factory


@pytest.fixture
def db():
    manager = DatabaseManager()
    manager.initialize("sqlite://")
    yield DatabaseService(manager)
    manager.close()


@pytest.fixture
def app(github_factory):
    return create_app("sqlite://", github_service_factory=github_factory)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def signed_up(client):
    """Sign up a password user on ``client`` and return the user JSON."""
    resp = client.post("/api/auth/signup", json={
        "email": "dev@example.com",
        "password": "secret123",
        "display_name": "Dev",
    })
    assert resp.status_code == 201
    return resp.json()
