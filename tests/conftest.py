# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - Swaps the Supabase singleton for an in-memory double
# - Authenticated and anonymous TestClients for the API
# =============================================================================

import os

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-with-enough-length")
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from app.auth import AuthUser, get_current_user
from app.main import app
from app.rate_limit import ALL_LIMITERS
from lib.supabase_client import SupabaseClient
from tests.fakes import FakeSupabase

USER_ID = UUID("11111111-1111-4111-8111-111111111111")
OTHER_USER_ID = UUID("22222222-2222-4222-8222-222222222222")


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def fake_db():
    """In-memory Supabase shared by services during one test."""
    db = FakeSupabase()
    SupabaseClient.set_client(db)
    yield db
    SupabaseClient.set_client(None)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    for limiter in ALL_LIMITERS:
        limiter.reset()
    yield
    for limiter in ALL_LIMITERS:
        limiter.reset()


@pytest.fixture
def user():
    return AuthUser(id=USER_ID, email="dev@example.com")


@pytest.fixture
def client(user):
    """TestClient authenticated as `user`."""
    app.dependency_overrides[get_current_user] = lambda: user
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def anon_client():
    """TestClient without authentication overrides."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sample_tree():
    """GitHub recursive tree response for a small web app."""
    return {
        "sha": "abc123",
        "tree": [
            {"path": "src", "type": "tree"},
            {"path": "src/main.py", "type": "blob", "size": 812},
            {"path": "src/api", "type": "tree"},
            {"path": "src/api/routes.py", "type": "blob", "size": 1400},
            {"path": "README.md", "type": "blob", "size": 120},
            {"path": "node_modules/react/index.js", "type": "blob", "size": 50},
            {"path": "public/logo.png", "type": "blob", "size": 9000},
        ],
    }


@pytest.fixture
def make_project(fake_db):
    """Insert a project row, owned by the test user unless told otherwise."""
    def _make(user_id=USER_ID, repo_name="octocat/hello-world", github_token="gho_test", **extra):
        return fake_db.add("projects", {
            "user_id": str(user_id),
            "repo_name": repo_name,
            "installation_id": "1296269",
            "github_token": github_token,
            "branch": "main",
            **extra,
        })
    return _make


@pytest.fixture
def make_snapshot(fake_db):
    def _make(project_id, markdown="# Architecture\n\nA FastAPI service.", repo_structure=None, **extra):
        data = {"project_id": project_id, "markdown": markdown, **extra}
        if repo_structure is not None:
            data["repo_structure"] = repo_structure
        return fake_db.add("snapshots", data)
    return _make


@pytest.fixture
def make_task(fake_db):
    def _make(project_id, snapshot_id, title="Add login", **extra):
        return fake_db.add("tasks", {
            "project_id": project_id,
            "snapshot_id": snapshot_id,
            "title": title,
            "description": "Add a login page with email and password",
            "markdown": f"# Task: {title}\n",
            **extra,
        })
    return _make


@pytest.fixture
def make_subscription(fake_db):
    def _make(user_id=USER_ID, plan_id="pro", status="active", **extra):
        return fake_db.add("subscriptions", {
            "user_id": str(user_id),
            "plan_id": plan_id,
            "status": status,
            "stripe_customer_id": "cus_test",
            "stripe_subscription_id": "sub_test",
            **extra,
        })
    return _make
