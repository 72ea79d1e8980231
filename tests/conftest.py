"""
Pytest configuration for back-office backend tests.

Sets up test environment and global fixtures.
"""
import os
import pytest
from unittest.mock import MagicMock

# Disable config validation during tests
# This allows tests to run without requiring real environment variables
os.environ["VALIDATE_CONFIG"] = "false"

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("FIREBASE_PROJECT_ID", "test-project")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
# External API keys stay empty so nothing reaches a real service
os.environ["OPENAI_API_KEY"] = ""
os.environ["DEEPSEEK_API_KEY"] = ""
os.environ["GOOGLE_SPREADSHEET_ID"] = ""
os.environ["SPREADSHEET_ID"] = ""


QUERY_METHODS = ("select", "or_", "eq", "gte", "lte", "ilike", "order", "limit", "range", "is_")


def make_query(data=None, count=None, error=None):
    """
    Chainable PostgREST query builder mock.

    Every filter method returns the builder itself; execute() returns a
    response with `data` and `count`, or raises `error`.
    """
    query = MagicMock()
    for name in QUERY_METHODS:
        getattr(query, name).return_value = query
    query.not_ = query

    if error is not None:
        query.execute.side_effect = error
    else:
        query.execute.return_value = MagicMock(data=data if data is not None else [], count=count)
    return query


@pytest.fixture
def query_factory():
    """Factory for chainable query builder mocks (see make_query)."""
    return make_query


@pytest.fixture
def supabase_client():
    """
    Mock Supabase client.
    Returns a MagicMock that simulates Supabase client behavior.
    """
    mock_client = MagicMock()
    mock_client.table.return_value = make_query([])
    return mock_client


@pytest.fixture
def fresh_storage(monkeypatch):
    """Empty MemStorage installed as the process-wide cache."""
    import backoffice.db.storage as storage_module

    store = storage_module.MemStorage()
    monkeypatch.setattr(storage_module, "storage", store)
    return store


@pytest.fixture
def auth_user():
    from backoffice.auth.dependencies import AuthenticatedUser

    return AuthenticatedUser(
        user_id="test-user-id",
        firebase_uid="firebase-uid-123",
        email="test@example.com",
        role="user",
    )


@pytest.fixture
def admin_user():
    from backoffice.auth.dependencies import AuthenticatedUser

    return AuthenticatedUser(
        user_id="admin-user-id",
        firebase_uid="firebase-admin-uid",
        email="admin@example.com",
        role="admin",
    )
