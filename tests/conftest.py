"""
Pytest configuration and shared fixtures.

Every test gets an in-memory database with the schema freshly applied;
the schema is dropped again when the test finishes.
"""

import pytest
import json
from pathlib import Path
from typing import Dict, Any

from userstore.database import create_db_engine, drop_database, get_session_factory, init_database
from userstore.repository import UserRepository


@pytest.fixture(scope="session")
def engine():
    """Ephemeral in-memory store shared by the whole test session."""
    engine = create_db_engine("sqlite://")
    yield engine
    engine.dispose()


@pytest.fixture(autouse=True)
def _schema(engine):
    """Apply the schema before each test and drop it afterwards."""
    init_database(engine)
    yield
    drop_database(engine)


@pytest.fixture
def session_factory(engine):
    return get_session_factory(engine)


@pytest.fixture
def repository(session_factory) -> UserRepository:
    return UserRepository(session_factory)


@pytest.fixture
def test_user() -> Dict[str, Any]:
    """Valid creation input."""
    return {
        "name": "Test User",
        "age": 25,
        "email": "test@example.com",
    }


@pytest.fixture
def created_user(repository, test_user):
    """test_user, already stored."""
    return repository.create(test_user)


@pytest.fixture
def users_file(tmp_path) -> Path:
    """JSON array of two valid users."""
    path = tmp_path / "users.json"
    path.write_text(json.dumps([
        {"name": "User 1", "age": 30, "email": "user1@example.com"},
        {"name": "User 2", "age": 35, "email": "user2@example.com"},
    ]))
    return path
