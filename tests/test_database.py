"""
Tests for database.py - schema and connection helpers.
"""

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError

from userstore.database import (
    User,
    create_db_engine,
    drop_database,
    get_session,
    get_session_factory,
    init_database,
)


class TestDatabaseInit:
    """Test database initialization."""

    def test_init_creates_database_file(self, tmp_path):
        """Test that init_database creates the database file."""
        db_path = tmp_path / "test.db"
        assert not db_path.exists()

        engine = create_db_engine(f"sqlite:///{db_path}")
        init_database(engine)
        engine.dispose()

        assert db_path.exists()

    def test_init_creates_tables(self, tmp_path):
        """Test that init_database creates the users table."""
        db_url = f"sqlite:///{tmp_path / 'test.db'}"
        engine = create_db_engine(db_url)
        init_database(engine)

        session = get_session(db_url)
        # Should not raise error if table exists
        result = session.query(User).count()
        assert result == 0
        session.close()
        engine.dispose()

    def test_init_creates_parent_directories(self, tmp_path):
        """Test that create_db_engine creates parent directories if missing."""
        db_path = tmp_path / "nested" / "dir" / "test.db"
        assert not db_path.parent.exists()

        engine = create_db_engine(f"sqlite:///{db_path}")
        init_database(engine)
        engine.dispose()

        assert db_path.exists()

    def test_init_is_idempotent(self, engine):
        """Applying the schema twice should not fail."""
        init_database(engine)
        assert "users" in inspect(engine).get_table_names()

    def test_drop_removes_table(self, engine):
        drop_database(engine)
        try:
            assert "users" not in inspect(engine).get_table_names()
        finally:
            init_database(engine)

    def test_users_columns(self, engine):
        """The table should expose id, name, age and email."""
        columns = {c["name"]: c for c in inspect(engine).get_columns("users")}

        assert set(columns) == {"id", "name", "age", "email"}
        assert columns["id"]["primary_key"]
        assert not columns["name"]["nullable"]
        assert not columns["age"]["nullable"]
        assert not columns["email"]["nullable"]


class TestInMemoryEngine:
    """In-memory databases must be shared between sessions."""

    def test_sessions_share_memory_database(self):
        engine = create_db_engine("sqlite://")
        init_database(engine)
        Session = get_session_factory(engine)

        with Session() as session:
            session.add(User(name="A", age=1, email="a@example.com"))
            session.commit()

        with Session() as session:
            assert session.query(User).count() == 1

        engine.dispose()


class TestUserModel:
    """Test constraints on the User model."""

    @pytest.fixture
    def db_session(self, session_factory):
        """Return a session on the ephemeral test database."""
        session = session_factory()
        yield session
        session.close()

    def test_create_user(self, db_session):
        """Test creating a new user."""
        db_session.add(User(name="Test User", age=25, email="test@example.com"))
        db_session.commit()

        result = db_session.query(User).filter_by(email="test@example.com").first()
        assert result is not None
        assert result.id is not None
        assert result.name == "Test User"

    def test_create_user_without_required_fields_fails(self, db_session):
        """Test that creating a user without required fields fails."""
        db_session.add(User(name="Nobody"))

        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_duplicate_email_fails(self, db_session):
        """Test that a duplicate email raises an error."""
        db_session.add(User(name="One", age=20, email="same@example.com"))
        db_session.commit()

        db_session.add(User(name="Two", age=30, email="same@example.com"))

        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_to_dict(self, db_session):
        user = User(name="Test User", age=25, email="test@example.com")
        db_session.add(user)
        db_session.commit()

        assert user.to_dict() == {
            "id": user.id,
            "name": "Test User",
            "age": 25,
            "email": "test@example.com",
        }
