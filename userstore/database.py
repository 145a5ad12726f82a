"""
Database schema and connection management.

Uses SQLAlchemy for user storage. SQLite is the default store; any URL
SQLAlchemy understands works as long as the backend supports RETURNING.
"""

from pathlib import Path
from typing import Any, Dict

from sqlalchemy import create_engine, Column, Integer, String
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .logger import get_logger

Base = declarative_base()

logger = get_logger()


class User(Base):
    """User record model."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    age = Column(Integer, nullable=False)
    email = Column(String, nullable=False, unique=True)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "age": self.age, "email": self.email}

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, name={self.name!r}, age={self.age!r}, email={self.email!r})"


def _is_memory_sqlite(url) -> bool:
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def create_db_engine(database_url: str) -> Engine:
    """
    Create an engine for the given connection URL.

    File-backed SQLite databases get their parent directory created. In-memory
    SQLite shares one connection so every session sees the same database.

    Args:
        database_url: SQLAlchemy connection URL

    Returns:
        SQLAlchemy engine
    """
    url = make_url(database_url)

    if _is_memory_sqlite(url):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    if url.get_backend_name() == "sqlite":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    return create_engine(url)


def init_database(engine: Engine) -> None:
    """
    Create the users table if it does not exist yet.

    Args:
        engine: Engine bound to the target database
    """
    Base.metadata.create_all(engine)
    logger.debug("Schema applied", url=engine.url.render_as_string(hide_password=True))


def drop_database(engine: Engine) -> None:
    """Drop every table owned by the schema."""
    Base.metadata.drop_all(engine)
    logger.debug("Schema dropped", url=engine.url.render_as_string(hide_password=True))


def get_session_factory(engine: Engine) -> sessionmaker:
    """
    Build the session factory handed to repositories.

    Objects are not expired on commit, so rows returned from a closed
    session keep their loaded values.
    """
    return sessionmaker(bind=engine, expire_on_commit=False)


def get_session(database_url: str):
    """
    Get database session.

    Args:
        database_url: SQLAlchemy connection URL

    Returns:
        SQLAlchemy session
    """
    engine = create_db_engine(database_url)
    Session = get_session_factory(engine)
    return Session()
