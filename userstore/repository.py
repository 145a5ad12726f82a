"""
Users Repository.

Responsibilities:
- CRUD operations for the users table.
- One statement per call; writes commit, or roll back and re-raise.

Non-Responsibilities:
- No business logic.
- No retries and no translation of store errors.

Invariant:
A missing row is an ordinary outcome: lookups and updates return None,
deletes are silent.
"""
from typing import Any, List, Mapping, Optional, Sequence, TypedDict

from sqlalchemy import delete, exists, insert, select, update
from sqlalchemy.orm import sessionmaker

from .database import User
from .schema import is_valid_email

USER_FIELDS = ("name", "age", "email")


def _check_fields(data: Mapping[str, Any]) -> None:
    # id is generated by the store and never written by callers
    unknown = set(data) - set(USER_FIELDS)
    if unknown:
        raise ValueError(f"Cannot write field(s): {', '.join(sorted(unknown))}")


class NewUser(TypedDict):
    """Creation input: a User without its generated id."""

    name: str
    age: int
    email: str


class UserCreationError(Exception):
    """Raised when an insert returns no rows."""
    pass


class UserRepository:
    """
    Data access layer for the users table.

    Each call opens its own session from the factory, so an instance keeps
    no state besides the factory and can be shared between callers.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def create(self, user: NewUser) -> User:
        """
        Insert one user and return the stored row, id included.

        Raises:
            UserCreationError: If the store returned no row
            ValueError: If user carries id or another unknown field
            sqlalchemy.exc.IntegrityError: If the e-mail is already taken
        """
        _check_fields(user)
        stmt = insert(User).values(**user).returning(User)
        with self._session_factory() as session:
            with session.begin():
                created = session.scalars(stmt).first()
        if created is None:
            raise UserCreationError("Failed to create user")
        return created

    def create_many(self, users: Sequence[NewUser]) -> List[User]:
        """
        Insert a batch of users in one round trip.

        Rows come back in the same order as the input. An empty batch raises
        UserCreationError without reaching the store. Any row carrying id or an
        unknown field raises ValueError before anything is inserted.
        """
        rows = [dict(user) for user in users]
        for row in rows:
            _check_fields(row)
        if not rows:
            raise UserCreationError("Failed to create users")

        stmt = insert(User).returning(User, sort_by_parameter_order=True)
        with self._session_factory() as session:
            with session.begin():
                created = list(session.scalars(stmt, rows).all())
        if not created:
            raise UserCreationError("Failed to create users")
        return created

    def find_all(self) -> List[User]:
        with self._session_factory() as session:
            return list(session.scalars(select(User)).all())

    def find_by_id(self, user_id: int) -> Optional[User]:
        with self._session_factory() as session:
            return session.get(User, user_id)

    def find_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(User.email == email)
        with self._session_factory() as session:
            return session.scalars(stmt).first()

    def update(self, user_id: int, data: Mapping[str, Any]) -> Optional[User]:
        """
        Apply a partial update and return the updated row.

        Only name, age and email can change. Returns None when no row has
        the given id; an empty mapping writes nothing and returns the row
        as it is.

        Raises:
            ValueError: If data names a field that cannot be updated
        """
        _check_fields(data)
        if not data:
            return self.find_by_id(user_id)

        stmt = update(User).where(User.id == user_id).values(**data).returning(User)
        with self._session_factory() as session:
            with session.begin():
                return session.scalars(stmt).one_or_none()

    def delete(self, user_id: int) -> None:
        stmt = delete(User).where(User.id == user_id)
        with self._session_factory() as session:
            with session.begin():
                session.execute(stmt)

    def exists(self, user_id: int) -> bool:
        """Existence probe that does not load the row."""
        stmt = select(exists().where(User.id == user_id))
        with self._session_factory() as session:
            return bool(session.scalar(stmt))

    def validate_email(self, email: str) -> bool:
        """Syntax check only; deliverability and uniqueness are not checked."""
        return is_valid_email(email)
