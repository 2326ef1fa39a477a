"""
User Store
==========

Identity persistence behind a small contract:

    find_by_email(email) -> User | None
    find_by_id(user_id) -> User | None
    create(email, password_hash) -> User
    update(user_id, fields) -> User | None

Uniqueness of ``email`` is enforced by the store itself; a write that would
break it raises ``DuplicateEmailError``.

Two implementations:
- InMemoryUserStore: process-local dict, used for development and tests
- SqlAlchemyUserStore: any SQLAlchemy database (SQLite, PostgreSQL, ...)

Stores are constructed explicitly and injected into the services; nothing in
this module keeps global state.
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import DateTime, String, create_engine, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from exceptions import DuplicateEmailError
from models import User, utcnow


logger = logging.getLogger(__name__)


def new_user_id() -> str:
    return uuid.uuid4().hex


class UserStore(ABC):
    """Persistence contract for users."""

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[User]:
        ...

    @abstractmethod
    def find_by_id(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    def create(self, email: str, password_hash: str) -> User:
        """Persist a new user. Raises DuplicateEmailError if the email is taken."""

    @abstractmethod
    def update(self, user_id: str, fields: dict[str, Any]) -> Optional[User]:
        """Apply ``fields`` to a user. Returns None if the user does not exist."""

    def ping(self) -> bool:
        """Whether the backing storage is reachable."""
        return True


class InMemoryUserStore(UserStore):
    """
    Keep users in process memory.

    All reads and writes go through one lock so the email uniqueness check
    and the write happen atomically.
    """

    def __init__(self):
        self._users: dict[str, User] = {}
        self._ids_by_email: dict[str, str] = {}
        self._lock = threading.Lock()

    def find_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            user_id = self._ids_by_email.get(email)
            return self._users.get(user_id) if user_id else None

    def find_by_id(self, user_id: str) -> Optional[User]:
        with self._lock:
            return self._users.get(user_id)

    def create(self, email: str, password_hash: str) -> User:
        with self._lock:
            if email in self._ids_by_email:
                raise DuplicateEmailError(email)
            user = User(id=new_user_id(), email=email, password_hash=password_hash)
            self._users[user.id] = user
            self._ids_by_email[email] = user.id
            return user

    def update(self, user_id: str, fields: dict[str, Any]) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            new_email = fields.get("email")
            if new_email is not None and new_email != user.email:
                if new_email in self._ids_by_email:
                    raise DuplicateEmailError(new_email)
                del self._ids_by_email[user.email]
                self._ids_by_email[new_email] = user_id
            updated = user.model_copy(update=fields)
            self._users[user_id] = updated
            return updated

    def count(self) -> int:
        with self._lock:
            return len(self._users)

    def clear(self) -> None:
        """Remove every user (tests only)."""
        with self._lock:
            self._users.clear()
            self._ids_by_email.clear()


# =============================================================================
# SQLAlchemy Store
# =============================================================================

class Base(DeclarativeBase):
    pass


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(256))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    def to_domain(self) -> User:
        return User(
            id=self.id,
            email=self.email,
            password_hash=self.password_hash,
            created_at=self.created_at,
        )


class SqlAlchemyUserStore(UserStore):
    """
    Keep users in a relational database.

    The unique index on ``users.email`` is the source of truth for
    uniqueness; an IntegrityError on write becomes DuplicateEmailError.

    Args:
        database_url: SQLAlchemy connection string
        create_schema: Create the users table if it does not exist
    """

    def __init__(self, database_url: str, create_schema: bool = True):
        engine_options: dict[str, Any] = {"future": True, "pool_pre_ping": True}
        if database_url.startswith("sqlite"):
            engine_options["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection, otherwise each session gets an empty database
                engine_options["poolclass"] = StaticPool

        self.engine = create_engine(database_url, **engine_options)
        self._session_factory = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False
        )
        if create_schema:
            Base.metadata.create_all(bind=self.engine)
            logger.info("User store schema ensured")

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def find_by_email(self, email: str) -> Optional[User]:
        with self.session_scope() as session:
            row = session.scalars(select(UserRow).where(UserRow.email == email)).first()
            return row.to_domain() if row else None

    def find_by_id(self, user_id: str) -> Optional[User]:
        with self.session_scope() as session:
            row = session.get(UserRow, user_id)
            return row.to_domain() if row else None

    def create(self, email: str, password_hash: str) -> User:
        try:
            with self.session_scope() as session:
                row = UserRow(
                    id=new_user_id(),
                    email=email,
                    password_hash=password_hash,
                    created_at=utcnow(),
                )
                session.add(row)
                session.flush()
                return row.to_domain()
        except IntegrityError as exc:
            raise DuplicateEmailError(email) from exc

    def update(self, user_id: str, fields: dict[str, Any]) -> Optional[User]:
        try:
            with self.session_scope() as session:
                row = session.get(UserRow, user_id)
                if row is None:
                    return None
                for name, value in fields.items():
                    setattr(row, name, value)
                session.flush()
                return row.to_domain()
        except IntegrityError as exc:
            raise DuplicateEmailError(str(fields.get("email"))) from exc

    def ping(self) -> bool:
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning(f"User store ping failed: {e}")
            return False

    def clear(self) -> None:
        """Remove every user (tests only)."""
        with self.session_scope() as session:
            session.query(UserRow).delete()


def create_user_store(database_url: Optional[str]) -> UserStore:
    """
    Build the user store for a connection string.

    Args:
        database_url: SQLAlchemy URL, or None/empty for the in-memory store

    Returns:
        UserStore: The configured store
    """
    if database_url:
        logger.info("Using SQL user store")
        return SqlAlchemyUserStore(database_url)
    logger.info("DATABASE_URL not set, using in-memory user store")
    return InMemoryUserStore()
