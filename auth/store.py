"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Route, flow and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  email is UNIQUE at the SQL level. The register flow checks existence first
  for the common case; the constraint catches the race where two concurrent
  registrations both pass that check. IntegrityError becomes Conflict.

Engine, timeouts and error mapping come from core/database.py.

Layer rule: no imports from api/, usage/, or preferences/.
"""

from __future__ import annotations

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import User
from core.database import DEFAULT_DB_URL, DEFAULT_TIMEOUT, guarded, make_engine, now_iso, ping
from core.exceptions import Conflict

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore()
        uid = store.insert_user("a@b.com", hash_password("secret1"))
        user = store.find_by_email("a@b.com")
        store.close()
    """

    def __init__(self, db_url: str = DEFAULT_DB_URL, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.engine: Engine = make_engine(db_url, timeout)
        _metadata.create_all(self.engine)

    def find_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with guarded(self.engine, "find_by_email") as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def exists_by_email(self, email: str) -> bool:
        with guarded(self.engine, "exists_by_email") as conn:
            row = conn.execute(select(_users.c.id).where(_users.c.email == email).limit(1)).fetchone()
        return row is not None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with guarded(self.engine, "get_by_id") as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def insert_user(self, email: str, hashed_password: str) -> int:
        """Insert a new user and return its store-assigned ID.

        Raises Conflict if the email is already taken.
        """
        stamp = now_iso()
        try:
            with guarded(self.engine, "insert_user") as conn:
                result = conn.execute(
                    _users.insert().values(
                        email=email,
                        hashed_password=hashed_password,
                        created_at=stamp,
                        updated_at=stamp,
                    )
                )
                conn.commit()
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise Conflict() from exc

    def ping(self) -> bool:
        return ping(self.engine)

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        hashed_password=row.hashed_password,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
