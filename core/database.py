"""
core/database.py -- Engine construction and error mapping shared by every store.

auth/store.py, usage/store.py and preferences/store.py each own their tables
but build engines here, so they all get the same SQLite pragmas, the same
timeouts, and the same SQLAlchemyError -> StoreFailure translation.

Timeouts:
  Every store call is bounded by the timeout passed to make_engine(): the pool
  timeout for connection checkout, plus a per-backend statement bound (SQLite
  busy timeout, PostgreSQL statement_timeout, MySQL read/write timeouts). A
  call that exceeds it surfaces as StoreFailure. Nothing here retries.

Layer rule: core/ is the kernel. No imports from api/, auth/, usage/, or preferences/.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.exceptions import StoreFailure

logger = logging.getLogger("mealplanner.store")

DEFAULT_DB_URL = "sqlite:///mealplanner.db"
DEFAULT_TIMEOUT = 5.0


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    WAL (Write-Ahead Logging) allows readers to proceed without blocking
    during writes. Set per-connection because SQLite PRAGMAs are not
    inherited by new connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def engine_options(db_url: str, timeout: float) -> tuple[dict, dict]:
    """Return (connect_args, create_engine kwargs) bounding every call by timeout.

    SQLite: busy timeout for lock waits.
    PostgreSQL: connect timeout plus a server-side statement_timeout.
    MySQL: connect timeout plus driver read/write timeouts.
    Any other backend only gets the pool checkout timeout.
    """
    backend = make_url(db_url).get_backend_name()
    if backend == "sqlite":
        return {"check_same_thread": False, "timeout": timeout}, {}

    connect_args: dict = {}
    seconds = max(int(math.ceil(timeout)), 1)
    if backend == "postgresql":
        connect_args["connect_timeout"] = seconds
        connect_args["options"] = f"-c statement_timeout={int(timeout * 1000)}"
    elif backend in ("mysql", "mariadb"):
        connect_args["connect_timeout"] = seconds
        connect_args["read_timeout"] = seconds
        connect_args["write_timeout"] = seconds
    return connect_args, {"pool_timeout": timeout, "pool_pre_ping": True}


def make_engine(db_url: str = DEFAULT_DB_URL, timeout: float = DEFAULT_TIMEOUT) -> Engine:
    """Create an engine whose calls are bounded by timeout (see engine_options)."""
    connect_args, kwargs = engine_options(db_url, timeout)
    engine = create_engine(db_url, connect_args=connect_args, **kwargs)
    if make_url(db_url).get_backend_name() == "sqlite":
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@contextmanager
def guarded(engine: Engine, operation: str) -> Iterator[Connection]:
    """Open a connection and turn any database error into StoreFailure.

    IntegrityError is re-raised untouched so stores can map constraint
    violations to domain errors (e.g. duplicate email -> Conflict).
    """
    try:
        with engine.connect() as conn:
            yield conn
    except IntegrityError:
        raise
    except SQLAlchemyError as e:
        logger.exception("Store operation %s failed", operation)
        raise StoreFailure(f"{operation}: {e}") from e


def ping(engine: Engine) -> bool:
    """Return True if the database answers a trivial query."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.warning("Database ping failed: %s", e)
        return False
