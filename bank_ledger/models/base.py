"""
Database engine, session management, and base model.

This module is the foundation for all database operations.
Every model inherits from Base. Every request gets a session
from get_db(). Every ledger operation runs inside atomic().
"""

from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker, DeclarativeBase

from bank_ledger.config import get_settings
from bank_ledger.exceptions import ConcurrencyConflict

settings = get_settings()


def engine_options(database_url: str, lock_timeout: float) -> dict:
    """
    Build create_engine() keyword arguments for a database URL.

    SQLite needs a busy timeout so that concurrent writers wait
    for the database lock instead of failing immediately.
    PostgreSQL gets a lock_timeout so a blocked row lock ends in
    an error rather than an indefinite wait.
    """
    options = {"pool_pre_ping": True}
    if database_url.startswith("sqlite"):
        options["connect_args"] = {
            "check_same_thread": False,
            "timeout": lock_timeout,
        }
    elif database_url.startswith("postgresql"):
        options["connect_args"] = {
            "options": f"-c lock_timeout={int(lock_timeout * 1000)}",
        }
    return options


# --- Engine ---
# pool_pre_ping=True tests connections before using them,
# which handles cases where the database restarted or a
# connection went stale.
engine = create_engine(
    settings.DATABASE_URL,
    **engine_options(settings.DATABASE_URL, settings.DB_LOCK_TIMEOUT),
)

# --- Session Factory ---
# autocommit=False means we explicitly control when changes
# are saved. autoflush=False means SQL is only sent when we
# flush or commit.
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


# Serialization failure, deadlock, lock_not_available
CONFLICT_SQLSTATES = {"40001", "40P01", "55P03"}
# Lock wait timeout, deadlock
CONFLICT_MYSQL_CODES = {1205, 1213}
CONFLICT_SQLITE_MESSAGES = ("database is locked", "database table is locked")


def is_conflict(error: OperationalError) -> bool:
    """
    Tell a lock or serialization failure apart from other
    operational errors such as a lost connection or a missing table.
    """
    orig = error.orig
    if getattr(orig, "pgcode", None) in CONFLICT_SQLSTATES:
        return True
    args = getattr(orig, "args", ())
    if args and args[0] in CONFLICT_MYSQL_CODES:
        return True
    message = str(orig or error).lower()
    return any(text in message for text in CONFLICT_SQLITE_MESSAGES)


@contextmanager
def atomic(db: Session):
    """
    Run a block as one unit of work.

    Commits when the block exits normally and rolls back on
    every other exit path. Lock timeouts, deadlocks, and
    serialization failures reported by the database are
    re-raised as ConcurrencyConflict so callers know the
    operation can be retried as a whole. Any other database
    error propagates unchanged.
    """
    try:
        yield db
        db.commit()
    except OperationalError as e:
        db.rollback()
        if not is_conflict(e):
            raise
        raise ConcurrencyConflict(str(e.orig or e)) from e
    except BaseException:
        db.rollback()
        raise


# --- Dependency for FastAPI ---
def get_db():
    """
    Provide a database session for a single request.

    The try/finally pattern ensures the session is always
    closed, preventing connection leaks.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
