"""Database bootstrap helpers shared by all services."""

from contextlib import contextmanager

from sqlalchemy import JSON, create_engine
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from tailorhub.common.config import Settings
from tailorhub.common.errors import StorageError
from tailorhub.common.logging import logger


# JSONB on postgres, plain JSON elsewhere (sqlite in tests).
JsonPayload = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""

    pass


def create_db_engine(settings: Settings) -> Engine:
    """Create the process engine with bounded lock/statement waits."""

    url = settings.database_url
    if url.startswith("sqlite"):
        # sqlite busy timeout bounds how long a writer waits for the db lock.
        return create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": settings.db_lock_timeout_seconds},
        )
    timeout_ms = int(settings.db_lock_timeout_seconds * 1000)
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_timeout=settings.db_pool_timeout_seconds,
        connect_args={"options": f"-c lock_timeout={timeout_ms} -c statement_timeout={timeout_ms}"},
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    # `expire_on_commit=False` keeps ORM objects readable after commit in handlers.
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def insert_ignore(db, model, values: dict) -> int:
    """Insert one row unless its primary/unique key already exists.

    Returns the number of inserted rows (0 or 1).
    """

    insert = pg_insert if db.get_bind().dialect.name == "postgresql" else sqlite_insert
    result = db.execute(insert(model).values(**values).on_conflict_do_nothing())
    return result.rowcount


@contextmanager
def storage_errors(operation: str):
    """Translate connection/lock-timeout failures into a retryable `StorageError`."""

    try:
        yield
    except (OperationalError, InterfaceError, PoolTimeoutError) as exc:
        logger.error("storage_error operation=%s error=%s", operation, exc)
        raise StorageError(f"{operation} failed: storage unavailable") from exc
