"""Database engine, session factory and schema bootstrap."""

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mailprefs.core.exceptions import StorageError
from mailprefs.db.base import Base

logger = logging.getLogger("mailprefs.db")


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """Create the engine for the audit database.

    SQLite gets a busy timeout so concurrent appends wait on the database
    lock instead of failing, and in-memory URLs share one connection.
    """
    kwargs = {"echo": echo, "pool_pre_ping": True}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False, "timeout": 15}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create tables if absent. Safe to call on every startup."""
    import mailprefs.models  # noqa: F401  (registers models on Base.metadata)

    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as e:
        raise StorageError(f"Failed to initialize database: {e}") from e
    logger.info("Database initialized (%s)", engine.url.render_as_string(hide_password=True))
