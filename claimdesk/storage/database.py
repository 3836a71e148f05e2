"""Database engine management using SQLAlchemy.

Provides engine creation (one pooled engine per URL), schema
initialization and a connectivity check. PostgreSQL is the production
store; SQLite is accepted for development and tests.
"""

from __future__ import annotations

import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import create_engine, event, func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from claimdesk.config import database_url
from claimdesk.errors import PersistenceError

from .schema import metadata, users

logger = logging.getLogger(__name__)

_engines: dict[str, Engine] = {}
_engines_lock = threading.Lock()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:  # noqa: ARG001
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(url: str) -> Engine:
    """Create an engine for the given URL with pool settings per backend."""
    if url.startswith("sqlite"):
        db_file = url.split("///", 1)[-1]
        if db_file and db_file != ":memory:":
            Path(db_file).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(url, connect_args={"check_same_thread": False})
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_engine(
        url,
        pool_pre_ping=True,  # Check connection health
        pool_size=10,
        max_overflow=10,
        pool_timeout=15,
        pool_recycle=1800,
    )


def get_engine(url: str | None = None) -> Engine:
    """Return the cached engine for `url` (defaults to the configured URL)."""
    resolved = url or database_url()
    engine = _engines.get(resolved)
    if engine is not None:
        return engine

    with _engines_lock:
        engine = _engines.get(resolved)
        if engine is None:
            engine = create_db_engine(resolved)
            _engines[resolved] = engine
            logger.info(f"Created database engine for {engine.url.render_as_string(hide_password=True)}")
    return engine


def reset_engines() -> None:
    """Dispose every cached engine (used by tests and on shutdown)."""
    with _engines_lock:
        for engine in _engines.values():
            engine.dispose()
        _engines.clear()


def init_db(engine: Engine | None = None) -> None:
    """Create tables and indices if they don't exist, then bootstrap the admin."""
    engine = engine or get_engine()
    try:
        metadata.create_all(engine)
    except SQLAlchemyError as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)
        raise PersistenceError(f"Database initialization failed: {e}") from e

    _bootstrap_admin(engine)
    logger.info("Database initialization completed successfully")


def _bootstrap_admin(engine: Engine) -> None:
    """Create the first administrator from ADMIN_* env vars on an empty users table."""
    email = os.getenv("ADMIN_EMAIL")
    password = os.getenv("ADMIN_PASSWORD")
    if not email or not password:
        return

    from claimdesk.security import hash_password

    with engine.begin() as conn:
        existing = conn.execute(select(func.count()).select_from(users)).scalar_one()
        if existing:
            return
        conn.execute(
            users.insert().values(
                name=os.getenv("ADMIN_NAME", "Admin User"),
                email=email.strip().lower(),
                role="Admin",
                password_hash=hash_password(password),
                created_at=datetime.now(timezone.utc),
            )
        )
    logger.info("Bootstrapped administrator account from environment")


def check_connection(engine: Engine | None = None) -> datetime:
    """Run a trivial query and return the server-side timestamp.

    Raises:
        PersistenceError: If the database is unreachable
    """
    engine = engine or get_engine()
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        raise PersistenceError(f"Database connection failed: {e}") from e
    return datetime.now(timezone.utc)
