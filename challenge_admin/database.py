"""Database connection and session management."""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import get_settings

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str | None = None):
    """Create SQLAlchemy engine with connection pooling.

    SQLite URLs (local development and tests) share one connection so an
    in-memory database survives across sessions.
    """
    url = database_url or get_settings().database_url

    if url.startswith("sqlite"):
        sqlite_engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )

        # Let SQLAlchemy drive BEGIN so SAVEPOINTs behave under pysqlite
        @event.listens_for(sqlite_engine, "connect")
        def _disable_pysqlite_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(sqlite_engine, "begin")
        def _emit_begin(conn):
            conn.exec_driver_sql("BEGIN")

        return sqlite_engine

    return create_engine(
        url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,  # Verify connections before using
        echo=False,  # Set to True for SQL debugging
    )


# Create engine and session factory
engine = create_db_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency for FastAPI endpoints that need a database session.

    Commits when the request handler returns normally, rolls back otherwise.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context manager for database sessions.

    Usage:
        with get_db_session() as db:
            db.query(...)
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def check_database_health() -> bool:
    """Verify database connection is working.

    Returns:
        True if database is healthy, False otherwise.
    """
    try:
        with get_db_session() as db:
            db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return False


def dispose_engine() -> None:
    """Dispose of the engine and all connections.

    Call this during graceful shutdown.
    """
    engine.dispose()


def list_tables() -> list[str]:
    """List all tables in the database.

    Returns:
        List of table names.
    """
    try:
        return sorted(inspect(engine).get_table_names())
    except SQLAlchemyError as e:
        logger.error(f"Failed to list tables: {e}")
        return []
