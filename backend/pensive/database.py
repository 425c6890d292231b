"""SQLAlchemy engine and session management."""
from collections.abc import Generator

from sqlalchemy import JSON, Engine, create_engine, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from pensive.config import settings

# JSONB on PostgreSQL, plain JSON everywhere else (SQLite in dev and tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


def _configure_sqlite(engine: Engine) -> None:
    """Make SQLite transactions take the write lock up front.

    pysqlite's deferred transactions let two writers deadlock on lock
    escalation; BEGIN IMMEDIATE makes the second writer wait on the busy
    timeout instead.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str) -> Engine:
    """Create an engine for the given URL with dialect-specific setup."""
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        _configure_sqlite(engine)
        return engine
    return create_engine(database_url, pool_pre_ping=True)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def bind_engine(new_engine: Engine) -> None:
    """Point SessionLocal at a different engine (used by tests and scripts)."""
    global engine
    engine = new_engine
    SessionLocal.configure(bind=new_engine)


def init_db() -> None:
    """Create all tables. Production deployments use Alembic instead."""
    import pensive.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a session that is always closed."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
