from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.core.config import get_settings


def _enable_sqlite_write_serialization(engine: Engine) -> None:
    """
    pysqlite defers BEGIN until the first write, so two sessions can read the
    same opportunity and then race to update it. Emitting BEGIN IMMEDIATE takes
    the write lock up front, which gives SQLite the same per-transaction
    serialization that SELECT ... FOR UPDATE gives PostgreSQL.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
            future=True,
        )
        _enable_sqlite_write_serialization(engine)
        return engine

    return create_engine(
        database_url,
        pool_pre_ping=True,
        future=True,
    )


settings = get_settings()

DATABASE_URL = settings.database_url  # fail fast if missing

engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
    future=True,
)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
