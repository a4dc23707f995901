"""Engine, session factory and declarative Base.

SQLite connections are switched from pysqlite's implicit transaction handling
to an explicit ``BEGIN`` emitted by SQLAlchemy. Plain reads open a deferred
transaction. Units of work started by the transaction runner open with
``BEGIN IMMEDIATE``, which takes the write lock before the pending set is read,
so concurrent writers wait their turn on ``busy_timeout`` instead of failing on
a stale snapshot.
"""
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from approval_tracker.config import settings

# Execution option read by the SQLite "begin" listener
BEGIN_MODE_OPTION = "sqlite_begin_mode"


def configure_sqlite(engine: Engine, busy_timeout: float = settings.SQLITE_BUSY_TIMEOUT) -> Engine:
    """Install WAL mode, foreign keys, a busy timeout and real transactions on a SQLite engine."""

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        # Let SQLAlchemy emit BEGIN itself instead of pysqlite's implicit one
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout * 1000)}")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        # Units of work ask for IMMEDIATE so writers queue on busy_timeout up front
        mode = conn.get_execution_options().get(BEGIN_MODE_OPTION)
        conn.exec_driver_sql(f"BEGIN {mode}" if mode else "BEGIN")

    return engine


def build_engine(url: str) -> Engine:
    """Create the engine for ``url``; SQLite URLs get the pragmas above."""
    if url.startswith("sqlite"):
        engine = create_engine(url, connect_args={"check_same_thread": False})
        return configure_sqlite(engine)
    return create_engine(url, pool_pre_ping=True)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
