import logging
import time

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import (
    DATABASE_URL,
    DB_LOG_SLOW_QUERIES,
    DB_MAX_OVERFLOW,
    DB_POOL_RECYCLE,
    DB_POOL_SIZE,
    DB_POOL_TIMEOUT,
    DB_SLOW_QUERY_THRESHOLD,
    SQLITE_BUSY_TIMEOUT,
)

logger = logging.getLogger(__name__)


# Execution option marking a connection whose transaction will write
WRITE_TRANSACTION = "slotswap_write_transaction"


def _configure_sqlite(engine: Engine) -> None:
    """
    Make SQLite write transactions take the write lock up front.

    A deferred BEGIN lets two writers both read a slot as tradable and then
    deadlock when upgrading to a write lock. Write transactions (see
    ``begin_write_transaction``) therefore start with BEGIN IMMEDIATE and queue
    on the busy timeout. Read-only transactions keep a deferred BEGIN and never
    wait on a writer's lock.
    """

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_connection, _connection_record):
        # Hand transaction control to SQLAlchemy
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def on_begin(conn):
        if conn.get_execution_options().get(WRITE_TRANSACTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def create_db_engine(url: str) -> Engine:
    """Build an engine for ``url`` with the pool and logging settings from config."""
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
            echo=False,
        )
        _configure_sqlite(engine)
        logger.info("✅ SQLite engine created (immediate write transactions)")
    else:
        engine = create_engine(
            url,
            pool_pre_ping=True,  # Test connections before using
            pool_recycle=DB_POOL_RECYCLE,
            pool_size=DB_POOL_SIZE,
            max_overflow=DB_MAX_OVERFLOW,
            pool_timeout=DB_POOL_TIMEOUT,
            echo=False,  # Don't log all SQL (use slow query logging instead)
        )
        logger.info("✅ Database engine created successfully")
        logger.info(
            f"📊 Connection pool: size={DB_POOL_SIZE}, max_overflow={DB_MAX_OVERFLOW}, timeout={DB_POOL_TIMEOUT}s"
        )

    # Slow query logging for performance monitoring
    if DB_LOG_SLOW_QUERIES:

        @event.listens_for(engine, "before_cursor_execute")
        def before_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
            conn.info.setdefault("query_start_time", []).append(time.time())

        @event.listens_for(engine, "after_cursor_execute")
        def after_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
            total = time.time() - conn.info["query_start_time"].pop(-1)
            if total > DB_SLOW_QUERY_THRESHOLD:
                logger.warning(f"🐌 Slow query ({total:.2f}s): {statement[:200]}...")

    return engine


try:
    engine = create_db_engine(DATABASE_URL)
except Exception as e:
    logger.error(f"❌ Failed to create database engine: {e}")
    raise

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def begin_write_transaction(db: Session) -> None:
    """
    Make the session's next statements run in a write transaction.

    An open read transaction (e.g. the one that loaded the current user) is
    committed first, so the request never holds a read lock while waiting for the
    write lock. Does nothing if the session is already in a write transaction.
    """
    if db.in_transaction():
        if db.connection().get_execution_options().get(WRITE_TRANSACTION):
            return
        db.commit()
    db.connection(execution_options={WRITE_TRANSACTION: True})
