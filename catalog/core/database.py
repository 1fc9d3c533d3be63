from contextlib import contextmanager
from typing import Iterator
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base, Session

from .config import DATABASE_URL

logger = logging.getLogger(__name__)

Base = declarative_base()


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def enable_sqlite_pragmas(engine: Engine, wal: bool = True) -> None:
    """
    Turn on foreign key enforcement for every new SQLite connection.
    File databases additionally run in WAL mode so readers do not block the writer.
    """
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if wal:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()


def create_db_engine(url: str = DATABASE_URL, **kwargs) -> Engine:
    if _is_sqlite(url):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        db_engine = create_engine(url, **kwargs)
        enable_sqlite_pragmas(db_engine, wal=":memory:" not in url and url != "sqlite://")
        return db_engine
    return create_engine(url, pool_pre_ping=True, **kwargs)


engine = create_db_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    """FastAPI dependency: yield a Session and close it afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Unit of work around an existing session.

    Commits when the block exits normally; rolls back and re-raises on any
    exception so a half-applied change never reaches the database.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def init_db(bind: Engine = None) -> None:
    """Create every table registered on Base."""
    # Import models so their tables are registered on Base.metadata
    from ..e_commerce import models as _e_commerce_models  # noqa: F401
    from ..inventory import models as _inventory_models  # noqa: F401

    target = bind if bind is not None else engine
    Base.metadata.create_all(bind=target)
    logger.info("Database tables created successfully")
