"""
Database connection management for cronledger.

Engines and session factories are cached per database URL, so several
configurations (for example one per test) can be used in one process.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from cronledger.config import get_config, CronLedgerConfig

logger = logging.getLogger(__name__)

# Engine and session factory cache, keyed by database URL
_engines: Dict[str, Engine] = {}
_session_makers: Dict[str, sessionmaker] = {}


def get_db_path(config: Optional[CronLedgerConfig] = None) -> Optional[Path]:
    """
    Get the database file path for SQLite URLs.

    Args:
        config: cronledger configuration (uses global if not provided)

    Returns:
        Path to the SQLite database file, or None for other databases
        and for in-memory SQLite
    """
    if config is None:
        config = get_config()

    db_url = config.database_url
    if db_url.startswith("sqlite:///") and db_url != "sqlite:///:memory:":
        return Path(db_url[len("sqlite:///"):])
    return None


def init_engine(config: Optional[CronLedgerConfig] = None) -> Engine:
    """
    Initialize (or reuse) the SQLAlchemy engine for the configured URL.

    Args:
        config: cronledger configuration (uses global if not provided)

    Returns:
        Configured SQLAlchemy engine
    """
    if config is None:
        config = get_config()

    url = config.database_url
    if url in _engines:
        return _engines[url]

    connect_args: Dict[str, object] = {}
    if url.startswith("sqlite"):
        db_path = get_db_path(config)
        if db_path is not None:
            db_path.parent.mkdir(parents=True, exist_ok=True)
        connect_args = {
            "check_same_thread": False,
            "timeout": 30,
        }

    engine = create_engine(
        url,
        connect_args=connect_args,
        pool_pre_ping=True,
        echo=False,
    )

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            """Let concurrent tick processes read while one writes."""
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    _engines[url] = engine
    logger.debug(f"Database engine initialized: {url}")
    return engine


def get_session_maker(config: Optional[CronLedgerConfig] = None) -> sessionmaker:
    """
    Get or create the session maker for the configured URL.

    Args:
        config: cronledger configuration (uses global if not provided)

    Returns:
        Configured session maker
    """
    if config is None:
        config = get_config()

    url = config.database_url
    if url not in _session_makers:
        _session_makers[url] = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=init_engine(config),
        )
    return _session_makers[url]


@contextmanager
def get_db_session(config: Optional[CronLedgerConfig] = None) -> Generator[Session, None, None]:
    """
    Get a database session context manager.

    Usage:
        with get_db_session(config) as session:
            latest = JobExecutionRepository(session).get_latest("backup")

    Args:
        config: cronledger configuration (uses global if not provided)

    Yields:
        SQLAlchemy Session
    """
    SessionLocal = get_session_maker(config)
    session = SessionLocal()

    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_tables(config: Optional[CronLedgerConfig] = None) -> None:
    """
    Create all database tables that do not exist yet.

    Args:
        config: cronledger configuration (uses global if not provided)
    """
    from cronledger.database.models import Base

    engine = init_engine(config)
    Base.metadata.create_all(bind=engine)
    logger.debug("Database tables created")


def drop_tables(config: Optional[CronLedgerConfig] = None) -> None:
    """
    Drop all database tables.

    WARNING: This will delete all data!

    Args:
        config: cronledger configuration (uses global if not provided)
    """
    from cronledger.database.models import Base

    engine = init_engine(config)
    Base.metadata.drop_all(bind=engine)
    logger.warning("Database tables dropped")


def reset_database(config: Optional[CronLedgerConfig] = None) -> None:
    """
    Reset database by dropping and recreating all tables.

    WARNING: This will delete all data!

    Args:
        config: cronledger configuration (uses global if not provided)
    """
    drop_tables(config)
    create_tables(config)
    logger.warning("Database reset complete")


def dispose_engines() -> None:
    """Dispose every cached engine and forget the session factories."""
    for engine in _engines.values():
        engine.dispose()
    _engines.clear()
    _session_makers.clear()
