"""
Database engine configuration for the local vault.

Uses SQLite by default; the file lives in the configured data directory.
"""
import logging
from pathlib import Path
from typing import Optional

from sqlalchemy import event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from stremio_manager.core.config import settings
from stremio_manager.core.logging_config import LogCategory, _sanitize_data

logger = logging.getLogger(LogCategory.STORAGE)


def create_db_engine(database_url: Optional[str] = None) -> Engine:
    """
    Create the SQLAlchemy engine for the vault database.

    Args:
        database_url: Override URL; defaults to settings.effective_database_url
    """
    database_url = database_url or settings.effective_database_url
    url = make_url(database_url)

    if url.get_backend_name() != "sqlite":
        logger.warning(
            f"Using untested database backend '{url.get_backend_name()}' for the vault."
        )
        return create_engine(database_url, echo=False, pool_pre_ping=True)

    is_sqlite_memory = url.database in (None, "", ":memory:")
    if not is_sqlite_memory:
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    engine_kwargs = {
        "echo": False,
        "connect_args": {"check_same_thread": False},
    }
    if is_sqlite_memory:
        engine_kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, **engine_kwargs)
    logger.info(
        f"Configured SQLite vault ({'in-memory' if is_sqlite_memory else 'file-based'}): "
        f"{_sanitize_data(database_url)}"
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        """Set SQLite pragmas for durable single-writer use."""
        cursor = dbapi_connection.cursor()
        if not is_sqlite_memory:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=FULL")
        cursor.close()

    return engine


def create_db_and_tables(engine: Engine) -> None:
    """Create the vault tables if they do not exist yet."""
    SQLModel.metadata.create_all(engine)
    logger.info("Vault tables ready")
