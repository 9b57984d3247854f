"""
PostgreSQL database access

This module centralizes every way of reaching the relational store:
- SQLAlchemy engine (schema creation from the declarative models)
- psycopg2 direct connections (raw SQL for repositories)
- Transaction scope used by the order workflows

Connections are created lazily so the in-memory backend never needs
DATABASE_URL.
"""
import time
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import psycopg2
from psycopg2.extras import RealDictCursor
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from .config import settings

logger = logging.getLogger(__name__)


# ============================================================================
# SQLAlchemy Configuration (schema definition)
# ============================================================================

# Base for declarative table models
Base = declarative_base()

_engine: Optional[Engine] = None


def _database_url() -> str:
    database_url = settings.DATABASE_URL
    if not database_url:
        raise RuntimeError("DATABASE_URL not configured")
    return database_url


def get_engine() -> Engine:
    """Return the shared SQLAlchemy engine, creating it on first use"""
    global _engine
    if _engine is None:
        _engine = create_engine(
            _database_url(),
            pool_pre_ping=True,  # Verify connection before use
            pool_size=10,
            max_overflow=20,
        )
    return _engine


def init_schema() -> None:
    """
    Create all tables declared in oms.models if they do not exist yet

    Usage:
        python -c "from oms.core.database import init_schema; init_schema()"
    """
    # Register the table models on Base.metadata
    from oms import models  # noqa: F401

    Base.metadata.create_all(get_engine())
    logger.info("Database schema initialized")


# ============================================================================
# psycopg2 Direct Connections with Retry Logic
# ============================================================================

def get_db_connection_with_retry(max_retries=None, retry_delay=None, dict_cursor=True):
    """
    Get a psycopg2 connection with automatic retry on connection failures

    This function handles intermittent connection issues by:
    - Retrying failed connections up to max_retries times
    - Adding exponential backoff between retries
    - Logging connection attempts for debugging

    Args:
        max_retries: Maximum number of connection attempts (default: DB_CONNECT_RETRIES)
        retry_delay: Initial delay between retries in seconds (default: DB_RETRY_DELAY)
        dict_cursor: Use RealDictCursor so rows come back as dicts (default: True)

    Returns:
        psycopg2 connection object

    Raises:
        psycopg2.OperationalError: If all retry attempts fail
    """
    database_url = _database_url()
    max_retries = max_retries or settings.DB_CONNECT_RETRIES
    retry_delay = settings.DB_RETRY_DELAY if retry_delay is None else retry_delay
    cursor_factory = RealDictCursor if dict_cursor else None

    last_error = None

    for attempt in range(1, max_retries + 1):
        try:
            logger.debug(f"Database connection attempt {attempt}/{max_retries}")
            conn = psycopg2.connect(database_url, cursor_factory=cursor_factory)
            logger.debug(f"Database connection successful on attempt {attempt}")
            return conn

        except psycopg2.OperationalError as e:
            last_error = e
            logger.warning(f"Connection error on attempt {attempt}/{max_retries}: {e}")

            # Don't retry on last attempt
            if attempt < max_retries:
                delay = retry_delay * (2 ** (attempt - 1))
                logger.info(f"Retrying in {delay:.2f} seconds...")
                time.sleep(delay)
            else:
                logger.error(f"All {max_retries} connection attempts failed")

    raise last_error


@contextmanager
def pg_transaction(lock_timeout_ms: Optional[int] = None) -> Iterator:
    """
    Run a block of SQL inside one transaction

    Yields a RealDictCursor. The transaction commits when the block exits
    normally and rolls back on every other exit path, including
    cancellation. Row locks taken with FOR UPDATE are held until then.

    Usage:
        with pg_transaction() as cursor:
            cursor.execute("SELECT ... FOR UPDATE", (...,))
            ...
    """
    if lock_timeout_ms is None:
        lock_timeout_ms = settings.LOCK_TIMEOUT_MS

    conn = get_db_connection_with_retry()
    cursor = conn.cursor()
    try:
        cursor.execute("SET LOCAL lock_timeout = %s", (f"{int(lock_timeout_ms)}ms",))
        yield cursor
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        cursor.close()
        conn.close()


def check_connection() -> float:
    """Run SELECT 1 and return the round-trip latency in milliseconds"""
    conn = get_db_connection_with_retry(max_retries=1, retry_delay=0.5)
    cursor = conn.cursor()
    try:
        start = time.time()
        cursor.execute("SELECT 1")
        cursor.fetchone()
        return round((time.time() - start) * 1000, 2)
    finally:
        cursor.close()
        conn.close()
