"""
============================================================================
Elastic Supply v1.0.0
Database Session - SQLAlchemy Engine Management
============================================================================

Reliability Level: L6 Critical
Input Constraints: ELASTIC_DATABASE_URL (default: local SQLite file)
Side Effects: Database connections

The engine is created lazily on first use; importing the package opens no
connection. In-memory SQLite URLs share one connection (StaticPool).

============================================================================
"""

import os
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

# Load environment variables
load_dotenv()


# ============================================================================
# DATABASE CONFIGURATION
# ============================================================================

DEFAULT_DATABASE_URL = "sqlite:///elastic_supply.db"


def get_database_url() -> str:
    """
    Environment Variables:
        ELASTIC_DATABASE_URL: SQLAlchemy URL (default: sqlite:///elastic_supply.db)
    """
    return os.getenv("ELASTIC_DATABASE_URL", DEFAULT_DATABASE_URL)


def create_db_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """
    Create an engine for `url` (defaults to get_database_url()).

    Environment Variables:
        DB_ECHO: "true" to echo SQL (default: false)
    """
    url = url or get_database_url()
    if echo is None:
        echo = os.getenv("DB_ECHO", "false").lower() == "true"

    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_engine(url, echo=echo, pool_pre_ping=True)


# ============================================================================
# SHARED ENGINE
# ============================================================================

_engine: Optional[Engine] = None


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def reset_engine() -> None:
    """Dispose of the shared engine (used by tests)."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None


def check_database_connection(engine: Optional[Engine] = None) -> bool:
    """
    Verify database connectivity.

    Raises:
        Exception: If database connection fails
    """
    engine = engine or get_engine()
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        raise Exception(f"Database connection failed: {e}") from e
