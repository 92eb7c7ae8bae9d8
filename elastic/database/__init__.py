"""
Database layer - SQLAlchemy engine and the committed-event journal.
"""

from elastic.database.session import (
    DEFAULT_DATABASE_URL,
    get_database_url,
    create_db_engine,
    get_engine,
    reset_engine,
    check_database_connection,
)
from elastic.database.event_journal import EventJournal

__all__ = [
    "DEFAULT_DATABASE_URL",
    "get_database_url",
    "create_db_engine",
    "get_engine",
    "reset_engine",
    "check_database_connection",
    "EventJournal",
]
