"""
Database Infrastructure Package for EchoWrite

Exports database utilities and the request-scoped session dependency.
"""

from app.infrastructure.db.database import (
    DatabaseManager,
    get_db_manager,
    get_session,
    normalize_database_url,
    session_scope,
)


__all__ = [
    "DatabaseManager",
    "get_db_manager",
    "get_session",
    "normalize_database_url",
    "session_scope",
]
