"""
Database module for the Adjudication Core.

Exports engine helpers and the storage-boundary repositories.
"""

from src.db.connection import (
    check_db_connection,
    create_engine_for_url,
    get_engine,
    init_db,
)
from src.db.repositories import AuditRepository, ClaimRepository

__all__ = [
    "check_db_connection",
    "create_engine_for_url",
    "get_engine",
    "init_db",
    "AuditRepository",
    "ClaimRepository",
]
