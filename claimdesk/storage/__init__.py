"""Relational storage for claims, the change log and user accounts."""

from .database import check_connection, get_engine, init_db, reset_engines
from .schema import claim_change_log, claims, metadata, users

__all__ = [
    "get_engine",
    "init_db",
    "reset_engines",
    "check_connection",
    "metadata",
    "claims",
    "claim_change_log",
    "users",
]
