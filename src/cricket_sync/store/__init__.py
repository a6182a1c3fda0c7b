"""Persistence layer: store interface, filter helpers and the PostgreSQL store."""

from .base import Condition, Store, at_least, chunked, ilike_any, one_of, row_matches
from .postgres import PostgresStore, create_store

__all__ = [
    "Condition",
    "Store",
    "at_least",
    "chunked",
    "ilike_any",
    "one_of",
    "row_matches",
    "PostgresStore",
    "create_store",
]
