"""Ingestion stores for validated and rejected Lexicons.

Key classes:

- ``LexiconStore``: Abstract append-only store contract.
- ``PostgresStore``: Production store on psycopg 3 with a connection pool.
- ``SqliteStore``: Single-file store for development and tests.
"""

from lexhub.store._base import (
    HISTORY_LIMIT,
    INVALID_TABLE,
    VALID_TABLE,
    InvalidLexiconRow,
    LexiconRow,
    LexiconStore,
    Page,
    ValidLexiconRow,
)
from lexhub.store._factory import BACKENDS, create_store, store_from_settings
from lexhub.store._postgres import PostgresStore
from lexhub.store._sqlite import SqliteStore

__all__ = [
    "BACKENDS",
    "HISTORY_LIMIT",
    "INVALID_TABLE",
    "VALID_TABLE",
    "InvalidLexiconRow",
    "LexiconRow",
    "LexiconStore",
    "Page",
    "PostgresStore",
    "SqliteStore",
    "ValidLexiconRow",
    "create_store",
    "store_from_settings",
]
