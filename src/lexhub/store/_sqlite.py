"""SQLite ingestion store.

Same contract as :class:`~lexhub.store.PostgresStore` on the standard library
``sqlite3`` driver, for local development, the ``check``-and-serve workflow,
and tests. JSON columns are stored as text.

Examples:
    >>> store = SqliteStore(":memory:")
    >>> store.ensure_schema()
"""

from __future__ import annotations

import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterator, Optional, Union

from .._exceptions import StoreError, StoreTimeoutError
from ..reasons import reasons_to_records
from ._base import (
    HISTORY_LIMIT,
    INVALID_TABLE,
    VALID_TABLE,
    InvalidLexiconRow,
    LexiconRow,
    LexiconStore,
    Page,
    ValidLexiconRow,
    newest_first,
    row_key,
)

if TYPE_CHECKING:
    from ..events import Commit
    from ..lexicon import LexiconDoc
    from ..reasons import InvalidLexiconReason

_NOW = "(strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now'))"

SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS valid_lexicons (
    nsid        TEXT NOT NULL,
    cid         TEXT NOT NULL,
    repo_did    TEXT NOT NULL,
    repo_rev    TEXT NOT NULL,
    data        TEXT NOT NULL,
    ingested_at TEXT NOT NULL DEFAULT {_NOW},
    PRIMARY KEY (nsid, cid, repo_did)
);

CREATE TABLE IF NOT EXISTS invalid_lexicons (
    nsid        TEXT NOT NULL,
    cid         TEXT NOT NULL,
    repo_did    TEXT NOT NULL,
    repo_rev    TEXT NOT NULL,
    raw_data    TEXT NOT NULL,
    reasons     TEXT NOT NULL CHECK (
        CASE WHEN json_valid(reasons) THEN json_array_length(reasons) > 0 ELSE 0 END
    ),
    ingested_at TEXT NOT NULL DEFAULT {_NOW},
    PRIMARY KEY (nsid, cid, repo_did)
);

CREATE INDEX IF NOT EXISTS valid_lexicons_nsid_idx ON valid_lexicons (nsid);
CREATE INDEX IF NOT EXISTS valid_lexicons_repo_did_idx ON valid_lexicons (repo_did);
CREATE INDEX IF NOT EXISTS valid_lexicons_ingested_at_idx ON valid_lexicons (ingested_at);
CREATE INDEX IF NOT EXISTS invalid_lexicons_nsid_idx ON invalid_lexicons (nsid);
CREATE INDEX IF NOT EXISTS invalid_lexicons_repo_did_idx ON invalid_lexicons (repo_did);
CREATE INDEX IF NOT EXISTS invalid_lexicons_ingested_at_idx ON invalid_lexicons (ingested_at);
"""

_COLUMNS = {
    VALID_TABLE: "nsid, cid, repo_did, repo_rev, data, ingested_at",
    INVALID_TABLE: "nsid, cid, repo_did, repo_rev, raw_data, reasons, ingested_at",
}


def _row_from_sqlite(valid: bool, r: sqlite3.Row) -> LexiconRow:
    ingested_at = datetime.fromisoformat(r["ingested_at"])
    if valid:
        return ValidLexiconRow(
            nsid=r["nsid"],
            cid=r["cid"],
            repo_did=r["repo_did"],
            repo_rev=r["repo_rev"],
            data=json.loads(r["data"]),
            ingested_at=ingested_at,
        )
    return InvalidLexiconRow(
        nsid=r["nsid"],
        cid=r["cid"],
        repo_did=r["repo_did"],
        repo_rev=r["repo_rev"],
        raw_data=json.loads(r["raw_data"]),
        reasons=json.loads(r["reasons"]),
        ingested_at=ingested_at,
    )


class SqliteStore(LexiconStore):
    """Ingestion store backed by a single SQLite database file.

    One connection is shared across threads and serialized with a lock.

    Args:
        path: Database file path, or ``":memory:"``.
        timeout: Seconds to wait on a locked database before giving up.
    """

    backend_name = "sqlite"

    def __init__(self, path: Union[str, Path] = "lexhub.db", *, timeout: float = 5.0) -> None:
        self._path = str(path)
        self._conn = sqlite3.connect(
            self._path, timeout=timeout, check_same_thread=False
        )
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()

    @property
    def path(self) -> str:
        return self._path

    @contextmanager
    def _cursor(self, operation: str) -> Iterator[sqlite3.Cursor]:
        with self._lock:
            try:
                with self._conn:
                    yield self._conn.cursor()
            except sqlite3.OperationalError as exc:
                if "locked" in str(exc):
                    raise StoreTimeoutError(operation, str(exc)) from exc
                raise StoreError(operation, str(exc)) from exc
            except sqlite3.Error as exc:
                raise StoreError(operation, str(exc)) from exc

    def ensure_schema(self) -> None:
        with self._lock:
            self._conn.executescript(SCHEMA_SQL)

    def record_valid(self, commit: Commit, lexicon_doc: LexiconDoc) -> bool:
        nsid, cid, repo_did = row_key(commit)
        with self._cursor("record_valid") as cur:
            cur.execute(
                f"INSERT INTO {VALID_TABLE} (nsid, cid, repo_did, repo_rev, data) "
                "VALUES (?, ?, ?, ?, ?) "
                "ON CONFLICT (nsid, cid, repo_did) DO NOTHING",
                (nsid, cid, repo_did, commit.rev, json.dumps(lexicon_doc.to_record())),
            )
            return cur.rowcount == 1

    def record_invalid(
        self, commit: Commit, reasons: list[InvalidLexiconReason]
    ) -> bool:
        if not reasons:
            raise ValueError("record_invalid requires at least one reason")
        nsid, cid, repo_did = row_key(commit)
        with self._cursor("record_invalid") as cur:
            cur.execute(
                f"INSERT INTO {INVALID_TABLE} "
                "(nsid, cid, repo_did, repo_rev, raw_data, reasons) "
                "VALUES (?, ?, ?, ?, ?, ?) "
                "ON CONFLICT (nsid, cid, repo_did) DO NOTHING",
                (
                    nsid,
                    cid,
                    repo_did,
                    commit.rev,
                    json.dumps(commit.record),
                    json.dumps(reasons_to_records(reasons)),
                ),
            )
            return cur.rowcount == 1

    def _page(
        self, operation: str, valid: bool, column: str, value: str, limit: int, offset: int
    ) -> Page:
        table = VALID_TABLE if valid else INVALID_TABLE
        with self._cursor(operation) as cur:
            cur.execute(
                f"SELECT {_COLUMNS[table]} FROM {table} WHERE {column} = ? "
                "ORDER BY ingested_at DESC, rowid DESC LIMIT ? OFFSET ?",
                (value, limit, offset),
            )
            rows = [_row_from_sqlite(valid, r) for r in cur.fetchall()]
            cur.execute(f"SELECT count(*) FROM {table} WHERE {column} = ?", (value,))
            (total,) = cur.fetchone()
        return Page(rows=rows, total=total)

    def list_by_nsid(
        self, nsid: str, *, valid: bool = True, limit: int = 50, offset: int = 0
    ) -> Page:
        return self._page("list_by_nsid", valid, "nsid", nsid, limit, offset)

    def latest_by_nsid(self, nsid: str, *, valid: bool = True) -> Optional[LexiconRow]:
        page = self._page("latest_by_nsid", valid, "nsid", nsid, 1, 0)
        return page.rows[0] if page.rows else None

    def list_by_repo(
        self, repo_did: str, *, valid: bool = True, limit: int = 50, offset: int = 0
    ) -> Page:
        return self._page("list_by_repo", valid, "repo_did", repo_did, limit, offset)

    def get_by_key(self, nsid: str, cid: str, repo_did: str) -> Optional[LexiconRow]:
        with self._cursor("get_by_key") as cur:
            for valid in (True, False):
                table = VALID_TABLE if valid else INVALID_TABLE
                cur.execute(
                    f"SELECT {_COLUMNS[table]} FROM {table} "
                    "WHERE nsid = ? AND cid = ? AND repo_did = ?",
                    (nsid, cid, repo_did),
                )
                r = cur.fetchone()
                if r is not None:
                    return _row_from_sqlite(valid, r)
        return None

    def list_by_nsid_and_repo(
        self, nsid: str, repo_did: str, *, limit: int = HISTORY_LIMIT
    ) -> Page:
        rows: list[LexiconRow] = []
        total = 0
        with self._cursor("list_by_nsid_and_repo") as cur:
            for valid in (True, False):
                table = VALID_TABLE if valid else INVALID_TABLE
                cur.execute(
                    f"SELECT {_COLUMNS[table]} FROM {table} "
                    "WHERE nsid = ? AND repo_did = ? "
                    "ORDER BY ingested_at DESC, rowid DESC LIMIT ?",
                    (nsid, repo_did, limit),
                )
                rows.extend(_row_from_sqlite(valid, r) for r in cur.fetchall())
                cur.execute(
                    f"SELECT count(*) FROM {table} WHERE nsid = ? AND repo_did = ?",
                    (nsid, repo_did),
                )
                total += cur.fetchone()[0]
        return Page(rows=newest_first(rows), total=total)

    def close(self) -> None:
        self._conn.close()
