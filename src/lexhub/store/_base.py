"""Abstract base class and row types for ingestion stores.

A store persists validation outcomes into two append-only tables,
``valid_lexicons`` and ``invalid_lexicons``, both keyed by
``(nsid, cid, repo_did)``. Inserting an existing key is a successful no-op,
so redelivered events and concurrent duplicates are harmless. The same
record (same CID) republished from another repository is a distinct row.

Rows are never updated or deleted. "Latest" means highest ``ingested_at``.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, ClassVar, Iterable, Optional, Union

if TYPE_CHECKING:
    from ..events import Commit
    from ..lexicon import LexiconDoc
    from ..reasons import InvalidLexiconReason

VALID_TABLE = "valid_lexicons"
INVALID_TABLE = "invalid_lexicons"

# Per-table cap on rows returned by a full NSID-and-repository history.
HISTORY_LIMIT = 500


@dataclass(frozen=True)
class ValidLexiconRow:
    valid: ClassVar[bool] = True

    nsid: str
    cid: str
    repo_did: str
    repo_rev: str
    data: dict[str, Any]
    ingested_at: Optional[datetime] = None

    def to_json(self) -> dict[str, Any]:
        """Serialize for API responses."""
        return {
            "nsid": self.nsid,
            "cid": self.cid,
            "repoDid": self.repo_did,
            "repoRev": self.repo_rev,
            "data": self.data,
            "ingestedAt": _isoformat(self.ingested_at),
        }


@dataclass(frozen=True)
class InvalidLexiconRow:
    valid: ClassVar[bool] = False

    nsid: str
    cid: str
    repo_did: str
    repo_rev: str
    raw_data: Any
    reasons: list[dict[str, Any]] = field(default_factory=list)
    ingested_at: Optional[datetime] = None

    def to_json(self) -> dict[str, Any]:
        """Serialize for API responses."""
        return {
            "nsid": self.nsid,
            "cid": self.cid,
            "repoDid": self.repo_did,
            "repoRev": self.repo_rev,
            "rawData": self.raw_data,
            "reasons": self.reasons,
            "ingestedAt": _isoformat(self.ingested_at),
        }


LexiconRow = Union[ValidLexiconRow, InvalidLexiconRow]


@dataclass(frozen=True)
class Page:
    """One page of rows plus the total number of matching rows."""

    rows: list[LexiconRow]
    total: int


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def row_key(commit: Commit) -> tuple[str, str, str]:
    """Return the ``(nsid, cid, repo_did)`` key for a classified commit.

    A string ``id`` is the nsid as-is. Any other JSON value is stored as its
    JSON text, so ``null`` becomes ``"null"`` and never ``"None"``.

    Raises:
        ValueError: If the commit has no CID.
    """
    if commit.cid is None:
        raise ValueError(f"Commit {commit.uri} has no CID and cannot be stored")
    record_id = commit.record["id"]
    nsid = record_id if isinstance(record_id, str) else json.dumps(record_id, sort_keys=True)
    return nsid, commit.cid, commit.did


def newest_first(rows: Iterable[LexiconRow]) -> list[LexiconRow]:
    """Merge rows from both tables by descending ``ingested_at``.

    The sort is stable, so rows already ordered within a table keep their
    relative order on ties.
    """
    return sorted(rows, key=lambda row: row.ingested_at, reverse=True)


class LexiconStore(ABC):
    """Append-only persistence for Lexicon validation outcomes.

    Implementations must make both ``record_*`` methods idempotent on the
    ``(nsid, cid, repo_did)`` key and expose no update or delete path.
    """

    backend_name: str = ""

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create tables, constraints, and indexes if they do not exist."""

    @abstractmethod
    def record_valid(self, commit: Commit, lexicon_doc: LexiconDoc) -> bool:
        """Insert a validated Lexicon.

        Returns:
            ``True`` if a row was inserted, ``False`` if the key already
            existed.
        """

    @abstractmethod
    def record_invalid(
        self, commit: Commit, reasons: list[InvalidLexiconReason]
    ) -> bool:
        """Insert a rejected Lexicon along with its raw record payload.

        Returns:
            ``True`` if a row was inserted, ``False`` if the key already
            existed.

        Raises:
            ValueError: If *reasons* is empty.
        """

    @abstractmethod
    def list_by_nsid(
        self, nsid: str, *, valid: bool = True, limit: int = 50, offset: int = 0
    ) -> Page:
        """Rows for one NSID, newest first."""

    @abstractmethod
    def latest_by_nsid(self, nsid: str, *, valid: bool = True) -> Optional[LexiconRow]:
        """Most recently ingested row for one NSID, or ``None``."""

    @abstractmethod
    def list_by_repo(
        self, repo_did: str, *, valid: bool = True, limit: int = 50, offset: int = 0
    ) -> Page:
        """Rows published by one repository, newest first."""

    @abstractmethod
    def get_by_key(self, nsid: str, cid: str, repo_did: str) -> Optional[LexiconRow]:
        """The row stored under one exact key, from either table.

        A key is unique within a table. If both tables hold it the valid row
        is returned.
        """

    @abstractmethod
    def list_by_nsid_and_repo(
        self, nsid: str, repo_did: str, *, limit: int = HISTORY_LIMIT
    ) -> Page:
        """Every version of one NSID published by one repository.

        Valid and invalid rows are merged newest first; check each row's
        ``valid`` flag. At most *limit* rows are read from each table, while
        ``total`` counts all matching rows in both.
        """

    @abstractmethod
    def close(self) -> None:
        """Release connections."""

    def __enter__(self) -> LexiconStore:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
