"""Pytest configuration for lexhub tests."""

import logging
from typing import Any, Optional

import pytest

from lexhub._logging import configure_logging
from lexhub.events import Commit
from lexhub.lexicon import LEXICON_SCHEMA_NSID
from lexhub.store import SqliteStore


# =============================================================================
# Shared identifiers
# =============================================================================

REPO_DID = "did:plc:abc"
OTHER_DID = "did:plc:xyz"
NSID = "com.example.foo"
AUTHORITY = "com.example"
CID = "bafyreigx6ib5cm4c6ygqvuf4uzkqvvjdczlqbzefdbpt7pnsspfu5h3yxm"


# =============================================================================
# Test doubles
# =============================================================================

class FakeResolver:
    """Authority resolver backed by a dict, recording every lookup."""

    def __init__(self, bindings: Optional[dict[str, str]] = None):
        self.bindings = dict(bindings or {})
        self.calls: list[str] = []

    def resolve_authority_did(self, authority: str) -> Optional[str]:
        self.calls.append(authority)
        return self.bindings.get(authority)


class FakeHandleResolver:
    """Handle resolver backed by a dict, recording every lookup."""

    def __init__(self, handles: Optional[dict[str, str]] = None):
        self.handles = dict(handles or {})
        self.calls: list[str] = []

    def resolve_handle_did(self, handle: str) -> Optional[str]:
        self.calls.append(handle)
        return self.handles.get(handle)


class CapturingLogger:
    """Logger collecting ``(level, formatted message)`` pairs."""

    def __init__(self):
        self.calls: list[tuple[str, str]] = []

    def _log(self, level, msg, *a, **kw):
        self.calls.append((level, msg % a if a else msg))

    def debug(self, msg, *a, **kw):
        self._log("debug", msg, *a, **kw)

    def info(self, msg, *a, **kw):
        self._log("info", msg, *a, **kw)

    def warning(self, msg, *a, **kw):
        self._log("warning", msg, *a, **kw)

    def error(self, msg, *a, **kw):
        self._log("error", msg, *a, **kw)

    def messages(self, level: str) -> list[str]:
        return [m for lvl, m in self.calls if lvl == level]


# =============================================================================
# Builders
# =============================================================================

def lexicon_record(nsid: Any = NSID, **overrides) -> dict:
    """A well-formed ``com.atproto.lexicon.schema`` record."""
    record = {
        "$type": LEXICON_SCHEMA_NSID,
        "lexicon": 1,
        "id": nsid,
        "defs": {
            "main": {
                "type": "record",
                "key": "tid",
                "record": {
                    "type": "object",
                    "required": ["text"],
                    "properties": {
                        "text": {"type": "string", "maxLength": 300},
                        "createdAt": {"type": "string", "format": "datetime"},
                    },
                },
            }
        },
    }
    record.update(overrides)
    return record


def make_commit(record: Any = None, **overrides) -> Commit:
    """A create commit carrying *record* whose rkey is the record id."""
    if record is None:
        record = lexicon_record()
    rkey = record.get("id") if isinstance(record, dict) else NSID
    fields = dict(
        did=REPO_DID,
        rev="3lbxkqz5kfk2a",
        collection=LEXICON_SCHEMA_NSID,
        rkey=rkey if isinstance(rkey, str) else NSID,
        action="create",
        cid=CID,
        live=True,
        record=record,
    )
    fields.update(overrides)
    return Commit(**fields)


def record_event(record: Any = None, event_id: int = 1, **commit_overrides) -> dict:
    """A transport ``record`` envelope as decoded from JSON."""
    if record is None:
        record = lexicon_record()
    commit = {
        "did": REPO_DID,
        "rev": "3lbxkqz5kfk2a",
        "collection": LEXICON_SCHEMA_NSID,
        "rkey": record.get("id", NSID) if isinstance(record, dict) else NSID,
        "action": "create",
        "cid": CID,
        "live": True,
        "record": record,
    }
    commit.update(commit_overrides)
    return {"id": event_id, "type": "record", "record": commit}


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def resolver():
    """Resolver binding ``com.example`` to the test repository."""
    return FakeResolver({AUTHORITY: REPO_DID})


@pytest.fixture
def sqlite_store():
    """In-memory SQLite store with the schema applied."""
    store = SqliteStore(":memory:")
    store.ensure_schema()
    yield store
    store.close()


@pytest.fixture
def captured_log():
    """Route lexhub logging to a :class:`CapturingLogger` for one test."""
    logger = CapturingLogger()
    configure_logging(logger)
    try:
        yield logger
    finally:
        configure_logging(logging.getLogger("lexhub"))
