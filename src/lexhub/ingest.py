"""Ingestion pipeline: decode, classify, validate, persist.

:class:`IngestionPipeline` is transport-agnostic. It turns one decoded JSON
payload into an :class:`IngestResult` telling the caller whether to
acknowledge the event or ask for redelivery. The HTTP endpoint in
:mod:`lexhub.api` maps those results to status codes.

Policy:

- malformed, unsupported, and non-Lexicon events are acknowledged;
- valid and invalid Lexicons are both stored and acknowledged;
- a store timeout asks for redelivery;
- any other unexpected error is logged and acknowledged, so an unknown
  failure can never trap the transport in a redelivery loop.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from ._exceptions import StoreTimeoutError
from ._logging import format_context, get_logger
from .events import NotApplicable, RecordEvent, classify, decode_event
from .resolver import AuthorityResolver
from .store import LexiconStore
from .validation import Valid, validate_commit


class IngestStatus(str, Enum):
    ACK = "ack"
    RETRY = "retry"


@dataclass(frozen=True)
class IngestResult:
    """What to tell the transport, plus a human-readable reason."""

    status: IngestStatus
    message: str

    @classmethod
    def ack(cls, message: str) -> IngestResult:
        return cls(IngestStatus.ACK, message)

    @classmethod
    def retry(cls, message: str) -> IngestResult:
        return cls(IngestStatus.RETRY, message)


class IngestionPipeline:
    """Process transport events against a resolver and a store.

    Both collaborators are shared across concurrent calls; the pipeline
    itself holds no per-event state.

    Args:
        resolver: NSID authority resolver (normally a caching DNS resolver).
        store: Destination for validation outcomes.
    """

    def __init__(self, resolver: AuthorityResolver, store: LexiconStore) -> None:
        self.resolver = resolver
        self.store = store

    def handle(self, payload: Any) -> IngestResult:
        """Process one event payload. Never raises."""
        log = get_logger()
        try:
            return self._process(payload)
        except StoreTimeoutError as exc:
            log.error("ingest: store timed out, requesting redelivery: %s", exc)
            return IngestResult.retry("Store timed out, retry later")
        except Exception as exc:
            log.error(
                "ingest: unexpected error, acknowledging anyway: %s: %s",
                type(exc).__name__,
                exc,
                exc_info=True,
            )
            return IngestResult.ack("Failed to process request")

    def _process(self, payload: Any) -> IngestResult:
        log = get_logger()
        event = decode_event(payload)
        classified = classify(event)
        if isinstance(classified, NotApplicable):
            log.debug("ingest: skipped event: %s", classified.reason)
            return IngestResult.ack(classified.reason)

        commit = classified
        event_id = event.id if isinstance(event, RecordEvent) else None
        outcome = validate_commit(commit, self.resolver)

        ctx = format_context(
            event_id=event_id,
            nsid=commit.record.get("id"),
            cid=commit.cid,
            repo_did=commit.did,
            action=commit.action,
        )
        if isinstance(outcome, Valid):
            inserted = self.store.record_valid(commit, outcome.lexicon_doc)
            log.info(
                "Valid lexicon ingested (%s, duplicate=%s)", ctx, not inserted
            )
            return IngestResult.ack("Valid lexicon ingested successfully")

        inserted = self.store.record_invalid(commit, list(outcome.reasons))
        log.warning(
            "Invalid lexicon ingested (%s, reasons=%s, duplicate=%s)",
            ctx,
            ",".join(outcome.reason_types),
            not inserted,
        )
        return IngestResult.ack("Invalid lexicon stored for debugging")
