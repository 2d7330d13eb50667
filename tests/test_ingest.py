"""Tests for the transport-agnostic ingestion pipeline."""

from unittest.mock import MagicMock

from lexhub._exceptions import StoreError, StoreTimeoutError
from lexhub.ingest import IngestionPipeline, IngestResult, IngestStatus

from conftest import NSID, FakeResolver, OTHER_DID, lexicon_record, record_event


def _pipeline(store, bindings=None):
    resolver = FakeResolver({"com.example": "did:plc:abc"} if bindings is None else bindings)
    return IngestionPipeline(resolver, store)


class TestIngestResult:
    def test_constructors(self):
        assert IngestResult.ack("ok") == IngestResult(IngestStatus.ACK, "ok")
        assert IngestResult.retry("later").status is IngestStatus.RETRY


class TestSkippedEvents:
    def test_identity_event_not_written(self):
        store = MagicMock()
        result = _pipeline(store).handle({"id": 1, "type": "identity"})

        assert result.status is IngestStatus.ACK
        assert result.message == "Event type not desired"
        store.record_valid.assert_not_called()
        store.record_invalid.assert_not_called()

    def test_malformed_payload_acknowledged(self):
        store = MagicMock()
        result = _pipeline(store).handle(["not", "an", "event"])
        assert result.status is IngestStatus.ACK
        assert result.message.startswith("Malformed event")
        store.record_valid.assert_not_called()

    def test_other_collection_acknowledged(self):
        store = MagicMock()
        result = _pipeline(store).handle(record_event(collection="app.bsky.feed.post"))
        assert result.status is IngestStatus.ACK
        store.record_valid.assert_not_called()
        store.record_invalid.assert_not_called()


class TestValidation:
    def test_valid_lexicon_stored(self, sqlite_store, captured_log):
        result = _pipeline(sqlite_store).handle(record_event())

        assert result == IngestResult.ack("Valid lexicon ingested successfully")
        assert sqlite_store.list_by_nsid(NSID).total == 1
        assert any(
            "Valid lexicon ingested" in m and f"nsid={NSID}" in m
            for m in captured_log.messages("info")
        )

    def test_invalid_lexicon_stored(self, sqlite_store, captured_log):
        result = _pipeline(sqlite_store, {"com.example": OTHER_DID}).handle(record_event())

        assert result == IngestResult.ack("Invalid lexicon stored for debugging")
        page = sqlite_store.list_by_nsid(NSID, valid=False)
        assert page.total == 1
        assert page.rows[0].reasons[0]["type"] == "did_authority_mismatch"
        warnings = captured_log.messages("warning")
        assert any("reasons=did_authority_mismatch" in m for m in warnings)

    def test_redelivery_is_idempotent(self, sqlite_store, captured_log):
        pipeline = _pipeline(sqlite_store)
        pipeline.handle(record_event(event_id=1))
        result = pipeline.handle(record_event(event_id=1))

        assert result.status is IngestStatus.ACK
        assert sqlite_store.list_by_nsid(NSID).total == 1
        assert any("duplicate=True" in m for m in captured_log.messages("info"))

    def test_schema_failure_stored_with_issues(self, sqlite_store):
        record = lexicon_record(defs={"main": {"type": "record"}})
        _pipeline(sqlite_store).handle(record_event(record))

        row = sqlite_store.latest_by_nsid(NSID, valid=False)
        assert row.reasons[0]["type"] == "schema_validation_error"
        assert len(row.reasons[0]["issues"]) == 1


class TestFailurePolicy:
    def test_store_timeout_requests_retry(self, captured_log):
        store = MagicMock()
        store.record_valid.side_effect = StoreTimeoutError("record_valid", "pool timeout")

        result = _pipeline(store).handle(record_event())

        assert result.status is IngestStatus.RETRY
        assert captured_log.messages("error")

    def test_store_connection_error_acknowledged_and_logged(self, captured_log):
        store = MagicMock()
        store.record_valid.side_effect = StoreError("record_valid", "connection refused")

        result = _pipeline(store).handle(record_event())

        assert result == IngestResult.ack("Failed to process request")
        errors = captured_log.messages("error")
        assert any("connection refused" in m for m in errors)

    def test_resolver_crash_stored_as_mismatch(self, sqlite_store, captured_log):
        resolver = MagicMock()
        resolver.resolve_authority_did.side_effect = RuntimeError("boom")
        pipeline = IngestionPipeline(resolver, sqlite_store)

        result = pipeline.handle(record_event())

        assert result == IngestResult.ack("Invalid lexicon stored for debugging")
        row = sqlite_store.latest_by_nsid(NSID, valid=False)
        assert row.reasons == [
            {
                "type": "did_authority_mismatch",
                "nsid": NSID,
                "expectedDid": None,
                "actualDid": "did:plc:abc",
            }
        ]
        assert captured_log.messages("error") == []
        assert any("boom" in m for m in captured_log.messages("warning"))
