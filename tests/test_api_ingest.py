"""Tests for ``POST /api/ingest``."""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from lexhub._config import Settings
from lexhub._exceptions import StoreError, StoreTimeoutError
from lexhub.api import create_app

from conftest import NSID, OTHER_DID, FakeResolver, record_event


def _client(store, *, secret=None, bindings=None):
    settings = Settings(store_backend="sqlite", ingest_secret=secret)
    resolver = FakeResolver({"com.example": "did:plc:abc"} if bindings is None else bindings)
    app = create_app(settings, store=store, resolver=resolver)
    return TestClient(app)


class TestIngestEndpoint:
    def test_valid_lexicon(self, sqlite_store):
        client = _client(sqlite_store)
        response = client.post("/api/ingest", json=record_event())

        assert response.status_code == 200
        assert response.text == "Valid lexicon ingested successfully"
        assert sqlite_store.list_by_nsid(NSID).total == 1

    def test_invalid_lexicon(self, sqlite_store):
        client = _client(sqlite_store, bindings={"com.example": OTHER_DID})
        response = client.post("/api/ingest", json=record_event())

        assert response.status_code == 200
        assert sqlite_store.list_by_nsid(NSID, valid=False).total == 1

    def test_identity_event_acknowledged_without_write(self):
        store = MagicMock()
        client = _client(store)
        response = client.post("/api/ingest", json={"id": 9, "type": "identity"})

        assert response.status_code == 200
        store.record_valid.assert_not_called()
        store.record_invalid.assert_not_called()

    def test_non_json_body_acknowledged(self):
        store = MagicMock()
        client = _client(store)
        response = client.post(
            "/api/ingest", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 200
        store.record_valid.assert_not_called()

    def test_deeply_nested_body_acknowledged(self, captured_log):
        store = MagicMock()
        client = _client(store)
        body = b"[" * 200000 + b"]" * 200000
        response = client.post(
            "/api/ingest", content=body, headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 200
        assert response.text == "Malformed request body"
        store.record_valid.assert_not_called()
        store.record_invalid.assert_not_called()
        assert any("RecursionError" in m for m in captured_log.messages("warning"))

    def test_store_connection_error_acknowledged(self, captured_log):
        store = MagicMock()
        store.record_valid.side_effect = StoreError("record_valid", "connection refused")
        client = _client(store)

        response = client.post("/api/ingest", json=record_event())

        assert response.status_code == 200
        assert any("connection refused" in m for m in captured_log.messages("error"))

    def test_store_timeout_requests_retry(self):
        store = MagicMock()
        store.record_valid.side_effect = StoreTimeoutError("record_valid", "timeout")
        client = _client(store)

        response = client.post("/api/ingest", json=record_event())

        assert response.status_code == 500


class TestIngestAuth:
    def test_missing_header(self):
        client = _client(MagicMock(), secret="s3cret")
        response = client.post("/api/ingest", json=record_event())
        assert response.status_code == 401
        assert response.text == "Unauthorized"

    @pytest.mark.parametrize("header", ["Bearer wrong", "s3cret", "Basic s3cret", "bearer s3cret"])
    def test_bad_header(self, header):
        store = MagicMock()
        client = _client(store, secret="s3cret")
        response = client.post(
            "/api/ingest", json=record_event(), headers={"Authorization": header}
        )
        assert response.status_code == 401
        store.record_valid.assert_not_called()

    def test_correct_secret(self, sqlite_store):
        client = _client(sqlite_store, secret="s3cret")
        response = client.post(
            "/api/ingest", json=record_event(), headers={"Authorization": "Bearer s3cret"}
        )
        assert response.status_code == 200
        assert sqlite_store.list_by_nsid(NSID).total == 1

    def test_no_secret_configured(self, sqlite_store):
        client = _client(sqlite_store)
        response = client.post("/api/ingest", json=record_event())
        assert response.status_code == 200
