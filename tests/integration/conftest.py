"""Shared fixtures for live integration tests.

Every test module in this package sets ``pytestmark = pytest.mark.integration``.

Fixtures read connection settings from environment variables and skip
tests when the required services are unavailable.  A per-run UUID prefix
isolates rows created during the test run.
"""

from __future__ import annotations

import os
import uuid
from typing import Generator

import pytest

# ── Per-run isolation prefix ────────────────────────────────────────
RUN_ID: str = uuid.uuid4().hex[:12]
"""Short unique prefix for all rows created during this test run."""


# ── PostgreSQL fixtures ───────────────────────────────────────────


@pytest.fixture(scope="session")
def postgres_dsn() -> str:
    """Return a PostgreSQL DSN from env or skip."""
    dsn = os.environ.get("POSTGRES_DSN", "")
    if not dsn:
        pytest.skip("PostgreSQL DSN not configured (set POSTGRES_DSN)")
    return dsn


@pytest.fixture()
def postgres_store(postgres_dsn: str) -> Generator:
    """Create a PostgresStore with the schema applied; truncate after test."""
    from lexhub.store import PostgresStore

    store = PostgresStore(postgres_dsn, timeout=10.0, max_size=4)
    store.ensure_schema()
    yield store

    # Teardown: truncate both tables so each test starts clean
    with store.pool.connection() as conn:
        conn.execute("TRUNCATE valid_lexicons, invalid_lexicons")
    store.close()


# ── Helpers ────────────────────────────────────────────────────────


def unique_nsid(name: str = "thing") -> str:
    """Generate an NSID unique to this run."""
    return f"com.example.r{RUN_ID}.{name}{uuid.uuid4().hex[:8]}"
