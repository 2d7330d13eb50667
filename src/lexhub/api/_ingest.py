"""``POST /api/ingest``: the transport-facing ingestion endpoint.

The response status is a control signal for the transport, which redelivers
any event that does not receive a 200:

- ``200`` acknowledge (stop redelivery);
- ``500`` redeliver later (used sparingly, only for store timeouts);
- ``401`` the shared secret did not match.

The response body is diagnostic text, not a stable contract.
"""

from __future__ import annotations

import hmac
from typing import Optional

from fastapi import APIRouter, Request, status
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from .._logging import get_logger
from ..ingest import IngestionPipeline, IngestStatus

router = APIRouter(prefix="/api", tags=["Ingest"])

BEARER_PREFIX = "Bearer "


def is_authorized(header: Optional[str], secret: Optional[str]) -> bool:
    """Check an ``Authorization`` header against the configured secret.

    With no secret configured, every caller is authorized.
    """
    if secret is None:
        return True
    if header is None or not header.startswith(BEARER_PREFIX):
        return False
    token = header[len(BEARER_PREFIX) :].strip()
    return hmac.compare_digest(token.encode("utf-8"), secret.encode("utf-8"))


@router.post("/ingest", response_class=PlainTextResponse)
async def ingest_event(request: Request) -> PlainTextResponse:
    """Receive one transport event."""
    settings = request.app.state.settings
    secret = (
        settings.ingest_secret.get_secret_value()
        if settings.ingest_secret is not None
        else None
    )
    if not is_authorized(request.headers.get("authorization"), secret):
        get_logger().warning("ingest: rejected request with bad credentials")
        return PlainTextResponse("Unauthorized", status_code=status.HTTP_401_UNAUTHORIZED)

    try:
        payload = await request.json()
    except (ValueError, RecursionError) as exc:
        # Redelivering a body that cannot be decoded would not fix it.
        get_logger().warning("ingest: undecodable request body: %s", type(exc).__name__)
        return PlainTextResponse("Malformed request body", status_code=status.HTTP_200_OK)

    pipeline: IngestionPipeline = request.app.state.pipeline
    result = await run_in_threadpool(pipeline.handle, payload)

    if result.status is IngestStatus.RETRY:
        return PlainTextResponse(
            result.message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    return PlainTextResponse(result.message, status_code=status.HTTP_200_OK)
