"""HTTP surface for lexhub.

``create_app`` wires settings, store, resolver and the ingestion pipeline
into a FastAPI application with two routers:

- ``POST /api/ingest`` receives transport events;
- ``GET /api/lexicons/{nsid}``, ``GET /api/repos/{repo_did}`` and
  ``GET /api/lexicons/resolve`` serve reads.

Examples:
    >>> from lexhub.api import create_app
    >>> from lexhub.store import create_store
    >>> app = create_app(store=create_store("sqlite", path=":memory:"))
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from .._config import Settings, get_settings
from .._exceptions import InvalidParamError
from .._logging import get_logger
from ..ingest import IngestionPipeline
from ..resolver import (
    AuthorityResolver,
    DnsHandleResolver,
    HandleResolver,
    create_resolver,
)
from ..store import LexiconStore, store_from_settings
from ._ingest import router as ingest_router
from ._lexicons import router as lexicons_router


async def _invalid_param_handler(
    request: Request, exc: InvalidParamError
) -> JSONResponse:
    return JSONResponse(exc.to_record(), status_code=status.HTTP_400_BAD_REQUEST)


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[LexiconStore] = None,
    resolver: Optional[AuthorityResolver] = None,
    handle_resolver: Optional[HandleResolver] = None,
) -> FastAPI:
    """Build the lexhub application.

    Args:
        settings: Runtime settings. Defaults to ``get_settings()``.
        store: Store to use. When omitted one is built from *settings* and
            closed on shutdown; a store passed in is left open.
        resolver: Authority resolver. Defaults to the caching DNS resolver.
        handle_resolver: Resolves handles in AT URIs for the read API.
            Defaults to a DNS handle resolver.

    Returns:
        A configured FastAPI application.
    """
    settings = settings if settings is not None else get_settings()
    owns_store = store is None
    if store is None:
        store = store_from_settings(settings)
    if resolver is None:
        resolver = create_resolver(
            timeout=settings.dns_timeout,
            cache_ttl=settings.resolver_cache_ttl,
            negative_ttl=settings.resolver_negative_ttl,
            cache_size=settings.resolver_cache_size,
        )
    if handle_resolver is None:
        handle_resolver = DnsHandleResolver(timeout=settings.dns_timeout)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        get_logger().info("lexhub %s starting (store=%s)", __version__, store.backend_name)
        yield
        if owns_store:
            store.close()

    app = FastAPI(
        title="LexHub",
        description="Ingestion and read API for AT Protocol Lexicon schemas",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.resolver = resolver
    app.state.handle_resolver = handle_resolver
    app.state.pipeline = IngestionPipeline(resolver, store)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    app.add_exception_handler(InvalidParamError, _invalid_param_handler)

    app.include_router(ingest_router)
    app.include_router(lexicons_router)
    return app


__all__ = ["create_app"]
