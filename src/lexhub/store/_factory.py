"""Store factory: build a ``LexiconStore`` by backend name."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Union

from .._exceptions import UnknownBackendError

if TYPE_CHECKING:
    from .._config import Settings
    from ._base import LexiconStore

BACKENDS = ("postgres", "sqlite")


def create_store(
    backend: str = "postgres",
    *,
    dsn: Optional[str] = None,
    path: Union[str, Path, None] = None,
    **kwargs: Any,
) -> LexiconStore:
    """Create a store by backend name.

    Args:
        backend: ``"postgres"`` or ``"sqlite"``.
        dsn: Connection string (PostgreSQL only).
        path: Database file path (SQLite only). Defaults to ``lexhub.db``.
        **kwargs: Extra arguments forwarded to the store constructor.

    Raises:
        UnknownBackendError: If *backend* is not recognised.

    Examples:
        >>> store = create_store("sqlite", path=":memory:")
        >>> store = create_store("postgres", dsn="postgresql://localhost/lexhub")
    """
    name = backend.lower().strip()
    if name == "postgres":
        from ._postgres import PostgresStore

        return PostgresStore(dsn, **kwargs)
    if name == "sqlite":
        from ._sqlite import SqliteStore

        return SqliteStore(path if path is not None else "lexhub.db", **kwargs)
    raise UnknownBackendError(backend, BACKENDS)


def store_from_settings(settings: Settings) -> LexiconStore:
    """Create the store described by *settings*."""
    if settings.store_backend == "sqlite":
        return create_store(
            "sqlite", path=settings.sqlite_path, timeout=settings.store_timeout
        )
    return create_store(
        "postgres",
        dsn=settings.database_url,
        timeout=settings.store_timeout,
        max_size=settings.pool_max_size,
    )
