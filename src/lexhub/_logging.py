"""Logging for the ingestion service and its read API.

Every lexhub module logs through :func:`get_logger`, which returns the stdlib
``"lexhub"`` logger unless another one was installed with
:func:`configure_logging`. The ``serve`` and ``init-db`` commands set the
level from ``LEXHUB_LOG_LEVEL``; library users configure ``"lexhub"`` like
any other stdlib logger.

Messages start with the area that emitted them (``ingest:``, ``read api:``)
and carry their identifiers as ``k=v`` pairs built by
:func:`format_context`, so one ingested record can be followed with a grep
on its NSID or CID. Levels are used as follows:

- ``debug``: skipped events and DNS lookups that found no binding;
- ``info``: valid lexicons stored, schema set up;
- ``warning``: invalid lexicons stored, rejected credentials, undecodable
  bodies, resolver failures;
- ``error``: store failures and anything that made a request fail.

Examples:
    >>> from lexhub._logging import format_context, get_logger
    >>> get_logger().info(
    ...     "Valid lexicon ingested (%s)",
    ...     format_context(nsid="com.example.foo", cid="bafy..."),
    ... )

    Tests capture output by installing their own logger:

    >>> lexhub.configure_logging(recorder)
"""

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import Generator
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class LoggerProtocol(Protocol):
    """The four levels lexhub logs at, with stdlib ``%``-style arguments."""

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def info(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def error(self, msg: str, *args: Any, **kwargs: Any) -> None: ...


# ---------------------------------------------------------------------------
# Module-level state
# ---------------------------------------------------------------------------

_logger: LoggerProtocol = logging.getLogger("lexhub")


def configure_logging(logger: LoggerProtocol) -> None:
    """Send all lexhub log records to *logger*.

    Args:
        logger: Any object with ``debug``/``info``/``warning``/``error``
            methods taking a ``%``-format string and arguments. Pass
            ``logging.getLogger("lexhub")`` to restore the default.
    """
    global _logger
    _logger = logger


def get_logger() -> LoggerProtocol:
    """Return the logger installed by :func:`configure_logging`.

    Looked up on every call, so modules must not cache the result at import
    time.
    """
    return _logger


def format_context(**context: Any) -> str:
    """Render keyword context as ``k=v`` pairs for log messages.

    Examples:
        >>> format_context(nsid="com.example.foo", duplicate=False)
        'nsid=com.example.foo, duplicate=False'
    """
    return ", ".join(f"{k}={v}" for k, v in context.items())


def _with_context(message: str, ctx: str) -> str:
    return f"{message} ({ctx})" if ctx else message


@contextlib.contextmanager
def log_operation(op_name: str, **context: Any) -> Generator[None, None, None]:
    """Log one administrative step such as ``init_db``, with its duration.

    Logs ``<op>: started`` on entry and ``<op>: completed in N.NNs`` on
    success at ``info``. If an exception escapes, logs
    ``<op>: failed after N.NNs: <ExceptionType>`` at ``error`` and re-raises.

    Args:
        op_name: Label at the start of every message.
        **context: Pairs appended to every message, e.g. ``backend="postgres"``.

    Examples:
        >>> with log_operation("init_db", backend=store.backend_name):
        ...     store.ensure_schema()
    """
    log = get_logger()
    ctx = format_context(**context)
    log.info(_with_context(f"{op_name}: started", ctx))
    t0 = time.monotonic()
    try:
        yield
    except Exception as exc:
        elapsed = time.monotonic() - t0
        log.error(
            _with_context(f"{op_name}: failed after {elapsed:.2f}s: {type(exc).__name__}", ctx)
        )
        raise
    elapsed = time.monotonic() - t0
    log.info(_with_context(f"{op_name}: completed in {elapsed:.2f}s", ctx))
