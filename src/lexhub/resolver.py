"""NSID authority resolution.

An NSID's authority (``com.example`` in ``com.example.fooBar``) is bound to a
DID through a DNS TXT record on the reversed domain::

    _lexicon.example.com.  TXT  "did=did:plc:abc123"

:class:`DnsAuthorityResolver` performs that lookup with dnspython. Because a
domain's binding changes rarely, :class:`CachingAuthorityResolver` wraps any
resolver with an explicit :class:`TTLCache`; build one per process and pass
it to the ingestion pipeline.

Account handles in AT URIs are bound the same way under ``_atproto.<handle>``;
:class:`DnsHandleResolver` reads those for the read API.

A missing or unreadable binding is a normal outcome: resolvers return
``None`` rather than raising.

Examples:
    >>> resolver = CachingAuthorityResolver(
    ...     DnsAuthorityResolver(timeout=2.0),
    ...     TTLCache(maxsize=10_000, ttl=3600),
    ... )
    >>> resolver.resolve_authority_did("com.example")
    'did:plc:...'
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Hashable, Optional, Protocol, Sequence, runtime_checkable

import dns.exception
import dns.resolver

from ._logging import get_logger
from .syntax import authority_to_domain, is_valid_did

LEXICON_SUBDOMAIN = "_lexicon"
ATPROTO_SUBDOMAIN = "_atproto"
DID_TXT_PREFIX = "did="


@runtime_checkable
class AuthorityResolver(Protocol):
    """Maps an NSID authority to the DID allowed to publish under it."""

    def resolve_authority_did(self, authority: str) -> Optional[str]:
        """Return the bound DID, or ``None`` if there is no usable binding.

        Args:
            authority: NSID authority in NSID order, e.g. ``com.example``.
        """
        ...


@runtime_checkable
class HandleResolver(Protocol):
    """Maps an account handle to its repository DID."""

    def resolve_handle_did(self, handle: str) -> Optional[str]:
        """Return the DID the handle claims, or ``None`` if it has none."""
        ...


class _DnsTxtDidResolver:
    """Shared ``did=`` TXT lookup for authority and handle resolution.

    Args:
        timeout: Total time budget in seconds for one lookup.
        nameservers: Optional nameserver addresses overriding the system
            configuration.
        _resolver: Optional pre-configured ``dns.resolver.Resolver`` for
            testing.
    """

    def __init__(
        self,
        *,
        timeout: float = 3.0,
        nameservers: Optional[Sequence[str]] = None,
        _resolver: Optional[Any] = None,
    ) -> None:
        self._nameservers = list(nameservers) if nameservers else None
        self._resolver = _resolver
        if _resolver is not None and self._nameservers:
            _resolver.nameservers = self._nameservers
        self._timeout = timeout

    @property
    def dns_resolver(self) -> Any:
        """The dnspython resolver, read from the system configuration on first use."""
        if self._resolver is None:
            resolver = dns.resolver.Resolver()
            if self._nameservers:
                resolver.nameservers = self._nameservers
            self._resolver = resolver
        return self._resolver

    def _lookup_did(self, name: str) -> Optional[str]:
        log = get_logger()
        try:
            answer = self.dns_resolver.resolve(name, "TXT", lifetime=self._timeout)
        except dns.exception.DNSException as exc:
            log.debug("did lookup failed: name=%s, error=%s", name, type(exc).__name__)
            return None

        dids: set[str] = set()
        for rdata in answer:
            text = b"".join(rdata.strings).decode("utf-8", errors="replace")
            if text.startswith(DID_TXT_PREFIX):
                did = text[len(DID_TXT_PREFIX) :].strip()
                if is_valid_did(did):
                    dids.add(did)

        if len(dids) != 1:
            # Zero or conflicting bindings both mean "not verifiable".
            log.debug("did lookup found %d DIDs: name=%s", len(dids), name)
            return None
        return dids.pop()


class DnsAuthorityResolver(_DnsTxtDidResolver):
    """Resolve authorities through ``_lexicon`` TXT records."""

    @staticmethod
    def txt_name(authority: str) -> str:
        """DNS name queried for *authority*, e.g. ``_lexicon.example.com``."""
        return f"{LEXICON_SUBDOMAIN}.{authority_to_domain(authority)}"

    def resolve_authority_did(self, authority: str) -> Optional[str]:
        return self._lookup_did(self.txt_name(authority))


class DnsHandleResolver(_DnsTxtDidResolver):
    """Resolve account handles through ``_atproto`` TXT records.

    Used by the read API to turn ``at://alice.example.com/...`` into the
    repository DID rows are keyed by.
    """

    @staticmethod
    def txt_name(handle: str) -> str:
        """DNS name queried for *handle*, e.g. ``_atproto.alice.example.com``."""
        return f"{ATPROTO_SUBDOMAIN}.{handle.lower()}"

    def resolve_handle_did(self, handle: str) -> Optional[str]:
        return self._lookup_did(self.txt_name(handle))


class TTLCache:
    """Bounded mapping whose entries expire after a time-to-live.

    When full, the least recently used entry is evicted. All bookkeeping is
    guarded by a lock, so one instance can be shared across request threads.

    Args:
        maxsize: Maximum number of entries.
        ttl: Default lifetime of an entry in seconds.
        timer: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        maxsize: int,
        ttl: float,
        *,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        if maxsize < 1:
            raise ValueError(f"maxsize must be at least 1, got {maxsize}")
        self._maxsize = maxsize
        self._ttl = ttl
        self._timer = timer
        self._data: OrderedDict[Hashable, tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def maxsize(self) -> int:
        return self._maxsize

    def lookup(self, key: Hashable) -> tuple[bool, Any]:
        """Return ``(True, value)`` for a live entry, else ``(False, None)``.

        The explicit flag lets ``None`` be cached as a value.
        """
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return False, None
            expires_at, value = item
            if self._timer() >= expires_at:
                del self._data[key]
                return False, None
            self._data.move_to_end(key)
            return True, value

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        lifetime = self._ttl if ttl is None else ttl
        with self._lock:
            self._data[key] = (self._timer() + lifetime, value)
            self._data.move_to_end(key)
            while len(self._data) > self._maxsize:
                self._data.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class CachingAuthorityResolver:
    """Memoize another resolver's answers in a :class:`TTLCache`.

    Positive answers live for the cache's default TTL; misses live for
    ``negative_ttl`` seconds (``0`` disables caching misses). Two threads
    missing the same key may both resolve it; the last write wins.

    Args:
        inner: The resolver consulted on a cache miss.
        cache: Shared cache instance.
        negative_ttl: Lifetime for ``None`` answers. Defaults to the cache TTL.
    """

    def __init__(
        self,
        inner: AuthorityResolver,
        cache: TTLCache,
        *,
        negative_ttl: Optional[float] = None,
    ) -> None:
        self._inner = inner
        self._cache = cache
        self._negative_ttl = negative_ttl

    @property
    def cache(self) -> TTLCache:
        return self._cache

    def resolve_authority_did(self, authority: str) -> Optional[str]:
        hit, did = self._cache.lookup(authority)
        if hit:
            return did

        did = self._inner.resolve_authority_did(authority)
        if did is not None:
            self._cache.set(authority, did)
        elif self._negative_ttl != 0:
            self._cache.set(authority, None, ttl=self._negative_ttl)
        return did


def create_resolver(
    *,
    timeout: float = 3.0,
    cache_ttl: float = 3600.0,
    negative_ttl: Optional[float] = 300.0,
    cache_size: int = 10_000,
) -> CachingAuthorityResolver:
    """Build the process-wide caching DNS resolver."""
    return CachingAuthorityResolver(
        DnsAuthorityResolver(timeout=timeout),
        TTLCache(maxsize=cache_size, ttl=cache_ttl),
        negative_ttl=negative_ttl,
    )
