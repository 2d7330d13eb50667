"""Event envelopes from the relay transport and the record classifier.

The transport POSTs one JSON envelope per event. Envelopes are discriminated
by ``type``; ``"record"`` envelopes carry a repository commit::

    {"id": 42, "type": "record",
     "record": {"did": "did:plc:abc", "rev": "3l...", "collection":
                "com.atproto.lexicon.schema", "rkey": "com.example.foo",
                "action": "create", "cid": "bafyrei...", "live": true,
                "record": {"$type": "com.atproto.lexicon.schema", ...}}}

:func:`decode_event` turns an arbitrary JSON value into exactly one of the
event variants below, and :func:`classify` decides whether a decoded event is
a Lexicon schema commit worth validating.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Union

from .lexicon import LEXICON_SCHEMA_NSID

CommitAction = Literal["create", "update", "delete"]
COMMIT_ACTIONS: frozenset[str] = frozenset({"create", "update", "delete"})
IDENTITY_EVENT_TYPES: frozenset[str] = frozenset({"identity", "user"})
AT_URI_SCHEME = "at://"


class AtUriPathError(ValueError):
    """An AT URI with a usable authority but no collection or record key."""


@dataclass(frozen=True)
class AtUri:
    """Parsed AT Protocol URI.

    AT URIs follow the format: at://<authority>/<collection>/<rkey>

    Examples:
        >>> uri = AtUri.parse("at://did:plc:abc/com.atproto.lexicon.schema/com.example.foo")
        >>> uri.collection
        'com.atproto.lexicon.schema'
        >>> uri.rkey
        'com.example.foo'
    """

    authority: str
    collection: str
    rkey: str

    @classmethod
    def parse(cls, uri: str) -> AtUri:
        """Parse an AT URI string into components.

        Raises:
            AtUriPathError: If the collection or record key is missing.
            ValueError: If the scheme is not ``at://`` or the authority is
                empty.
        """
        if not uri.startswith(AT_URI_SCHEME):
            raise ValueError(f"Invalid AT URI: must start with 'at://': {uri}")

        authority, _, path = uri[len(AT_URI_SCHEME) :].partition("/")
        if not authority:
            raise ValueError(f"Invalid AT URI: missing authority: {uri}")

        collection, _, rkey = path.partition("/")
        if not collection or not rkey:
            raise AtUriPathError(
                f"Invalid AT URI: expected authority/collection/rkey: {uri}"
            )

        return cls(authority=authority, collection=collection, rkey=rkey)

    def __str__(self) -> str:
        return f"{AT_URI_SCHEME}{self.authority}/{self.collection}/{self.rkey}"


@dataclass(frozen=True)
class Commit:
    """One mutation to a repository, as delivered by the transport.

    ``cid`` and ``record`` are absent on deletes.
    """

    did: str
    rev: str
    collection: str
    rkey: str
    action: CommitAction
    cid: str | None = None
    live: bool = False
    record: Any = None

    @property
    def uri(self) -> AtUri:
        return AtUri(authority=self.did, collection=self.collection, rkey=self.rkey)

    @classmethod
    def from_record(cls, d: Any) -> Commit:
        """Decode a commit payload.

        Raises:
            ValueError: If a required field is missing or has the wrong type.
        """
        if not isinstance(d, dict):
            raise ValueError(f"commit must be an object, got {type(d).__name__}")

        for name in ("did", "rev", "collection", "rkey"):
            if not isinstance(d.get(name), str):
                raise ValueError(f"commit field {name!r} must be a string")

        action = d.get("action")
        if action not in COMMIT_ACTIONS:
            raise ValueError(f"commit action {action!r} is not create/update/delete")

        cid = d.get("cid")
        if cid is not None and not isinstance(cid, str):
            raise ValueError("commit field 'cid' must be a string")

        live = d.get("live", False)
        if not isinstance(live, bool):
            raise ValueError("commit field 'live' must be a boolean")

        return cls(
            did=d["did"],
            rev=d["rev"],
            collection=d["collection"],
            rkey=d["rkey"],
            action=action,
            cid=cid,
            live=live,
            record=d.get("record"),
        )


##
# Event variants


@dataclass(frozen=True)
class RecordEvent:
    id: int
    commit: Commit


@dataclass(frozen=True)
class IdentityEvent:
    """Account or identity change; expected traffic that is never processed."""

    id: int
    type: str


@dataclass(frozen=True)
class UnsupportedEvent:
    """Well-formed envelope of a type this service does not handle."""

    id: int
    type: str


@dataclass(frozen=True)
class UndecodableEvent:
    """Payload that is not a valid event envelope."""

    reason: str


Event = Union[RecordEvent, IdentityEvent, UnsupportedEvent, UndecodableEvent]


def decode_event(payload: Any) -> Event:
    """Decode a JSON value into an event variant.

    Never raises: malformed input becomes :class:`UndecodableEvent`.
    """
    if not isinstance(payload, dict):
        return UndecodableEvent(f"envelope must be an object, got {type(payload).__name__}")

    event_id = payload.get("id")
    # bool is an int subclass; reject it explicitly
    if not isinstance(event_id, int) or isinstance(event_id, bool):
        return UndecodableEvent("envelope 'id' must be an integer")

    event_type = payload.get("type")
    if not isinstance(event_type, str):
        return UndecodableEvent("envelope 'type' must be a string")

    if event_type in IDENTITY_EVENT_TYPES:
        return IdentityEvent(id=event_id, type=event_type)
    if event_type != "record":
        return UnsupportedEvent(id=event_id, type=event_type)

    try:
        commit = Commit.from_record(payload.get("record"))
    except ValueError as exc:
        return UndecodableEvent(str(exc))
    return RecordEvent(id=event_id, commit=commit)


##
# Classification


@dataclass(frozen=True)
class NotApplicable:
    """The event is acknowledged without validation."""

    reason: str


def is_lexicon_schema_record(value: Any) -> bool:
    """Shallow structural test for a Lexicon schema record.

    Only checks the ``$type`` tag and the presence of an ``id`` key; full
    validation happens in :mod:`lexhub.validation`.
    """
    return (
        isinstance(value, dict)
        and value.get("$type") == LEXICON_SCHEMA_NSID
        and "id" in value
    )


def classify(event: Event) -> Commit | NotApplicable:
    """Return the commit to validate, or why the event is skipped."""
    if isinstance(event, UndecodableEvent):
        return NotApplicable(f"Malformed event: {event.reason}")
    if isinstance(event, IdentityEvent):
        return NotApplicable("Event type not desired")
    if isinstance(event, UnsupportedEvent):
        return NotApplicable(f"Unsupported event type {event.type!r}")
    if not isinstance(event, RecordEvent):
        raise TypeError(f"Unexpected event variant: {type(event).__name__}")

    commit = event.commit
    if commit.collection != LEXICON_SCHEMA_NSID:
        return NotApplicable(f"Collection {commit.collection!r} not desired")
    if commit.action == "delete":
        return NotApplicable("Delete commits carry no record")
    if commit.cid is None:
        return NotApplicable("Commit has no CID")
    if not is_lexicon_schema_record(commit.record):
        return NotApplicable("Not a valid lexicon schema record")
    return commit
