"""Identifier syntax for NSIDs and DIDs.

NSIDs (Namespaced Identifiers) name Lexicon schemas. They are a reversed
domain name (the *authority*) followed by a camelCase *name* segment::

    com.example.fooBar
    \\_________/ \\____/
     authority    name

Rules enforced here:

- ASCII only, at most 317 characters, at least three segments.
- Authority segments are lowercase DNS labels: 1-63 characters of
  ``a-z``, ``0-9`` and ``-``, not starting or ending with a hyphen. The
  first segment (the top-level domain once reversed) may not start with a
  digit. The authority as a whole is at most 253 characters.
- The name segment is 1-63 ASCII letters and digits starting with a letter.

Examples:
    >>> nsid = Nsid.parse("com.example.fooBar")
    >>> nsid.authority
    'com.example'
    >>> nsid.authority_domain
    'example.com'
    >>> nsid.name
    'fooBar'
"""

from __future__ import annotations

import re
from dataclasses import dataclass

NSID_MAX_LENGTH = 317
AUTHORITY_MAX_LENGTH = 253
SEGMENT_MAX_LENGTH = 63
DID_MAX_LENGTH = 2048

_AUTHORITY_SEGMENT = re.compile(r"[a-z0-9](?:[a-z0-9-]*[a-z0-9])?")
_NAME_SEGMENT = re.compile(r"[a-zA-Z][a-zA-Z0-9]*")
_DID = re.compile(r"did:[a-z]+:[a-zA-Z0-9._:%-]*[a-zA-Z0-9._-]")


def validate_nsid(value: object) -> str | None:
    """Check *value* against the NSID grammar.

    Args:
        value: Candidate identifier. Non-string values are rejected.

    Returns:
        ``None`` if *value* is a well-formed NSID, otherwise a message
        describing the first rule it breaks.
    """
    if not isinstance(value, str):
        return f"NSID must be a string, got {type(value).__name__}"
    if not value:
        return "NSID is empty"
    if not value.isascii():
        return "NSID contains non-ASCII characters"
    if len(value) > NSID_MAX_LENGTH:
        return f"NSID is longer than {NSID_MAX_LENGTH} characters"

    segments = value.split(".")
    if len(segments) < 3:
        return "NSID needs at least three segments (authority and name)"

    *authority, name = segments
    if len(".".join(authority)) > AUTHORITY_MAX_LENGTH:
        return f"NSID authority is longer than {AUTHORITY_MAX_LENGTH} characters"

    for i, segment in enumerate(authority):
        if not segment:
            return "NSID contains an empty segment"
        if len(segment) > SEGMENT_MAX_LENGTH:
            return f"NSID segment {segment!r} is longer than {SEGMENT_MAX_LENGTH} characters"
        if not _AUTHORITY_SEGMENT.fullmatch(segment):
            return (
                f"NSID authority segment {segment!r} must be lowercase letters, "
                "digits and inner hyphens"
            )
        if i == 0 and segment[0].isdigit():
            return f"NSID first segment {segment!r} may not start with a digit"

    if not name:
        return "NSID name segment is empty"
    if len(name) > SEGMENT_MAX_LENGTH:
        return f"NSID name {name!r} is longer than {SEGMENT_MAX_LENGTH} characters"
    if not _NAME_SEGMENT.fullmatch(name):
        return f"NSID name {name!r} must be letters and digits starting with a letter"

    return None


def is_valid_nsid(value: object) -> bool:
    """Return ``True`` if *value* is a well-formed NSID."""
    return validate_nsid(value) is None


@dataclass(frozen=True)
class Nsid:
    """A parsed, well-formed NSID."""

    segments: tuple[str, ...]

    @classmethod
    def parse(cls, value: str) -> Nsid:
        """Parse an NSID string.

        Raises:
            ValueError: If *value* is not a well-formed NSID.
        """
        error = validate_nsid(value)
        if error is not None:
            raise ValueError(f"Invalid NSID {value!r}: {error}")
        return cls(segments=tuple(value.split(".")))

    @property
    def authority(self) -> str:
        """Authority segments in NSID order, e.g. ``com.example``."""
        return ".".join(self.segments[:-1])

    @property
    def authority_domain(self) -> str:
        """Authority as a DNS name, e.g. ``example.com``."""
        return authority_to_domain(self.authority)

    @property
    def name(self) -> str:
        return self.segments[-1]

    def __str__(self) -> str:
        return ".".join(self.segments)


def parse_nsid(value: str) -> Nsid:
    """Shorthand for :meth:`Nsid.parse`."""
    return Nsid.parse(value)


def authority_to_domain(authority: str) -> str:
    """Reverse an NSID authority (``com.example``) into a DNS name."""
    return ".".join(reversed(authority.split(".")))


def is_valid_did(value: object) -> bool:
    """Return ``True`` if *value* matches the generic DID syntax.

    Examples:
        >>> is_valid_did("did:plc:z72i7hdynmk6r22z27h6tvur")
        True
        >>> is_valid_did("did:PLC:abc")
        False
    """
    return (
        isinstance(value, str)
        and len(value) <= DID_MAX_LENGTH
        and _DID.fullmatch(value) is not None
    )


def is_valid_handle(value: object) -> bool:
    """Return ``True`` if *value* is a syntactically valid account handle.

    A handle is a DNS name of at least two labels whose top-level label
    does not start with a digit. Case is ignored.

    Examples:
        >>> is_valid_handle("alice.bsky.social")
        True
        >>> is_valid_handle("did:plc:abc")
        False
    """
    if not isinstance(value, str) or not value.isascii():
        return False
    if len(value) > AUTHORITY_MAX_LENGTH:
        return False
    labels = value.lower().split(".")
    if len(labels) < 2 or labels[-1][:1].isdigit():
        return False
    return all(
        len(label) <= SEGMENT_MAX_LENGTH and _AUTHORITY_SEGMENT.fullmatch(label)
        for label in labels
    )
