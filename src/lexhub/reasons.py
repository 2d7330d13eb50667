"""Reasons a Lexicon record is stored as invalid.

Each reason is a small dataclass with a ``to_record()`` method producing the
JSON shape persisted in ``invalid_lexicons.reasons``::

    {"type": "rkey_mismatch", "expected": "com.example.foo", "actual": "self"}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Union


@dataclass(frozen=True)
class InvalidNsidFormat:
    """The record's ``id`` is not a well-formed NSID."""

    type: ClassVar[str] = "invalid_nsid_format"

    nsid: Any
    message: str

    def to_record(self) -> dict[str, Any]:
        return {"type": self.type, "nsid": self.nsid, "message": self.message}


@dataclass(frozen=True)
class DidAuthorityMismatch:
    """The NSID's DNS authority does not name the publishing repository.

    ``expected_did`` is ``None`` when the authority could not be resolved.
    """

    type: ClassVar[str] = "did_authority_mismatch"

    nsid: str
    expected_did: str | None
    actual_did: str

    def to_record(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "nsid": self.nsid,
            "expectedDid": self.expected_did,
            "actualDid": self.actual_did,
        }


@dataclass(frozen=True)
class RkeyMismatch:
    """The record key is not the record's own NSID."""

    type: ClassVar[str] = "rkey_mismatch"

    expected: str
    actual: str

    def to_record(self) -> dict[str, Any]:
        return {"type": self.type, "expected": self.expected, "actual": self.actual}


@dataclass(frozen=True)
class SchemaValidationError:
    """The record failed Lexicon meta-schema validation.

    ``issues`` holds every field-level problem, in the order found.
    """

    type: ClassVar[str] = "schema_validation_error"

    issues: list[dict[str, Any]] = field(default_factory=list)

    def to_record(self) -> dict[str, Any]:
        return {"type": self.type, "issues": list(self.issues)}


InvalidLexiconReason = Union[
    InvalidNsidFormat,
    DidAuthorityMismatch,
    RkeyMismatch,
    SchemaValidationError,
]


def reasons_to_records(reasons: list[InvalidLexiconReason]) -> list[dict[str, Any]]:
    """Serialize a list of reasons for storage."""
    return [reason.to_record() for reason in reasons]
