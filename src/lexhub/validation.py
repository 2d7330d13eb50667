"""Lexicon record validation.

:func:`validate_commit` runs four checks in order and stops at the first
stage that fails:

1. **NSID format**: the record ``id`` must be a well-formed NSID.
2. **DID authority**: the DID bound to the NSID authority in DNS must be the
   repository that published the record. An unresolvable authority fails,
   and so does a resolver that raises.
3. **Record key**: the commit ``rkey`` must equal the record ``id``.
4. **Schema**: the record must be a valid Lexicon document. Every issue
   found at this stage is reported together.

The only side effect is the resolver call in stage 2.

Examples:
    >>> outcome = validate_commit(commit, resolver)
    >>> if isinstance(outcome, Valid):
    ...     store.record_valid(commit, outcome.lexicon_doc)
    ... else:
    ...     store.record_invalid(commit, outcome.reasons)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ._logging import get_logger
from .events import Commit
from .lexicon import LexiconDoc, parse_lexicon_doc
from .reasons import (
    DidAuthorityMismatch,
    InvalidLexiconReason,
    InvalidNsidFormat,
    RkeyMismatch,
    SchemaValidationError,
)
from .resolver import AuthorityResolver
from .syntax import Nsid, validate_nsid


@dataclass(frozen=True)
class Valid:
    lexicon_doc: LexiconDoc


@dataclass(frozen=True)
class Invalid:
    """Validation failed; ``reasons`` is never empty."""

    reasons: tuple[InvalidLexiconReason, ...]

    def __post_init__(self) -> None:
        if not self.reasons:
            raise ValueError("Invalid outcome requires at least one reason")

    @property
    def reason_types(self) -> list[str]:
        return [reason.type for reason in self.reasons]


ValidationOutcome = Union[Valid, Invalid]


def validate_commit(commit: Commit, resolver: AuthorityResolver) -> ValidationOutcome:
    """Validate a classified Lexicon schema commit.

    Args:
        commit: A commit whose record passed :func:`lexhub.events.classify`.
        resolver: Authority resolver consulted once, after the NSID check.

    Returns:
        :class:`Valid` with the parsed document, or :class:`Invalid` with the
        reason(s) from the first failing stage.
    """
    record = commit.record
    record_id = record.get("id")

    error = validate_nsid(record_id)
    if error is not None:
        return Invalid((InvalidNsidFormat(nsid=record_id, message=error),))

    nsid = Nsid.parse(record_id)
    try:
        expected_did = resolver.resolve_authority_did(nsid.authority)
    except Exception as exc:
        get_logger().warning(
            "authority resolution failed, treating as unbound: authority=%s, error=%s",
            nsid.authority,
            exc,
        )
        expected_did = None
    if expected_did is None or expected_did != commit.did:
        return Invalid(
            (
                DidAuthorityMismatch(
                    nsid=record_id,
                    expected_did=expected_did,
                    actual_did=commit.did,
                ),
            )
        )

    if commit.rkey != record_id:
        return Invalid((RkeyMismatch(expected=record_id, actual=commit.rkey),))

    result = parse_lexicon_doc(record)
    if result.doc is None:
        return Invalid((SchemaValidationError(issues=result.issues),))

    return Valid(lexicon_doc=result.doc)
