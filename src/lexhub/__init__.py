"""Ingestion and validation pipeline for AT Protocol Lexicon schemas.

lexhub consumes repository commit events, selects
``com.atproto.lexicon.schema`` records, checks them (NSID syntax, DNS
authority binding, record key, Lexicon meta-schema) and files each one into
either the valid or the invalid Lexicon table.

Examples:
    >>> from lexhub import validate_commit, Commit
    >>> from lexhub.resolver import create_resolver
    >>> outcome = validate_commit(commit, create_resolver())
"""

__version__ = "0.1.0"

from ._exceptions import (
    InvalidParamError,
    LexhubError,
    StoreError,
    StoreTimeoutError,
    UnknownBackendError,
)
from ._logging import configure_logging, get_logger, log_operation
from .events import Commit, NotApplicable, classify, decode_event
from .ingest import IngestionPipeline, IngestResult, IngestStatus
from .lexicon import LexiconDoc, ParseResult, parse_lexicon_doc
from .reasons import (
    DidAuthorityMismatch,
    InvalidNsidFormat,
    RkeyMismatch,
    SchemaValidationError,
)
from .syntax import (
    Nsid,
    is_valid_did,
    is_valid_handle,
    is_valid_nsid,
    parse_nsid,
    validate_nsid,
)
from .validation import Invalid, Valid, validate_commit

__all__ = [
    "__version__",
    # Errors
    "LexhubError",
    "StoreError",
    "StoreTimeoutError",
    "UnknownBackendError",
    "InvalidParamError",
    # Logging
    "configure_logging",
    "get_logger",
    "log_operation",
    # Syntax
    "Nsid",
    "parse_nsid",
    "validate_nsid",
    "is_valid_nsid",
    "is_valid_did",
    "is_valid_handle",
    # Lexicon documents
    "LexiconDoc",
    "ParseResult",
    "parse_lexicon_doc",
    # Events
    "Commit",
    "NotApplicable",
    "decode_event",
    "classify",
    # Validation
    "Valid",
    "Invalid",
    "validate_commit",
    "InvalidNsidFormat",
    "DidAuthorityMismatch",
    "RkeyMismatch",
    "SchemaValidationError",
    # Pipeline
    "IngestionPipeline",
    "IngestResult",
    "IngestStatus",
]
