"""Command-line interface for lexhub.

Commands:
    lexhub serve       Run the ingestion endpoint and read API
    lexhub init-db     Create the Lexicon tables and indexes
    lexhub resolve     Show the DID bound to an NSID's authority
    lexhub check       Validate a Lexicon JSON file
    lexhub version     Show version information

Example:
    $ lexhub init-db
    $ lexhub resolve app.bsky.feed.post
    did:plc:4v4y5r3lwsbtmsxhile2ljac

    $ lexhub check lexicons/com.example.feed.post.json
    valid: com.example.feed.post
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000

# Stand-in repository DID for offline checks without --did.
OFFLINE_DID = "did:web:localhost"


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the lexhub CLI.

    Args:
        argv: Command-line arguments. If None, uses sys.argv[1:].

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="lexhub",
        description="Ingestion and validation pipeline for AT Protocol Lexicons",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", "-v",
        action="store_true",
        help="Show version information",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'serve' command
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the ingestion endpoint and read API",
    )
    serve_parser.add_argument(
        "--host",
        default=DEFAULT_HOST,
        help=f"Bind address (default: {DEFAULT_HOST})",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help=f"Port (default: {DEFAULT_PORT})",
    )

    # 'init-db' command
    subparsers.add_parser(
        "init-db",
        help="Create the Lexicon tables and indexes",
    )

    # 'resolve' command
    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Show the DID bound to an NSID's authority",
    )
    resolve_parser.add_argument("nsid", help="NSID, e.g. app.bsky.feed.post")

    # 'check' command
    check_parser = subparsers.add_parser(
        "check",
        help="Validate a Lexicon JSON file",
    )
    check_parser.add_argument("file", help="Path to a Lexicon JSON document")
    check_parser.add_argument(
        "--did",
        help="Publishing repository DID; enables the DNS authority check",
    )
    check_parser.add_argument(
        "--rkey",
        help="Record key the document would be published under",
    )

    # 'version' command (alternative to --version flag)
    subparsers.add_parser(
        "version",
        help="Show version information",
    )

    args = parser.parse_args(argv)

    if args.version or args.command == "version":
        return _cmd_version()

    if args.command == "serve":
        return _cmd_serve(host=args.host, port=args.port)

    if args.command == "init-db":
        return _cmd_init_db()

    if args.command == "resolve":
        return _cmd_resolve(args.nsid)

    if args.command == "check":
        return _cmd_check(args.file, did=args.did, rkey=args.rkey)

    # No command given
    parser.print_help()
    return 0


def _cmd_version() -> int:
    """Show version information."""
    from lexhub import __version__

    print(f"lexhub {__version__}")
    return 0


def _cmd_serve(host: str, port: int) -> int:
    """Run the API under uvicorn."""
    import uvicorn

    from .._config import get_settings

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "lexhub.api:create_app",
        factory=True,
        host=host,
        port=port,
        log_level=settings.log_level.lower(),
    )
    return 0


def _cmd_init_db() -> int:
    """Create tables and indexes on the configured store."""
    from .._config import get_settings
    from .._exceptions import StoreError
    from .._logging import log_operation
    from ..store import store_from_settings

    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    try:
        with store_from_settings(settings) as store:
            with log_operation("init_db", backend=store.backend_name):
                store.ensure_schema()
    except StoreError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print("Schema ready.")
    return 0


def _cmd_resolve(nsid: str) -> int:
    """Print the DID bound to *nsid*'s authority."""
    from .._config import get_settings
    from ..resolver import DnsAuthorityResolver
    from ..syntax import Nsid

    try:
        parsed = Nsid.parse(nsid)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    resolver = DnsAuthorityResolver(timeout=get_settings().dns_timeout)
    did = resolver.resolve_authority_did(parsed.authority)
    if did is None:
        print(
            f"No DID bound to {parsed.authority} "
            f"(TXT {DnsAuthorityResolver.txt_name(parsed.authority)})",
            file=sys.stderr,
        )
        return 1
    print(did)
    return 0


class _FixedResolver:
    """Resolves every authority to one DID."""

    def __init__(self, did: str) -> None:
        self._did = did

    def resolve_authority_did(self, authority: str) -> Optional[str]:
        return self._did


def _cmd_check(path: str, *, did: Optional[str], rkey: Optional[str]) -> int:
    """Validate a Lexicon JSON file as if it had arrived in a commit."""
    from .._config import get_settings
    from ..events import Commit
    from ..lexicon import LEXICON_SCHEMA_NSID
    from ..reasons import reasons_to_records
    from ..resolver import DnsAuthorityResolver
    from ..validation import Valid, validate_commit

    try:
        data: Any = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        print(f"Error: cannot read {path}: {exc}", file=sys.stderr)
        return 2
    if not isinstance(data, dict):
        print(f"Error: {path} does not contain a JSON object", file=sys.stderr)
        return 2

    record = {"$type": LEXICON_SCHEMA_NSID, **data}
    record_id = record.get("id")
    if did is not None:
        resolver: Any = DnsAuthorityResolver(timeout=get_settings().dns_timeout)
    else:
        resolver = _FixedResolver(OFFLINE_DID)
    commit = Commit(
        did=did if did is not None else OFFLINE_DID,
        rev="",
        collection=LEXICON_SCHEMA_NSID,
        rkey=rkey if rkey is not None else str(record_id),
        action="create",
        record=record,
    )

    outcome = validate_commit(commit, resolver)
    if isinstance(outcome, Valid):
        print(f"valid: {outcome.lexicon_doc.id}")
        return 0
    print(f"invalid: {record_id}")
    print(json.dumps(reasons_to_records(outcome.reasons), indent=2))
    return 1


if __name__ == "__main__":
    sys.exit(main())
