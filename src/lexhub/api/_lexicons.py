"""Read API: Lexicons by NSID, by publishing repository, and by AT URI.

Responses are ``{"data": ..., "pagination": {"limit", "offset", "total"}}``
or ``{"error": {"code", "message"}}``.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from .._exceptions import InvalidParamError
from .._logging import get_logger
from ..events import AtUri, AtUriPathError
from ..resolver import HandleResolver
from ..store import LexiconRow, LexiconStore, Page
from ..syntax import is_valid_did, is_valid_handle, is_valid_nsid
from ._params import parse_bool_param, parse_pagination

router = APIRouter(prefix="/api", tags=["Lexicons"])


def _error(code: str, message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        {"error": {"code": code, "message": message}}, status_code=status_code
    )


def _page_response(page: Page, limit: int, offset: int) -> JSONResponse:
    return JSONResponse(
        {
            "data": [row.to_json() for row in page.rows],
            "pagination": {"limit": limit, "offset": offset, "total": page.total},
        }
    )


def _tagged(row: LexiconRow) -> dict[str, Any]:
    return {**row.to_json(), "valid": row.valid}


def _repo_did(authority: str, handles: HandleResolver) -> str:
    """DID for an AT URI authority, resolving handles through DNS."""
    if is_valid_did(authority):
        return authority
    if not is_valid_handle(authority):
        raise InvalidParamError(
            "INVALID_AT_URI", "AT URI authority must be a DID or a handle"
        )
    did = handles.resolve_handle_did(authority)
    if did is None:
        raise InvalidParamError("HANDLE_NOT_FOUND", f"Could not resolve handle: {authority}")
    return did


# Registered before /lexicons/{nsid} so "resolve" is never read as an NSID.
@router.get("/lexicons/resolve")
def resolve_lexicon_uri(request: Request) -> JSONResponse:
    """Lexicons addressed by ``at://<repo>/<collection>/<nsid>``.

    With ``cid``, the row stored under the exact ``(nsid, cid, repo_did)``
    key is returned from either table. Without it, every version the
    repository published under that NSID is returned, valid and invalid
    merged newest first. Each row carries a ``valid`` flag.
    """
    params = request.query_params
    uri = params.get("uri")
    if not uri:
        raise InvalidParamError("MISSING_URI", "URI parameter is required")
    try:
        at_uri = AtUri.parse(uri)
    except AtUriPathError:
        raise InvalidParamError(
            "INVALID_AT_URI_PATH", "AT URI must include collection and record key"
        ) from None
    except ValueError:
        raise InvalidParamError("INVALID_AT_URI", "Invalid AT URI format") from None
    nsid = at_uri.rkey
    cid = params.get("cid")

    store: LexiconStore = request.app.state.store
    try:
        repo_did = _repo_did(at_uri.authority, request.app.state.handle_resolver)
        if cid:
            row = store.get_by_key(nsid, cid, repo_did)
            if row is None:
                return _error(
                    "NOT_FOUND",
                    "Lexicon not found with the specified NSID, CID, and repository DID",
                    status.HTTP_404_NOT_FOUND,
                )
            return JSONResponse({"data": _tagged(row)})
        page = store.list_by_nsid_and_repo(nsid, repo_did)
    except InvalidParamError:
        raise
    except Exception as exc:
        get_logger().error("read api: failed to resolve %s: %s", uri, exc)
        return _error(
            "INTERNAL_ERROR",
            "Failed to resolve AT URI",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return JSONResponse(
        {
            "data": [_tagged(row) for row in page.rows],
            "pagination": {"limit": len(page.rows), "offset": 0, "total": page.total},
        }
    )


@router.get("/lexicons/{nsid}")
def get_lexicons_by_nsid(nsid: str, request: Request) -> JSONResponse:
    """Lexicons ingested under one NSID, newest first.

    Query parameters: ``valid`` (default ``true``) selects the table,
    ``latest`` (default ``false``) returns only the newest row, and
    ``limit``/``offset`` paginate.
    """
    if not is_valid_nsid(nsid):
        raise InvalidParamError("INVALID_NSID", "The provided NSID is not valid")
    params = request.query_params
    valid = parse_bool_param(params, "valid", True)
    latest = parse_bool_param(params, "latest", False)
    limit, offset = parse_pagination(params)

    store: LexiconStore = request.app.state.store
    try:
        if latest:
            row = store.latest_by_nsid(nsid, valid=valid)
            if row is None:
                return _error(
                    "LEXICON_NOT_FOUND",
                    f"No lexicon found for {nsid}",
                    status.HTTP_404_NOT_FOUND,
                )
            return JSONResponse({"data": row.to_json()})
        page = store.list_by_nsid(nsid, valid=valid, limit=limit, offset=offset)
    except Exception as exc:
        get_logger().error("read api: failed to fetch lexicons for %s: %s", nsid, exc)
        return _error(
            "INTERNAL_ERROR",
            "Failed to fetch lexicons",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return _page_response(page, limit, offset)


@router.get("/repos/{repo_did}")
def get_lexicons_by_repo(repo_did: str, request: Request) -> JSONResponse:
    """Lexicons published by one repository, newest first."""
    if not is_valid_did(repo_did):
        raise InvalidParamError("INVALID_DID", "The provided DID is not valid")
    params = request.query_params
    valid = parse_bool_param(params, "valid", True)
    limit, offset = parse_pagination(params)

    store: LexiconStore = request.app.state.store
    try:
        page = store.list_by_repo(repo_did, valid=valid, limit=limit, offset=offset)
    except Exception as exc:
        get_logger().error(
            "read api: failed to fetch lexicons for repository %s: %s", repo_did, exc
        )
        return _error(
            "INTERNAL_ERROR",
            "Failed to fetch lexicons for repository",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return _page_response(page, limit, offset)
