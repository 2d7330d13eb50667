"""Query parameter parsing for the read API.

Each parser raises :class:`~lexhub._exceptions.InvalidParamError` with a
stable code (``INVALID_LIMIT``, ``INVALID_VALID_PARAM``, ...) that clients
can branch on.
"""

from __future__ import annotations

from typing import Mapping, Optional

from .._exceptions import InvalidParamError

DEFAULT_LIMIT = 50
MAX_LIMIT = 100


def parse_bool_param(params: Mapping[str, str], name: str, default: bool) -> bool:
    """Parse a ``true``/``false`` parameter."""
    value = params.get(name)
    if value is None:
        return default
    if value not in ("true", "false"):
        raise InvalidParamError(
            f"INVALID_{name.upper()}_PARAM",
            f"{name} parameter must be either 'true' or 'false'",
        )
    return value == "true"


def parse_int_param(
    params: Mapping[str, str],
    name: str,
    default: int,
    *,
    minimum: Optional[int] = None,
) -> int:
    """Parse an integer parameter with an optional lower bound."""
    value = params.get(name)
    if value is None or value == "":
        return default
    try:
        parsed = int(value)
    except ValueError:
        raise InvalidParamError(
            f"INVALID_{name.upper()}", f"{name} must be a valid integer"
        ) from None
    if minimum is not None and parsed < minimum:
        raise InvalidParamError(
            f"INVALID_{name.upper()}", f"{name} must be at least {minimum}"
        )
    return parsed


def parse_pagination(params: Mapping[str, str]) -> tuple[int, int]:
    """Return ``(limit, offset)``; limits above the maximum are clamped."""
    limit = min(parse_int_param(params, "limit", DEFAULT_LIMIT, minimum=1), MAX_LIMIT)
    offset = parse_int_param(params, "offset", 0, minimum=0)
    return limit, offset
