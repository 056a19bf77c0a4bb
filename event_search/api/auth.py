"""
Shared-key authentication for the event and search routes.

Keys come from the comma-separated API_KEYS setting. When it is unset
the API runs open (local development); /health never requires a key.
"""

import secrets

import structlog
from fastapi import HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from event_search.config.settings import get_settings

logger = structlog.get_logger(__name__)

API_KEY_HEADER = "X-API-KEY"
OPEN_ACCESS = "dev-mode"

api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)


def configured_keys(raw: str | None) -> frozenset[str]:
    """Parse the API_KEYS setting, ignoring blanks around commas."""
    if not raw:
        return frozenset()
    return frozenset(key.strip() for key in raw.split(",") if key.strip())


def _matches(candidate: str, keys: frozenset[str]) -> bool:
    # Compare against every key so timing does not reveal which one matched
    found = False
    for key in keys:
        found |= secrets.compare_digest(candidate.encode(), key.encode())
    return found


def _reject(request: Request, detail: str) -> HTTPException:
    logger.warning(
        "Rejected unauthenticated request",
        path=request.url.path,
        reason=detail,
    )
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "APIKey"},
    )


async def verify_api_key(
    request: Request,
    api_key: str | None = Security(api_key_header),
) -> str:
    """
    Check the X-API-KEY header against the configured keys.

    Returns:
        The accepted key, or "dev-mode" when no keys are configured

    Raises:
        HTTPException: 401 if the header is missing or the key is unknown
    """
    raw = get_settings().api_keys
    if not raw:
        return OPEN_ACCESS

    # A setting with only separators accepts nothing
    keys = configured_keys(raw)

    if not api_key:
        raise _reject(request, f"Missing API key. Provide {API_KEY_HEADER} header.")
    if not _matches(api_key, keys):
        raise _reject(request, "Invalid API key")

    return api_key
