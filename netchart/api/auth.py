"""
Lightweight API auth helpers.

Supports optional API and metrics tokens via headers.
"""

from fastapi import Header, HTTPException, status

from ..config import settings


def _extract_token(authorization: str | None, x_api_key: str | None) -> str | None:
    if x_api_key:
        return x_api_key.strip()
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip()
    return None


def _check(expected: str | None, authorization: str | None, x_api_key: str | None) -> None:
    if not expected:
        return
    token = _extract_token(authorization, x_api_key)
    if token != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def require_api_token(
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None),
) -> None:
    """Require API token if configured."""
    _check(settings.api_token, authorization, x_api_key)


def require_metrics_token(
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None),
) -> None:
    """Require metrics token if configured."""
    _check(settings.metrics_token, authorization, x_api_key)
