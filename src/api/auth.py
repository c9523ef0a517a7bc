"""
API authentication using the X-API-KEY header.

Callers identify the acting user with ``X-USER-ID``; documents, feed
sources and mixins record it as their creator. Issuing and checking user
credentials happens upstream of this service.
"""

import secrets

from fastapi import Header, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from src.config.settings import get_settings

# API key header scheme
api_key_header = APIKeyHeader(name="X-API-KEY", auto_error=False)


async def verify_api_key(api_key: str | None = Security(api_key_header)) -> str:
    """
    Verify API key from X-API-KEY header.

    Returns:
        The validated API key ("dev-mode" when no keys are configured)

    Raises:
        HTTPException: If API key is missing or invalid
    """
    settings = get_settings()

    if not settings.api_keys:
        return "dev-mode"

    if api_key is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key. Provide X-API-KEY header.",
        )

    valid_keys = [k.strip() for k in settings.api_keys.split(",") if k.strip()]
    if not any(secrets.compare_digest(api_key, k) for k in valid_keys):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )

    return api_key


async def get_user_id(
    x_user_id: str | None = Header(default=None, alias="X-USER-ID", max_length=200),
) -> str:
    """Acting user id for writes; required on endpoints that create content."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing X-USER-ID header",
        )
    return x_user_id.strip()
