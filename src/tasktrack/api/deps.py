"""API dependencies."""

import logging
import secrets
from typing import AsyncGenerator

from fastapi import Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.config import Environment, settings
from tasktrack.db.base import get_session

logger = logging.getLogger("tasktrack.api")


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session. Commits when the request handler succeeds."""
    async with get_session() as session:
        yield session


async def verify_api_key(
    authorization: str | None = Header(None),
    x_api_key: str | None = Header(None, alias="X-API-Key"),
) -> None:
    """
    Verify the shared API key.

    Accepts ``Authorization: Bearer <key>`` or ``X-API-Key``. Fails closed:
    without a configured key, requests are rejected unless insecure dev mode
    is explicitly enabled.
    """
    if settings.allow_insecure_dev and settings.env == Environment.DEVELOPMENT:
        return None

    api_key = None
    if authorization and authorization.startswith("Bearer "):
        api_key = authorization[7:]
    elif x_api_key:
        api_key = x_api_key

    if not api_key:
        raise HTTPException(
            status_code=401,
            detail="Missing authorization. Use Authorization: Bearer <key> or X-API-Key header",
        )

    if not settings.api_key:
        logger.error("No API key configured. Set TASKTRACK_API_KEY.")
        raise HTTPException(
            status_code=503,
            detail="Server misconfigured: authentication not properly initialized",
        )

    if not secrets.compare_digest(api_key, settings.api_key):
        raise HTTPException(status_code=401, detail="Invalid API key")
    return None


def validate_auth_config() -> None:
    """
    Validate authentication configuration at startup.

    Raises:
        RuntimeError: If configuration is insecure for the current environment
    """
    if settings.allow_insecure_dev and settings.env != Environment.DEVELOPMENT:
        raise RuntimeError(
            f"SECURITY ERROR: allow_insecure_dev=true is only permitted in development. "
            f"Current environment: {settings.env.value}. "
            f"Set TASKTRACK_ALLOW_INSECURE_DEV=false for {settings.env.value}."
        )

    if settings.allow_insecure_dev:
        logger.warning(
            "Running in INSECURE DEV MODE: authentication is disabled. "
            "Set TASKTRACK_ALLOW_INSECURE_DEV=false for any deployment."
        )
    else:
        logger.info(f"Authentication enabled: shared API key for {settings.env.value}")
