# app/auth.py
"""Admin authentication dependency for the maintenance endpoints."""

import logging
import os
import secrets

from fastapi import Header, HTTPException

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"


def require_admin_key(
    x_api_key: str | None = Header(default=None, alias=API_KEY_HEADER),
) -> None:
    """Validate admin API key. Fails closed if ADMIN_API_KEY is not set."""
    expected_key = os.getenv("ADMIN_API_KEY")

    if not expected_key:
        logger.error("ADMIN_API_KEY is not configured; rejecting admin request")
        raise HTTPException(
            status_code=500,
            detail="Server misconfiguration: admin authentication not configured",
        )

    if not x_api_key or not secrets.compare_digest(x_api_key, expected_key):
        raise HTTPException(
            status_code=401,
            detail="Invalid or missing API key",
        )
