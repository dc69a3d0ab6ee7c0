# ABOUTME: Bearer token verification for the scheduling trigger endpoint.
# ABOUTME: Compares the Authorization header against the configured trigger token.

import secrets
from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, Request

from feed_relay.config import get_settings

log = structlog.get_logger()


async def verify_trigger_token(request: Request) -> bool:
    """Verify the bearer token sent by the external scheduler.

    Returns True if verified, False if no token is configured.

    Raises:
        HTTPException: If a token is configured and the request does not carry it.
    """
    settings = get_settings()

    # Skip verification in development (no token configured)
    if not settings.trigger_token:
        log.debug("trigger_verification_skipped", reason="no_token_configured")
        return False

    auth_header = request.headers.get("Authorization")
    if not auth_header:
        log.warning("trigger_missing_authorization")
        raise HTTPException(status_code=401, detail="Authorization header required")

    if not auth_header.startswith("Bearer "):
        log.warning("trigger_invalid_auth_format")
        raise HTTPException(status_code=401, detail="Invalid authorization format")

    token = auth_header[7:]
    expected = settings.trigger_token.get_secret_value()
    if not secrets.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        log.warning("trigger_invalid_token")
        raise HTTPException(status_code=401, detail="Invalid trigger token")

    return True


TriggerVerified = Annotated[bool, Depends(verify_trigger_token)]
