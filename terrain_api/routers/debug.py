"""
Debug Router
============

Admin-only endpoint for checking the Sentry integration. Independent of the
terrain pipeline.

Authentication: ``Authorization: Bearer <key>`` header or ``?key=<key>``,
compared against ``ADMIN_API_KEY``. The endpoint answers 503 when no key is
configured.
"""

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Header, Query
from fastapi.responses import JSONResponse

from terrain_api import config
from terrain_api.services.telemetry import SentryObserver

logger = logging.getLogger(__name__)
router = APIRouter()


def extract_admin_key(authorization: Optional[str], key: Optional[str]) -> Optional[str]:
    """Prefer a Bearer token, fall back to the query parameter."""
    if authorization and authorization.startswith("Bearer "):
        return authorization[len("Bearer "):]
    return key


@router.get("/debug-sentry", include_in_schema=False)
async def debug_sentry(
    authorization: Optional[str] = Header(None),
    key: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
):
    """Send a test message to Sentry, or raise a test error with ``?error=true``."""
    observer = SentryObserver()
    observer.set_tag("test_type", "debug_endpoint")

    if not config.ADMIN_API_KEY:
        observer.set_tag("auth_error", "key_not_configured")
        return JSONResponse(status_code=503, content={"error": "Admin endpoint not configured"})

    provided = extract_admin_key(authorization, key)
    if not provided or not hmac.compare_digest(provided, config.ADMIN_API_KEY):
        observer.set_tag("auth_error", "unauthorized")
        logger.warning("Unauthorized debug endpoint access")
        return JSONResponse(status_code=401, content={
            "error": "Unauthorized. Admin access required.",
            "hint": "Provide API key via Authorization: Bearer <key> header or ?key=<key> parameter",
        })

    observer.set_tag("auth_status", "authorized")
    observer.capture_message("Sentry test from terrain-api", level="info")

    if error == "true":
        raise RuntimeError("Test error from /debug-sentry endpoint")

    return {
        "success": True,
        "message": "Test message sent to Sentry. Check your Sentry dashboard.",
        "tip": "Add ?error=true to test error capture",
    }
