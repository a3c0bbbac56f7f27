"""
Internal caller authentication for the credit endpoints.

The credit use/refund endpoints settle analysis attempts on behalf of a
user. Only trusted backend callers may hit them; a signed-in user's
session alone is not enough. Callers present the shared secret in the
X-Internal-Key header.
"""
import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from resumezen.core.config import settings
from resumezen.core.errors import AppError, PermissionError

logger = logging.getLogger("resumezen")

INTERNAL_KEY_HEADER = "X-Internal-Key"


@dataclass
class InternalCaller:
    """Represents an authenticated internal caller."""
    caller_id: str  # "internal:<hash>"


def get_internal_api_key() -> Optional[str]:
    return settings.INTERNAL_API_KEY


def verify_internal_key(request: Request) -> Optional[InternalCaller]:
    """
    Verify the X-Internal-Key header.
    Returns InternalCaller if valid, None if not present/invalid.
    """
    expected_key = get_internal_api_key()
    if not expected_key:
        return None

    header_key = request.headers.get(INTERNAL_KEY_HEADER, "").strip()
    if not header_key or not hmac.compare_digest(header_key, expected_key):
        return None

    key_hash = hashlib.sha256(header_key.encode()).hexdigest()[:16]
    return InternalCaller(caller_id=f"internal:{key_hash}")


def require_internal(request: Request) -> InternalCaller:
    """
    FastAPI dependency: require an internal caller.

    Usage:
        @router.post("/credit/use", dependencies=[Depends(require_internal)])
    """
    caller = verify_internal_key(request)
    if caller:
        return caller

    if not get_internal_api_key():
        raise AppError(
            "This endpoint is not available.",
            code="internal_auth_unconfigured",
            status_code=503,
            technical_detail="Set INTERNAL_API_KEY to enable internal credit endpoints",
        )

    logger.warning(f"[internal_auth] rejected call to {request.url.path}")
    raise PermissionError(
        "This endpoint is restricted to internal services.",
        technical_detail=f"missing or invalid {INTERNAL_KEY_HEADER} header",
    )
