"""
Auth utilities for the ResumeZen API.

Validates the session JWT issued at login (HS256, AUTH_JWT_SECRET) and
extracts the user id. Outside production an X-User-Id header is accepted
instead, which the tests and local tooling rely on.
"""
import logging
from typing import Optional

import jwt
from fastapi import Header, Request

from resumezen.core.config import settings
from resumezen.core.errors import UnauthorizedError
from resumezen.features.users.service import get_or_create_user

logger = logging.getLogger("resumezen")


def verify_session_jwt(token: str, secret: Optional[str] = None, algorithm: Optional[str] = None) -> str:
    """
    Verify a session JWT and return its subject.

    The subject is read from 'sub', or from 'userId' for tokens minted by
    the older login flow.

    Raises:
        UnauthorizedError: missing secret, bad signature, expired or no subject
    """
    secret = secret or settings.AUTH_JWT_SECRET
    if not secret:
        raise UnauthorizedError("Authentication is not configured", technical_detail="AUTH_JWT_SECRET is not set")

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm or settings.AUTH_JWT_ALGORITHM],
            options={"verify_exp": True},
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Your session has expired. Please sign in again.", technical_detail="token expired")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Invalid token: {e}")
        raise UnauthorizedError("Invalid authentication token", technical_detail=str(e))

    user_id = payload.get("sub") or payload.get("userId")
    if not user_id:
        raise UnauthorizedError("Invalid authentication token", technical_detail="no 'sub' or 'userId' claim")
    return str(user_id)


def header_auth_allowed() -> bool:
    return settings.ALLOW_HEADER_AUTH and settings.ENV.lower() != "production"


async def get_current_user_id(
    request: Request,
    x_user_id: Optional[str] = Header(None, description="Development/test user id"),
) -> str:
    """
    Resolve the caller's user id.

    Priority:
    1. Bearer JWT from the Authorization header
    2. X-User-Id header (non-production only)
    3. 401

    The user row is upserted on first sight.
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        user_id = verify_session_jwt(auth_header[7:].strip())
    elif x_user_id and header_auth_allowed():
        user_id = x_user_id.strip()
    else:
        raise UnauthorizedError("Please sign in to continue", technical_detail="missing Authorization header")

    if not user_id:
        raise UnauthorizedError("Please sign in to continue", technical_detail="empty user id")

    get_or_create_user(user_id)
    request.state.user_id = user_id
    return user_id
