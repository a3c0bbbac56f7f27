"""Error taxonomy and normalized error handlers."""

import builtins
import logging
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from resumezen.core.logging import get_request_id


class AppError(Exception):
    """Base error surfaced to API callers.

    Every error carries a user-facing message and an optional
    technical_detail string for "show details" in the client.
    """
    code = "app_error"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        technical_detail: Optional[str] = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.technical_detail = technical_detail
        self.request_id = request_id

    def extra_payload(self) -> Dict[str, Any]:
        return {}


class ValidationError(AppError, ValueError):
    """Bad input (file type/size, malformed request). User-correctable."""
    code = "validation_error"
    status_code = 400


class NotFoundError(AppError, ValueError):
    code = "not_found"
    status_code = 404


class UnauthorizedError(AppError):
    code = "unauthorized"
    status_code = 401


class PermissionError(AppError, builtins.PermissionError):
    code = "forbidden"
    status_code = 403


class ConflictError(AppError):
    code = "conflict"
    status_code = 409


class EligibilityError(AppError):
    """No usable plan or no credits left. Resolved by purchasing a plan."""
    code = "not_eligible"
    status_code = 402


class CreditRaceError(EligibilityError):
    """A concurrent decrement consumed the last credit first.

    Surfaced to callers as an eligibility error; safe to retry once.
    """


class ProviderError(AppError):
    """An external provider (storage, OCR, AI) failed or timed out."""
    code = "provider_error"
    status_code = 502

    def __init__(self, message: str, *, provider: str, **kwargs):
        super().__init__(message, **kwargs)
        self.provider = provider

    def extra_payload(self) -> Dict[str, Any]:
        return {"provider": self.provider}


class NonResumeError(AppError):
    """The processed document does not look like a resume. Credit is refunded."""
    code = "not_a_resume"
    status_code = 422

    def __init__(self, message: str, *, validation_details: Dict[str, Any], **kwargs):
        super().__init__(message, **kwargs)
        self.validation_details = validation_details

    def extra_payload(self) -> Dict[str, Any]:
        return {"validationDetails": self.validation_details}


class RateLimitError(AppError):
    code = "rate_limited"
    status_code = 429


def _extract_request_id(request: Request, fallback: Optional[str] = None) -> str:
    return (
        getattr(request.state, "request_id", None)
        or get_request_id()
        or fallback
        or str(uuid4())
    )


def _error_payload(code: str, message: str, request_id: str, technical_detail: Optional[str] = None) -> dict:
    error = {"code": code, "message": message, "request_id": request_id}
    if technical_detail:
        error["technical_detail"] = technical_detail
    return {
        "error": error,
        "detail": message,
    }


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _extract_request_id(request)
    payload = _error_payload(exc.code, exc.message, rid, exc.technical_detail)
    payload.update(exc.extra_payload())
    logger = logging.getLogger("resumezen")
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        log_level,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "error_message": exc.message, "status": exc.status_code},
    )
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _extract_request_id(request)
    if exc.status_code == 404:
        code = "not_found"
    elif exc.status_code == 401:
        code = "unauthorized"
    else:
        code = "http_error"
    message = exc.detail if exc.detail else "HTTP error"
    payload = _error_payload(code, message, rid)
    logger = logging.getLogger("resumezen")
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    response = JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))
    response.headers["x-request-id"] = rid
    return response


async def request_validation_handler(request: Request, exc: RequestValidationError):
    rid = _extract_request_id(request)
    payload = _error_payload("validation_error", "Invalid request", rid, technical_detail=str(exc.errors()))
    logging.getLogger("resumezen").warning(
        "request.invalid", extra={"request_id": rid, "error_code": "validation_error", "status": 422}
    )
    response = JSONResponse(status_code=422, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _extract_request_id(request)
    logger = logging.getLogger("resumezen")
    logger.error("unhandled.exception", exc_info=True, extra={"request_id": rid, "error_code": "internal_error"})
    payload = _error_payload("internal_error", "Unexpected error", rid)
    response = JSONResponse(status_code=500, content=payload)
    response.headers["x-request-id"] = rid
    return response
