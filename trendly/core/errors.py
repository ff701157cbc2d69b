"""Error normalization and handlers."""

import logging
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from trendly.core.logging import get_request_id


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        request_id: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id
        self.extra = extra or {}


class AuthenticationRequired(AppError):
    code = "unauthorized"
    status_code = 401


class AuthorizationError(AppError):
    """Shared-secret mismatch on machine-to-machine endpoints."""
    code = "forbidden_token"
    status_code = 401


class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class NotFoundError(AppError, ValueError):
    code = "not_found"
    status_code = 404


class AlreadySubscribedError(AppError):
    code = "already_premium"
    status_code = 400


class QuotaExceededError(AppError):
    code = "quota_exceeded"
    status_code = 403

    def __init__(self, message: str = "Generation limit reached", **kwargs):
        kwargs.setdefault(
            "extra",
            {
                "message": "You have reached your daily generation limit. Upgrade to Premium for unlimited generations.",
                "remainingGenerations": 0,
            },
        )
        super().__init__(message, **kwargs)


class UpstreamGenerationError(AppError):
    code = "generation_failed"
    status_code = 500


class PersistenceError(AppError):
    code = "persistence_error"
    status_code = 500


class SignatureVerificationError(AppError):
    code = "invalid_signature"
    status_code = 400


class BillingUnavailableError(AppError):
    code = "billing_disabled"
    status_code = 503


class BillingProviderFailure(AppError):
    code = "billing_error"
    status_code = 500


def _extract_request_id(request: Request, fallback: Optional[str] = None) -> str:
    return (
        getattr(request.state, "request_id", None)
        or get_request_id()
        or fallback
        or str(uuid4())
    )


def _error_payload(code: str, message: str, request_id: str, extra: Optional[Dict[str, Any]] = None) -> dict:
    payload = {"error": message, "code": code, "request_id": request_id}
    if extra:
        payload.update(extra)
    return payload


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _extract_request_id(request)
    payload = _error_payload(exc.code, exc.message, rid, exc.extra)
    logger = logging.getLogger("trendly")
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        log_level,
        f"app.error {exc.code}: {exc.message}",
        extra={"request_id": rid, "error_code": exc.code, "status": exc.status_code},
    )
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _extract_request_id(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    message = exc.detail if exc.detail else "HTTP error"
    payload = _error_payload(code, message, rid)
    logger = logging.getLogger("trendly")
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]
    message = f"Invalid request body: {', '.join(fields)}" if fields else "Invalid request body"
    return await app_error_handler(request, ValidationError(message))


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _extract_request_id(request)
    logger = logging.getLogger("trendly")
    logger.error("unhandled.exception", exc_info=True, extra={"request_id": rid, "error_code": "internal_error"})
    payload = _error_payload("internal_error", "Internal server error", rid)
    response = JSONResponse(status_code=500, content=payload)
    response.headers["x-request-id"] = rid
    return response
