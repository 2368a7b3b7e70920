"""Domain errors and their normalized HTTP rendering."""

import logging
from typing import Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from starlette.requests import Request

from normalz.core.logging import get_request_id


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id


class ValidationError(AppError, ValueError):
    """Malformed request (InvalidRequest)."""
    code = "validation_error"
    status_code = 400


class InvalidOptionsError(ValidationError):
    """Fewer than two options, duplicate labels, or blank labels."""
    code = "invalid_options"


class UnknownOptionError(ValidationError):
    code = "unknown_option"

    def __init__(self, question_id: str, option: str):
        super().__init__(f"Option {option!r} is not part of question {question_id}")
        self.question_id = question_id
        self.option = option


class NotFoundError(AppError, LookupError):
    code = "not_found"
    status_code = 404


class QuestionRetiredError(AppError):
    code = "question_retired"
    status_code = 409


class PoolEmptyError(AppError):
    code = "pool_empty"
    status_code = 503

    def __init__(self, message: str = "No active questions available"):
        super().__init__(message)


class TallyIntegrityError(AppError):
    """A tally whose total differs from the sum of its counts. Never auto-corrected."""
    code = "tally_integrity"
    status_code = 500

    def __init__(self, question_id: str, total: int, counted: int):
        super().__init__(
            f"Tally for question {question_id} is inconsistent: total={total} sum={counted}"
        )
        self.question_id = question_id
        self.total = total
        self.counted = counted


def _extract_request_id(request: Request, fallback: Optional[str] = None) -> str:
    return (
        getattr(request.state, "request_id", None)
        or get_request_id()
        or fallback
        or str(uuid4())
    )


def _error_payload(code: str, message: str, request_id: str) -> dict:
    return {
        "error": {"code": code, "message": message, "request_id": request_id},
        "detail": message,
    }


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _extract_request_id(request)
    payload = _error_payload(exc.code, exc.message, rid)
    logger = logging.getLogger("normalz")
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
    code = "not_found" if exc.status_code == 404 else "http_error"
    message = exc.detail if exc.detail else "HTTP error"
    payload = _error_payload(code, message, rid)
    logger = logging.getLogger("normalz")
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _extract_request_id(request)
    logger = logging.getLogger("normalz")
    logger.error("unhandled.exception", exc_info=True, extra={"request_id": rid, "error_code": "internal_error"})
    payload = _error_payload("internal_error", "Unexpected error", rid)
    response = JSONResponse(status_code=500, content=payload)
    response.headers["x-request-id"] = rid
    return response
