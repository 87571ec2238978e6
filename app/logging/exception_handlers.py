# app/logging/exception_handlers.py

from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import ResponseValidationError, RequestValidationError
from app.core.exceptions import BackendUnavailableError, InvalidSearchConditionError
from app.logging.records import build_log, save_log
from typing import Any, Optional
import json
import logging
import traceback

logger = logging.getLogger(__name__)


def safe_json_dumps(obj):
    def default(o):
        return str(o)
    return json.dumps(obj, indent=2, default=default)


def get_request_body_safely(request: Request) -> str:
    """Body stored on request.state by the logging middleware, if any."""
    return getattr(request.state, "body", None) or "Request body not available"


def log_error_response(request: Request, status_code: int, body: Any) -> None:
    """Persist one log row describing an error response."""
    save_log(build_log(request, status_code, get_request_body_safely(request), safe_json_dumps(body)))


def _safe_errors(errors):
    """Convert validation errors to JSON-safe values."""
    if isinstance(errors, dict):
        return {k: _safe_errors(v) for k, v in errors.items()}
    elif isinstance(errors, list):
        return [_safe_errors(item) for item in errors]
    elif errors is None or isinstance(errors, (str, int, float, bool)):
        return errors
    return str(errors)


async def general_exception_handler(request: Request, exc: Exception):
    """Unhandled exceptions: log the traceback, answer with a bare 500"""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    log_error_response(request, 500, {
        "error": str(exc),
        "type": type(exc).__name__,
        "traceback": traceback.format_exc(),
    })
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


async def response_validation_exception_handler(request: Request, exc: ResponseValidationError):
    logger.error(f"Response validation failed on {request.url.path}")
    log_error_response(request, 500, _safe_errors(exc.errors()))
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error: Response validation failed."},
    )


async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed search requests: unknown sort keys, negative offsets and the like"""
    safe_errors = _safe_errors(exc.errors())
    log_error_response(request, 422, safe_errors)
    return JSONResponse(status_code=422, content={"detail": safe_errors})


async def invalid_search_condition_handler(request: Request, exc: InvalidSearchConditionError):
    """Search conditions that pass schema validation but cannot be compiled"""
    logger.info(f"Rejected search on {request.url.path}: {exc}")
    log_error_response(request, 422, {"detail": str(exc)})
    return JSONResponse(status_code=422, content={"detail": str(exc)})


async def backend_unavailable_handler(request: Request, exc: BackendUnavailableError):
    """Store failures are reported without internals"""
    log_error_response(request, 503, {"error": str(exc), "cause": repr(exc.__cause__)})
    return JSONResponse(status_code=503, content={"detail": "J-REIT data is temporarily unavailable"})


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions and log 4xx/5xx errors"""
    headers: Optional[dict] = getattr(exc, "headers", None)
    if exc.status_code >= 400:
        log_error_response(request, exc.status_code, {"detail": exc.detail, "headers": headers})

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=headers,
    )
