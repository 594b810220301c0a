"""
Centralized error transformation for the HTTP API.

Every error leaves the API in one envelope:

    {
        "timestamp": "...",
        "path": "/books/borrow/book_123",
        "error": "You cannot borrow your own book",
        "code": "operation_not_permitted",
        "businessErrorCode": 304,            # authentication failures only
        "businessErrorDescription": "...",
        "validationErrors": ["..."],         # request validation only
        "errors": {"field": "message"}
    }

Empty fields are dropped.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from booknet.core.errors import BookNetError, ValidationError
from booknet.core.utils import utc_now

logger = logging.getLogger(__name__)


def error_body(
    *,
    path: str,
    error: str,
    code: str,
    business_code: Any = None,
    validation_errors: list[str] | None = None,
    errors: dict[str, Any] | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "timestamp": utc_now().isoformat(),
        "path": path,
        "error": error,
        "code": code,
    }
    if business_code is not None:
        body["businessErrorCode"] = business_code.value
        body["businessErrorDescription"] = business_code.description
    if validation_errors:
        body["validationErrors"] = validation_errors
    if errors:
        body["errors"] = errors
    return body


def error_response(
    error: BookNetError,
    path: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Render a BookNetError as a JSON response."""
    body = error_body(
        path=path,
        error=error.message,
        code=error.code,
        business_code=error.business_code,
        errors=error.errors if isinstance(error, ValidationError) else None,
    )
    return JSONResponse(status_code=error.status_code, content=body, headers=headers)


# =============================================================================
# Handlers
# =============================================================================


async def handle_booknet_error(request: Request, exc: BookNetError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} → {exc.status_code} {exc.code}: {exc.message}")
    
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return error_response(exc, request.url.path, headers=headers)


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors: dict[str, str] = {}
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        errors[field or "request"] = err.get("msg", "Invalid value")
    
    logger.warning(f"{request.method} {request.url.path} → 400 validation_error: {list(errors)}")
    body = error_body(
        path=request.url.path,
        error="Validation failed",
        code=ValidationError.code,
        validation_errors=sorted(set(errors.values())),
        errors=errors,
    )
    return JSONResponse(status_code=400, content=body)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
    logger.warning(f"{request.method} {request.url.path} → {exc.status_code}: {detail}")
    body = error_body(path=request.url.path, error=detail, code=f"http_{exc.status_code}")
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} raised {type(exc).__name__}", exc_info=exc)
    body = error_body(
        path=request.url.path,
        error="Internal error, please contact the admin",
        code="internal_error",
    )
    return JSONResponse(status_code=500, content=body)


def install_exception_handlers(app: FastAPI) -> None:
    """Register one handler per error family."""
    app.add_exception_handler(BookNetError, handle_booknet_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected)
