"""Global API exception handlers producing the error envelope."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any, cast

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from jam3a.domain.errors import DomainError

logger = logging.getLogger(__name__)

HTTP_STATUS_CODES: dict[int, str] = {
    HTTPStatus.BAD_REQUEST: "VALIDATION_ERROR",
    HTTPStatus.UNAUTHORIZED: "UNAUTHORIZED",
    HTTPStatus.FORBIDDEN: "FORBIDDEN",
    HTTPStatus.NOT_FOUND: "NOT_FOUND",
    HTTPStatus.CONFLICT: "CONFLICT",
}


def _error_payload(code: str, message: str, details: dict[str, Any]) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "success": False,
        "code": code,
        "message": message,
    }
    if details:
        payload["details"] = details
    return payload


async def handle_domain_error(_: Request, exc: DomainError) -> JSONResponse:
    """Serialize domain error with its stable code."""

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_payload(exc.code, exc.message, exc.details),
    )


async def handle_validation_error(
    _: Request, exc: RequestValidationError
) -> JSONResponse:
    """Map request validation failures to HTTP 400."""

    return JSONResponse(
        status_code=HTTPStatus.BAD_REQUEST,
        content=_error_payload(
            code="VALIDATION_ERROR",
            message="Request data failed validation.",
            details={"errors": jsonable_encoder(exc.errors())},
        ),
    )


async def handle_http_exception(
    _: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Wrap framework HTTP errors such as unknown routes in the envelope."""

    status_code = exc.status_code
    if status_code in HTTP_STATUS_CODES:
        code = HTTP_STATUS_CODES[status_code]
    elif status_code >= HTTPStatus.INTERNAL_SERVER_ERROR:
        code = "SERVER_ERROR"
    else:
        code = HTTPStatus(status_code).name
    return JSONResponse(
        status_code=status_code,
        content=_error_payload(code, str(exc.detail), details={}),
        headers=exc.headers,
    )


async def handle_integrity_error(_: Request, exc: IntegrityError) -> JSONResponse:
    """Translate unique and check constraint violations to a conflict."""

    logger.warning("integrity_error", extra={"error": str(exc.orig)})
    return JSONResponse(
        status_code=HTTPStatus.CONFLICT,
        content=_error_payload(
            code="CONFLICT",
            message="Request conflicts with existing data.",
            details={},
        ),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """Serialize unexpected failures with a generic message."""

    logger.exception(
        "unhandled_error",
        extra={"path": request.url.path, "error_type": type(exc).__name__},
    )
    return JSONResponse(
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        content=_error_payload(
            code="SERVER_ERROR",
            message="An unexpected internal error occurred.",
            details={"error_type": type(exc).__name__},
        ),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Attach all global handlers to the FastAPI application."""

    app.add_exception_handler(DomainError, cast(Any, handle_domain_error))
    app.add_exception_handler(
        RequestValidationError, cast(Any, handle_validation_error)
    )
    app.add_exception_handler(
        StarletteHTTPException, cast(Any, handle_http_exception)
    )
    app.add_exception_handler(IntegrityError, cast(Any, handle_integrity_error))
    app.add_exception_handler(Exception, handle_unexpected_error)
