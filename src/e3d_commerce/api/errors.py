"""
e3d_commerce.api.errors

Global exception handlers.

Responsibilities:
- Render `CommerceError` subclasses as `{"error": {"code", "message", "details"?}}`.
- Render request validation failures as 400 VALIDATION_ERROR with per-field details.
- Render HTTPExceptions (auth dependencies, unknown routes) in the same envelope.
- Catch-all 500 that logs the traceback and never leaks internals.
"""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from e3d_commerce.errors import CommerceError, validation_details
from e3d_commerce.observability.logging import get_logger

log = get_logger(__name__)

_HTTP_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHENTICATED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


def register_error_handlers(app: FastAPI) -> None:
    _register_commerce_error_handler(app)
    _register_http_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _register_commerce_error_handler(app: FastAPI) -> None:
    @app.exception_handler(CommerceError)
    async def commerce_error_handler(request: Request, exc: CommerceError) -> JSONResponse:
        log.info("domain_error", code=exc.code, message=exc.message, status_code=exc.http_status)
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())


def _register_http_error_handler(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": _HTTP_CODES.get(exc.status_code, "HTTP_ERROR"),
                    "message": str(exc.detail),
                }
            },
            headers=getattr(exc, "headers", None),
        )


def _register_validation_error_handler(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = validation_details(exc.errors())
        log.info("request_validation_failed", fields=[d["field"] for d in details])
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "Invalid request data",
                    "details": details,
                }
            },
        )


def _register_generic_error_handler(app: FastAPI) -> None:
    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        log.exception("unhandled_exception", error_type=type(exc).__name__)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                }
            },
        )
