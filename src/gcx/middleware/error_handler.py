"""Global error handlers — every failure leaves as the same JSON envelope."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from gcx.errors import AppError, BadRequestError, InternalError
from gcx.events.schemas import EVENT_ERROR

logger = structlog.get_logger()

GENERIC_ERROR_MESSAGE = "Internal server error"

_HTTP_ERROR_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
}


def _envelope(status_code: int, payload: dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=payload)


async def _broadcast_error(request: Request, message: str, details: dict[str, Any]) -> None:
    """Push an error event to the dashboards, if a broadcaster is running."""
    broadcaster = getattr(request.app.state, "broadcaster", None)
    if broadcaster is None:
        return
    try:
        await broadcaster.emit(EVENT_ERROR, message, details)
    except Exception:
        logger.exception("error_event_broadcast_failed", path=request.url.path)


def _validation_details(exc: RequestValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if isinstance(exc, InternalError):
            logger.error(
                "internal_error",
                path=request.url.path,
                method=request.method,
                error=exc.message,
                code=exc.error_code,
                details=exc.details,
            )
            await _broadcast_error(
                request,
                exc.message,
                {"path": request.url.path, "method": request.method, "code": exc.error_code},
            )
        return _envelope(exc.status_code, exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        details = _validation_details(exc)
        if details:
            first = details[0]
            field = ".".join(part for part in first["loc"] if part not in ("body", "query", "path", "header"))
            message = f"{field}: {first['msg']}" if field else first["msg"]
        else:
            message = "Invalid request"
        return _envelope(400, BadRequestError(message, details=details).to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        payload = {
            "success": False,
            "error": str(exc.detail),
            "code": _HTTP_ERROR_CODES.get(exc.status_code, "http_error"),
        }
        return JSONResponse(status_code=exc.status_code, content=payload, headers=exc.headers)

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error(
            "database_error",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        await _broadcast_error(request, "Database error", {"path": request.url.path, "method": request.method})
        return _envelope(500, InternalError(GENERIC_ERROR_MESSAGE).to_dict())

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions — always return JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        await _broadcast_error(request, "Unhandled exception", {"path": request.url.path, "method": request.method})
        return _envelope(500, InternalError(GENERIC_ERROR_MESSAGE).to_dict())
