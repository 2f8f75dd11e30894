"""Middleware registration."""

from fastapi import FastAPI

from gcx.config import Settings
from gcx.middleware.activity import ActivityMiddleware
from gcx.middleware.cors import setup_cors
from gcx.middleware.error_handler import setup_error_handlers
from gcx.middleware.logging import setup_logging
from gcx.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware in the correct order.

    Starlette executes middleware in reverse-add order (last added = outermost).
    RequestIdMiddleware wraps ActivityMiddleware so request/response events carry
    the request id. CORS is outermost so it also wraps error responses.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(ActivityMiddleware)
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
