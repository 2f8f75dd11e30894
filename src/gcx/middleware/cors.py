"""CORS middleware configuration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gcx.config import Settings


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Allow the seller portal and operator dashboard origins.

    The OTP headers are custom, so they have to be allowed explicitly for
    browser preflights to pass.
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-User-Email", "X-OTP", "X-Admin-OTP", "X-Request-Id"],
        expose_headers=["X-Request-Id"],
    )
