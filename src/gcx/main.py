"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from gcx.admin.router import router as admin_router
from gcx.auth.router import router as auth_router
from gcx.config import Settings, get_settings
from gcx.database import close_db, init_db
from gcx.email.service import build_email_service
from gcx.events.broadcaster import EventBroadcaster
from gcx.events.router import router as events_router
from gcx.health.router import router as health_router
from gcx.messages.router import router as messages_router
from gcx.middleware import setup_middleware
from gcx.otp.backends import create_backend
from gcx.otp.provider import OtpProviderClient
from gcx.otp.router import router as otp_router
from gcx.otp.verifier import create_verifier
from gcx.redis_client import close_redis, get_redis, init_redis
from gcx.submissions.router import router as submissions_router
from gcx.users.router import router as users_router

logger = structlog.get_logger()


def init_services(app: FastAPI, settings: Settings) -> None:
    """Build the OTP collaborators and park them on app.state."""
    client = OtpProviderClient(settings.otp_provider_url, timeout=settings.otp_provider_timeout_seconds)
    email_service = build_email_service(settings, get_redis()) if settings.otp_backend.lower() == "local" else None

    app.state.otp_client = client
    app.state.otp_backend = create_backend(
        settings.otp_backend,
        client,
        email_service,
        settings.otp_ttl_minutes,
        settings.admin_email,
    )
    app.state.verifier = create_verifier(settings.otp_verifier, client)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings: Settings = app.state.settings
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    init_services(app, settings)

    broadcaster: EventBroadcaster = app.state.broadcaster
    broadcaster.start_heartbeat(settings.heartbeat_interval_seconds)
    logger.info(
        "app_started",
        otp_backend=settings.otp_backend,
        otp_verifier=settings.otp_verifier,
        admin_gate_all=settings.admin_gate_all,
    )

    yield

    await broadcaster.stop_heartbeat()
    await app.state.otp_client.aclose()
    await close_db()
    await close_redis()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="GCX Intake API",
        description="Gift-card exchange intake: seller submissions, support chat and operator review",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.broadcaster = EventBroadcaster(settings.event_buffer_size, settings.event_history_limit)

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(otp_router)
    app.include_router(users_router)
    app.include_router(submissions_router)
    app.include_router(messages_router)
    app.include_router(admin_router)
    app.include_router(events_router)

    return app


app = create_app()
