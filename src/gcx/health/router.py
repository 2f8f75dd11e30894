"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from gcx.config import Settings
from gcx.database import get_session
from gcx.dependencies import get_app_settings, get_broadcaster, get_otp_backend
from gcx.events.broadcaster import EventBroadcaster
from gcx.otp.backends import OtpBackend
from gcx.redis_client import get_redis

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe — returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
    backend: OtpBackend = Depends(get_otp_backend),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe — checks the database, the OTP backend and Redis when configured."""
    checks: dict[str, object] = {}

    # Database check
    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {exc}"

    # OTP backend check
    try:
        await backend.health()
        checks["otp_backend"] = "ok"
    except Exception as exc:
        checks["otp_backend"] = f"error: {exc}"

    # Redis is optional
    redis = get_redis()
    if redis is not None:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception as exc:
            checks["redis"] = f"error: {exc}"

    all_ok = all(v == "ok" for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version(
    settings: Settings = Depends(get_app_settings),  # noqa: B008
    broadcaster: EventBroadcaster = Depends(get_broadcaster),  # noqa: B008
) -> dict[str, object]:
    """Return API version, environment and live process status."""
    return {
        "version": settings.app_version,
        "environment": settings.environment,
        "otp_backend": settings.otp_backend,
        "otp_verifier": settings.otp_verifier,
        "system": broadcaster.system_status(),
    }
