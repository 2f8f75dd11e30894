"""Activity middleware — mirrors HTTP traffic onto the live event stream."""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from gcx.events.broadcaster import EventBroadcaster
from gcx.events.schemas import EVENT_REQUEST, EVENT_RESPONSE

logger = structlog.get_logger()

# Paths that would only echo dashboard or probe traffic back to the dashboard.
SKIP_PREFIXES = ("/ws", "/health", "/ready")


class ActivityMiddleware(BaseHTTPMiddleware):
    """Publish one request event and one response event per HTTP call."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        broadcaster = getattr(request.app.state, "broadcaster", None)
        path = request.url.path
        if broadcaster is None or path.startswith(SKIP_PREFIXES):
            return await call_next(request)

        request_id = getattr(request.state, "request_id", None)
        await broadcaster.emit(
            EVENT_REQUEST,
            f"{request.method} {path}",
            {"method": request.method, "path": path, "request_id": request_id},
        )

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            # Unhandled errors are rendered by the outermost ServerErrorMiddleware as a 500.
            await self._emit_response(broadcaster, request, 500, start, request_id)
            raise

        await self._emit_response(broadcaster, request, response.status_code, start, request_id)
        return response

    @staticmethod
    async def _emit_response(
        broadcaster: EventBroadcaster,
        request: Request,
        status: int,
        start: float,
        request_id: str | None,
    ) -> None:
        path = request.url.path
        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        await broadcaster.emit(
            EVENT_RESPONSE,
            f"{request.method} {path} {status}",
            {
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": duration_ms,
                "request_id": request_id,
            },
        )
        logger.info("http_request", method=request.method, path=path, status=status, duration_ms=duration_ms)
