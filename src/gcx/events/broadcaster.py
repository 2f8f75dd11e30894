"""Live activity broadcaster.

Keeps the most recent log events in a bounded ring buffer (newest first) and
fans every new event out to the connected dashboard WebSockets. One instance
is created per application and handed to whoever emits events.
"""

from __future__ import annotations

import asyncio
import json
import resource
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any

import structlog
from fastapi import WebSocket

from gcx.events.schemas import EVENT_INFO, LogEvent

logger = structlog.get_logger()

DEFAULT_BUFFER_SIZE = 1000
DEFAULT_HISTORY_LIMIT = 100


@dataclass
class Subscriber:
    """A connected dashboard."""

    websocket: WebSocket
    connected_at: float = field(default_factory=time.time)
    messages_sent: int = 0


class EventBroadcaster:
    """Ring buffer plus subscriber fan-out.

    Only touched from the event loop, so no locking is needed.
    """

    def __init__(
        self,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        self._buffer: deque[LogEvent] = deque(maxlen=buffer_size)
        self._subscribers: dict[str, Subscriber] = {}
        self.history_limit = history_limit
        self._started_at = time.time()
        self._heartbeat_task: asyncio.Task[None] | None = None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def buffered_count(self) -> int:
        return len(self._buffer)

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    async def connect(self, websocket: WebSocket, conn_id: str) -> None:
        """Accept a dashboard connection and greet it."""
        await websocket.accept()
        self._subscribers[conn_id] = Subscriber(websocket=websocket)
        await websocket.send_json({
            "type": "connected",
            "message": "Connected to live activity feed",
            "conn_id": conn_id,
            "buffered": len(self._buffer),
        })
        logger.info("events_subscriber_connected", conn_id=conn_id, subscribers=self.subscriber_count)

    async def disconnect(self, conn_id: str) -> None:
        """Forget a subscriber. Unknown ids are ignored."""
        if self._subscribers.pop(conn_id, None) is not None:
            logger.info("events_subscriber_disconnected", conn_id=conn_id, subscribers=self.subscriber_count)

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def record(self, event: LogEvent) -> None:
        """Prepend to the buffer; the oldest entry falls off past capacity."""
        self._buffer.appendleft(event)

    async def publish(self, event: LogEvent) -> int:
        """Record an event and push it to every subscriber.

        Returns the number of subscribers that received it. Subscribers whose
        socket fails are dropped.
        """
        self.record(event)
        if not self._subscribers:
            return 0

        payload = json.dumps({"type": "log", "event": event.to_dict()}, default=str)
        sent = 0
        failed: list[str] = []

        for conn_id, sub in list(self._subscribers.items()):
            try:
                await sub.websocket.send_text(payload)
                sub.messages_sent += 1
                sent += 1
            except Exception:
                failed.append(conn_id)

        for conn_id in failed:
            await self.disconnect(conn_id)

        return sent

    async def emit(
        self,
        event_type: str,
        message: str,
        details: dict[str, Any] | None = None,
        source: str = "server",
    ) -> LogEvent:
        """Build and publish an event in one call."""
        event = LogEvent(type=event_type, message=message, details=details or {}, source=source)
        await self.publish(event)
        return event

    def history(self, limit: int | None = None) -> list[dict[str, Any]]:
        """Newest-first snapshot, capped at history_limit."""
        cap = self.history_limit if limit is None else max(0, min(limit, self.history_limit))
        return [event.to_dict() for event in list(self._buffer)[:cap]]

    # ------------------------------------------------------------------
    # Heartbeat
    # ------------------------------------------------------------------

    def system_status(self) -> dict[str, Any]:
        usage = resource.getrusage(resource.RUSAGE_SELF)
        return {
            "max_rss_kb": usage.ru_maxrss,
            "uptime_seconds": round(time.time() - self._started_at, 1),
            "connections": self.subscriber_count,
            "buffered_events": self.buffered_count,
        }

    async def _heartbeat_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.emit(EVENT_INFO, "System status", self.system_status(), source="system")
            except Exception:
                logger.exception("events_heartbeat_failed")

    def start_heartbeat(self, interval: float) -> None:
        """Start the periodic system-status event. Runs with or without subscribers."""
        if self._heartbeat_task is None or self._heartbeat_task.done():
            self._heartbeat_task = asyncio.create_task(self._heartbeat_loop(interval))
            logger.info("events_heartbeat_started", interval_seconds=interval)

    async def stop_heartbeat(self) -> None:
        task, self._heartbeat_task = self._heartbeat_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
