"""Log event record mirrored to operator dashboards."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

EVENT_REQUEST = "request"
EVENT_RESPONSE = "response"
EVENT_INFO = "info"
EVENT_ERROR = "error"

EVENT_TYPES = frozenset({EVENT_REQUEST, EVENT_RESPONSE, EVENT_INFO, EVENT_ERROR})


@dataclass(frozen=True)
class LogEvent:
    """One entry of the live activity feed. Never persisted."""

    type: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    source: str = "server"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if self.type not in EVENT_TYPES:
            msg = f"Unknown event type: {self.type}"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "message": self.message,
            "details": self.details,
            "source": self.source,
            "timestamp": self.timestamp.isoformat(),
        }
