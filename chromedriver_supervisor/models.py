from __future__ import annotations

import enum
from collections import deque
from dataclasses import dataclass
from typing import Any


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

class DriverState(str, enum.Enum):
    IDLE = "idle"
    REAPING = "reaping"
    SPAWNING = "spawning"
    AWAITING_STARTUP_MARKER = "awaiting_startup_marker"
    POLLING_STATUS = "polling_status"
    NEGOTIATING_SESSION = "negotiating_session"
    READY = "ready"
    FAILED = "failed"
    STOPPED = "stopped"

    @property
    def in_flight(self) -> bool:
        """True while a start() call is still working through its phases."""
        return self in _IN_FLIGHT


_IN_FLIGHT = frozenset({
    DriverState.REAPING,
    DriverState.SPAWNING,
    DriverState.AWAITING_STARTUP_MARKER,
    DriverState.POLLING_STATUS,
    DriverState.NEGOTIATING_SESSION,
})


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

@dataclass
class SessionDescriptor:
    capabilities: dict[str, Any]
    response: Any = None
    session_id: str | None = None

    @classmethod
    def from_response(cls, capabilities: dict[str, Any], response: Any) -> SessionDescriptor:
        return cls(
            capabilities=capabilities,
            response=response,
            session_id=extract_session_id(response),
        )


def extract_session_id(response: Any) -> str | None:
    """Find the session id in a JSON wire (top level) or W3C (under value) response."""
    if not isinstance(response, dict):
        return None
    session_id = response.get("sessionId")
    if session_id is None and isinstance(response.get("value"), dict):
        session_id = response["value"].get("sessionId")
    return str(session_id) if session_id is not None else None


# ---------------------------------------------------------------------------
# Output retention
# ---------------------------------------------------------------------------

class OutputBuffer:
    """Driver output capped at ``limit`` characters; the oldest chunks go first.

    ``seq`` counts appends so callers can tell whether anything new arrived.
    The newest chunk is always kept whole, even when it alone exceeds the cap.
    """

    def __init__(self, limit: int = 100_000) -> None:
        self.limit = limit
        self.seq = 0
        self._chunks: deque[str] = deque()
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def append(self, text: str) -> None:
        self._chunks.append(text)
        self._size += len(text)
        self.seq += 1
        while self._size > self.limit and len(self._chunks) > 1:
            self._size -= len(self._chunks.popleft())

    def tail(self, num_chars: int = 2000) -> str:
        if num_chars <= 0:
            return ""
        return "".join(self._chunks)[-num_chars:]

    def clear(self) -> None:
        self._chunks.clear()
        self._size = 0
