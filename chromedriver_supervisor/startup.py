"""Detect the driver's startup banner on an accumulating stdout buffer."""

from __future__ import annotations

import enum

STARTUP_MARKER = "Starting"


class MarkerResult(enum.Enum):
    PENDING = "pending"
    MATCHED = "matched"
    MISMATCHED = "mismatched"


class StartupMarker:
    """Two-exit state machine over accumulated output.

    MATCHED once the buffer starts with the marker, MISMATCHED once the
    buffer is at least as long as the marker without starting with it.
    The first decision is final; later chunks are ignored.
    """

    def __init__(self, marker: str = STARTUP_MARKER) -> None:
        if not marker:
            raise ValueError("marker must not be empty")
        self.marker = marker
        self.buffer = ""
        self.result = MarkerResult.PENDING

    @property
    def decided(self) -> bool:
        return self.result is not MarkerResult.PENDING

    def feed(self, chunk: str) -> MarkerResult:
        if self.decided:
            return self.result
        self.buffer += chunk
        if self.buffer.startswith(self.marker):
            self.result = MarkerResult.MATCHED
        elif len(self.buffer) >= len(self.marker):
            self.result = MarkerResult.MISMATCHED
        return self.result
