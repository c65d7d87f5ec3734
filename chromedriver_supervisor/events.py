"""Typed ready/error channel for driver lifecycle observers."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass

from .models import SessionDescriptor

log = logging.getLogger(__name__)

EVENT_READY = "ready"
EVENT_ERROR = "error"

ReadyCallback = Callable[[SessionDescriptor], None]
ErrorCallback = Callable[[BaseException], None]


@dataclass
class _Listener:
    id: int
    on_ready: ReadyCallback | None
    on_error: ErrorCallback | None


class Subscription:
    def __init__(self, channel: DriverEvents, listener_id: int) -> None:
        self._channel = channel
        self._id = listener_id

    def cancel(self) -> None:
        self._channel._remove(self._id)


class DriverEvents:
    """Multi-subscriber channel with two event kinds: ready and error.

    Listeners are called synchronously, in subscription order. Late
    subscribers do not see earlier events.
    """

    def __init__(self) -> None:
        self._listeners: list[_Listener] = []
        self._ids = itertools.count(1)

    def subscribe(
        self,
        on_ready: ReadyCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        if on_ready is None and on_error is None:
            raise ValueError("subscribe() needs at least one callback")
        listener = _Listener(next(self._ids), on_ready, on_error)
        self._listeners.append(listener)
        return Subscription(self, listener.id)

    def _remove(self, listener_id: int) -> None:
        self._listeners = [l for l in self._listeners if l.id != listener_id]

    def __len__(self) -> int:
        return len(self._listeners)

    def emit_ready(self, session: SessionDescriptor) -> None:
        for listener in list(self._listeners):
            if listener.on_ready is None:
                continue
            try:
                listener.on_ready(session)
            except Exception:
                log.exception("%s listener failed", EVENT_READY)

    def emit_error(self, error: BaseException) -> None:
        for listener in list(self._listeners):
            if listener.on_error is None:
                continue
            try:
                listener.on_error(error)
            except Exception:
                log.exception("%s listener failed", EVENT_ERROR)
