from __future__ import annotations

import logging

import pytest

from chromedriver_supervisor.events import DriverEvents
from chromedriver_supervisor.models import SessionDescriptor


def test_listeners_called_in_subscription_order():
    events = DriverEvents()
    seen: list[str] = []
    events.subscribe(on_ready=lambda s: seen.append(f"a:{s.session_id}"))
    events.subscribe(on_ready=lambda s: seen.append(f"b:{s.session_id}"))

    events.emit_ready(SessionDescriptor({}, {"sessionId": "s1"}, "s1"))

    assert seen == ["a:s1", "b:s1"]


def test_error_only_listener_ignores_ready():
    events = DriverEvents()
    errors: list[BaseException] = []
    events.subscribe(on_error=errors.append)

    events.emit_ready(SessionDescriptor({}))
    boom = OSError("spawn failed")
    events.emit_error(boom)

    assert errors == [boom]


def test_cancelled_subscription_receives_nothing():
    events = DriverEvents()
    seen: list[SessionDescriptor] = []
    sub = events.subscribe(on_ready=seen.append)
    sub.cancel()

    events.emit_ready(SessionDescriptor({}))

    assert seen == []
    assert len(events) == 0


def test_failing_listener_does_not_block_others(caplog):
    events = DriverEvents()
    seen: list[SessionDescriptor] = []

    def broken(_session: SessionDescriptor) -> None:
        raise RuntimeError("listener bug")

    events.subscribe(on_ready=broken)
    events.subscribe(on_ready=seen.append)

    with caplog.at_level(logging.ERROR):
        events.emit_ready(SessionDescriptor({}))

    assert len(seen) == 1
    assert "ready listener failed" in caplog.text


def test_subscribe_requires_a_callback():
    with pytest.raises(ValueError):
        DriverEvents().subscribe()
