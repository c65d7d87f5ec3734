"""Readiness probing: driver up (status), then driver serving sessions."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from .errors import ProxyError, ReadinessTimeoutError
from .models import SessionDescriptor, extract_session_id
from .retry import RetryExhausted, retry

log = logging.getLogger(__name__)

STATUS_PHASE = "status"
SESSION_PHASE = "session"

Probe = Callable[[], Awaitable[Any]]


class ReadinessProber:
    """Runs the two probe phases against caller-supplied request functions.

    ``get_status`` and ``create_session`` each perform one request and raise
    on failure; the prober only decides when to retry and when to give up.
    """

    def __init__(
        self,
        get_status: Probe,
        create_session: Probe,
        capabilities: dict[str, Any] | None = None,
        *,
        interval: float = 1.0,
        attempts: int = 20,
        on_phase: Callable[[str], None] | None = None,
    ) -> None:
        self._get_status = get_status
        self._create_session = create_session
        self.capabilities = capabilities or {}
        self.interval = interval
        self.attempts = attempts
        self.on_phase = on_phase

    def _enter(self, phase: str) -> None:
        if self.on_phase is not None:
            self.on_phase(phase)

    async def _session_attempt(self) -> Any:
        response = await self._create_session()
        if extract_session_id(response) is None:
            raise ProxyError("session response carried no sessionId", body=response)
        return response

    async def await_ready(self) -> SessionDescriptor:
        """Poll /status, then POST /session; each phase retries on its own.

        Raises ReadinessTimeoutError naming the phase whose budget ran out.
        A failed status phase never reaches the session phase.
        """
        self._enter(STATUS_PHASE)
        try:
            await retry(self._get_status, self.interval, self.attempts)
        except RetryExhausted as exc:
            log.error("get chromedriver ready status failed")
            raise ReadinessTimeoutError(STATUS_PHASE, exc.attempts, exc.last_error) from exc

        log.info("chromedriver status ok, creating session")
        self._enter(SESSION_PHASE)
        try:
            response = await retry(self._session_attempt, self.interval, self.attempts)
        except RetryExhausted as exc:
            log.error("create chromedriver session failed")
            raise ReadinessTimeoutError(SESSION_PHASE, exc.attempts, exc.last_error) from exc

        return SessionDescriptor.from_response(self.capabilities, response)
