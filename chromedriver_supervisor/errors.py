"""Exception hierarchy for the chromedriver supervisor."""

from __future__ import annotations

from typing import Any


class ChromeDriverError(Exception):
    """Base class for every error raised by this package."""


class BinaryMissingError(ChromeDriverError):
    pass


class ReapError(ChromeDriverError):
    """Cleaning up stale driver processes failed."""


class UnsupportedPlatformError(ReapError):
    def __init__(self, platform: str) -> None:
        super().__init__(f"{platform} not supported!")
        self.platform = platform


class SpawnError(ChromeDriverError):
    """The driver failed to launch, crashed, or never reached its startup marker."""


class UnexpectedOutputError(SpawnError):
    def __init__(self, output: str) -> None:
        super().__init__(f"chromedriver start failed, unexpected output: {output!r}")
        self.output = output


class ReadinessTimeoutError(ChromeDriverError):
    def __init__(self, phase: str, attempts: int, last_error: BaseException | None = None) -> None:
        super().__init__(
            f"{phase} did not succeed after {attempts} attempts"
            + (f": {last_error}" if last_error is not None else "")
        )
        self.phase = phase
        self.attempts = attempts
        self.last_error = last_error


class DriverBusyError(ChromeDriverError):
    """A start is already in flight, or the process slot is occupied."""


class ProxyError(ChromeDriverError):
    def __init__(self, message: str, status_code: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
