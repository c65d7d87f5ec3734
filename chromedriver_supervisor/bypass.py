"""Low-level start/stop of a bare chromedriver process.

This bypasses the lifecycle in :class:`~chromedriver_supervisor.driver.ChromeDriver`
entirely: no reaping, no startup-banner check, no readiness probing, no
events. It holds at most one process in a module-wide slot; ``start()``
refuses to overwrite a live one and ``stop()`` empties the slot.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Sequence
from pathlib import Path

from .errors import DriverBusyError
from .platforms import default_binary_path

log = logging.getLogger(__name__)

_process: subprocess.Popen[bytes] | None = None


def current() -> subprocess.Popen[bytes] | None:
    return _process


def start(
    binary_path: str | os.PathLike[str] | None = None,
    args: Sequence[str] = (),
) -> subprocess.Popen[bytes]:
    global _process

    if _process is not None and _process.poll() is None:
        raise DriverBusyError(f"chromedriver already running (pid={_process.pid})")

    path = Path(binary_path) if binary_path is not None else default_binary_path()
    _process = subprocess.Popen(
        [str(path), *args],
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )
    log.info("chromedriver started (pid=%d)", _process.pid)
    return _process


def stop(timeout: float = 10.0) -> None:
    global _process

    process, _process = _process, None
    if process is None:
        return
    if process.poll() is None:
        process.terminate()
        try:
            process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()
    log.info("chromedriver killed")
