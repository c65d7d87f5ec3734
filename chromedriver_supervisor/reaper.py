"""Best-effort cleanup of driver processes left behind by earlier runs."""

from __future__ import annotations

import asyncio
import logging
import os

import psutil

from .errors import ReapError, UnsupportedPlatformError
from .platforms import Platform, detect_platform, driver_file_name

log = logging.getLogger(__name__)

PORT_FLAG = "--port="


def _process_name(proc: psutil.Process) -> str:
    name = proc.info.get("name") or ""
    if name:
        return name
    cmdline = proc.info.get("cmdline") or []
    return os.path.basename(cmdline[0]) if cmdline else ""


def _matches_driver(proc: psutil.Process, file_name: str) -> bool:
    """Driver-named processes that were started with a port argument."""
    cmdline = proc.info.get("cmdline") or []
    names = {_process_name(proc)}
    if cmdline:
        names.add(os.path.basename(cmdline[0]))
    if file_name not in names:
        return False
    return any((arg or "").startswith(PORT_FLAG) for arg in cmdline)


def _reap_unix(file_name: str) -> int:
    own_pid = os.getpid()
    reaped = 0
    for proc in psutil.process_iter(["pid", "name", "cmdline"]):
        if proc.pid == own_pid:
            continue
        try:
            if not _matches_driver(proc, file_name):
                continue
            log.info("Terminating stale %s (pid=%d)", file_name, proc.pid)
            proc.terminate()
            reaped += 1
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied as exc:
            raise ReapError(f"not permitted to terminate {file_name} pid {proc.pid}") from exc
    return reaped


def _reap_windows(file_name: str) -> int:
    target = file_name.lower()
    reaped = 0
    for proc in psutil.process_iter(["pid", "name"]):
        if (proc.info.get("name") or "").lower() != target:
            continue
        try:
            proc.kill()
            reaped += 1
        except (psutil.NoSuchProcess, psutil.AccessDenied) as exc:
            log.debug("Could not kill %s (pid=%d): %s", file_name, proc.pid, exc)
    if not reaped:
        log.debug("Nothing to kill.")
    return reaped


def reap_sync(file_name: str | None = None, platform: Platform | None = None) -> int:
    platform = platform or detect_platform()
    file_name = file_name or driver_file_name(platform)

    if platform.is_unix:
        return _reap_unix(file_name)
    if platform is Platform.WINDOWS:
        return _reap_windows(file_name)
    raise UnsupportedPlatformError(platform.value)


async def reap_stale_processes(
    file_name: str | None = None,
    platform: Platform | None = None,
) -> int:
    """Signal every stale driver process; return how many were signalled.

    Finding nothing is success. Raises UnsupportedPlatformError on an
    unrecognised OS, ReapError when a matching process cannot be signalled.
    """
    platform = platform or detect_platform()
    if platform is Platform.UNKNOWN:
        raise UnsupportedPlatformError(platform.value)
    return await asyncio.to_thread(reap_sync, file_name, platform)
