"""ChromeDriver supervisor: reap, spawn, wait for the banner, probe, ready."""

from __future__ import annotations

import asyncio
import codecs
import logging
import os
import signal
import sys
from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path
from typing import Any

from .config import DriverOptions
from .errors import (
    BinaryMissingError,
    DriverBusyError,
    ReadinessTimeoutError,
    SpawnError,
    UnexpectedOutputError,
)
from .events import EVENT_ERROR, EVENT_READY, DriverEvents
from .models import DriverState, OutputBuffer, SessionDescriptor
from .platforms import default_binary_path, driver_file_name, is_existing_file
from .prober import STATUS_PHASE, ReadinessProber
from .proxy import CommandSender, Proxy
from .reaper import reap_stale_processes
from .startup import MarkerResult, StartupMarker

log = logging.getLogger(__name__)

Reaper = Callable[[], Awaitable[Any]]

_IS_WINDOWS = sys.platform == "win32"


def _spawn_kwargs() -> dict[str, Any]:
    # Own process group on POSIX so stop() also reaches the browsers the driver launches
    return {} if _IS_WINDOWS else {"start_new_session": True}


def describe_exit(returncode: int | None) -> tuple[int | None, str | None]:
    """Split a Popen-style return code into (exit code, signal name)."""
    if returncode is None or returncode >= 0:
        return returncode, None
    try:
        return None, signal.Signals(-returncode).name
    except ValueError:
        return None, str(-returncode)


class ChromeDriver:
    """Supervises one local chromedriver process.

    ``start()`` runs reaping, spawning, and readiness probing in order and
    publishes the negotiated session on ``events``. Only one start may be
    in flight at a time; ``stop()`` may be called from any state.
    """

    VERSION = "2.20"
    FILE_NAME = driver_file_name()
    BIN_PATH = default_binary_path()
    EVENT_READY = EVENT_READY
    EVENT_ERROR = EVENT_ERROR

    def __init__(
        self,
        options: DriverOptions | Mapping[str, Any] | None = None,
        *,
        proxy: CommandSender | None = None,
        reaper: Reaper | None = None,
    ) -> None:
        if options is None:
            options = DriverOptions()
        elif not isinstance(options, DriverOptions):
            options = DriverOptions.from_mapping(options)
        self._options = options

        self.events = DriverEvents()
        self.proxy: CommandSender = proxy or Proxy(
            proxy_host=options.proxy_host,
            proxy_port=options.proxy_port,
            url_base=options.url_base,
        )
        self._reaper: Reaper = reaper or self._reap_stale

        self._capabilities: dict[str, Any] = {}
        self._session: SessionDescriptor | None = None
        self.stdout_buf = OutputBuffer()
        self.stderr_buf = OutputBuffer()

        self._state = DriverState.IDLE
        self._generation = 0
        self._process: asyncio.subprocess.Process | None = None
        self._reader_tasks: list[asyncio.Task[None]] = []
        self._exit_task: asyncio.Task[None] | None = None

        self.check_binary()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def options(self) -> DriverOptions:
        return self._options

    @property
    def capabilities(self) -> dict[str, Any]:
        """Capabilities requested by the most recent start()."""
        return dict(self._capabilities)

    @property
    def session(self) -> SessionDescriptor | None:
        """Session negotiated by the most recent successful start()."""
        return self._session

    @property
    def binary_path(self) -> Path:
        return self.options.binary_path

    @property
    def state(self) -> DriverState:
        return self._state

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    def check_binary(self, strict: bool = False) -> bool:
        """Log whether the binary exists; raise BinaryMissingError if ``strict``."""
        if is_existing_file(self.binary_path):
            log.info("chromedriver bin path: %s", self.binary_path)
            return True
        log.error("chromedriver bin path not found: %s", self.binary_path)
        if strict:
            raise BinaryMissingError(f"chromedriver binary not found: {self.binary_path}")
        return False

    def build_args(self) -> list[str]:
        return [
            f"--url-base={self.options.url_base}",
            f"--port={self.options.proxy_port}",
        ]

    def describe(self) -> dict[str, Any]:
        return {
            "state": self._state.value,
            "pid": self.pid,
            "binary_path": str(self.binary_path),
            "args": self.build_args(),
            "session_id": self.session.session_id if self.session else None,
            "capabilities": self.capabilities,
        }

    def get_output(self, stream: str = "all", tail: int = 2000) -> dict[str, Any]:
        """Retrieve buffered driver output."""
        result: dict[str, Any] = {"state": self._state.value, "pid": self.pid}
        if stream in ("stdout", "all"):
            result["stdout"] = self.stdout_buf.tail(tail)
            result["stdout_seq"] = self.stdout_buf.seq
        if stream in ("stderr", "all"):
            result["stderr"] = self.stderr_buf.tail(tail)
            result["stderr_seq"] = self.stderr_buf.seq
        return result

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def send_command(self, path: str, method: str = "GET", body: Any = None) -> Any:
        return await self.proxy.send(path, method, body)

    async def get_status(self) -> Any:
        return await self.send_command("/status", "GET")

    async def create_session(self, capabilities: Mapping[str, Any] | None = None) -> Any:
        """POST /session with ``capabilities``, defaulting to those given to start()."""
        caps = self._capabilities if capabilities is None else dict(capabilities)
        return await self.send_command(
            "/session", "POST", {"desiredCapabilities": caps},
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, capabilities: Mapping[str, Any] | None = None) -> SessionDescriptor | None:
        """Launch the driver and negotiate a session.

        Returns the session, or None when readiness probing gave up (logged,
        child terminated). Reap and spawn failures are raised.
        """
        if self._state.in_flight:
            raise DriverBusyError(
                f"chromedriver start already in progress ({self._state.value})"
            )

        self._generation += 1
        generation = self._generation
        self._capabilities = dict(capabilities or {})
        self._session = None
        self._set_state(DriverState.REAPING, generation)

        try:
            if self.is_running:
                log.info("Stopping running chromedriver (pid=%s) before restart", self.pid)
            await self._terminate()
            await self._starting(generation)
        except Exception:
            log.warning("chromedriver starting failed.")
            if self._is_current(generation):
                self._set_state(DriverState.FAILED, generation)
                await self._terminate()
            raise

        return await self._wait_ready_status(generation)

    async def stop(self, force: bool = False) -> None:
        """Terminate the driver, escalating to SIGKILL after ``stop_timeout``.

        No-op when nothing is running. In-flight readiness probes are not
        cancelled, but whatever they produce afterwards is discarded.
        """
        if self._process is None and not self._state.in_flight:
            # readers can outlive an exited child; release them
            await self._terminate()
            return

        self._generation += 1
        pid = self.pid
        await self._terminate(force=force)
        self._state = DriverState.STOPPED
        if pid is not None:
            log.info("chromedriver killed (pid=%d)", pid)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _set_state(self, state: DriverState, generation: int) -> None:
        if not self._is_current(generation):
            return
        if state is not self._state:
            log.debug("chromedriver state %s -> %s", self._state.value, state.value)
        self._state = state

    def _ensure_current(self, generation: int) -> None:
        if not self._is_current(generation):
            raise SpawnError("chromedriver start was cancelled by stop()")

    async def _reap_stale(self) -> int:
        return await reap_stale_processes(self.FILE_NAME)

    async def _starting(self, generation: int) -> None:
        try:
            count = await self._reaper()
        except Exception:
            log.info("kill all chromedriver process failed!")
            raise
        log.info("kill all chromedriver process success! (%s reaped)", count)
        self._ensure_current(generation)

        self._set_state(DriverState.SPAWNING, generation)
        await self._spawn(generation)
        self._ensure_current(generation)

    async def _spawn(self, generation: int) -> None:
        args = self.build_args()
        loop = asyncio.get_running_loop()
        startup: asyncio.Future[None] = loop.create_future()
        marker = StartupMarker()
        self.stdout_buf.clear()
        self.stderr_buf.clear()

        try:
            process = await asyncio.create_subprocess_exec(
                str(self.binary_path),
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                **_spawn_kwargs(),
            )
        except OSError as exc:
            log.warning("chromedriver error with %s", exc)
            self.events.emit_error(exc)
            raise SpawnError(f"chromedriver failed to launch: {exc}") from exc

        log.info("chromedriver spawned (pid=%d): %s %s", process.pid, self.binary_path, " ".join(args))
        if not self._is_current(generation):
            # stop() landed while the exec was in progress
            self._signal(process, force=True)
            await process.wait()
            raise SpawnError("chromedriver start was cancelled by stop()")
        self._process = process
        self._set_state(DriverState.AWAITING_STARTUP_MARKER, generation)

        self._reader_tasks = [
            asyncio.create_task(
                self._read_stdout(process.stdout, marker, startup),  # type: ignore[arg-type]
                name=f"chromedriver-{process.pid}-stdout",
            ),
            asyncio.create_task(
                self._read_stderr(process.stderr),  # type: ignore[arg-type]
                name=f"chromedriver-{process.pid}-stderr",
            ),
        ]
        self._exit_task = asyncio.create_task(
            self._wait_for_exit(process, list(self._reader_tasks), startup),
            name=f"chromedriver-{process.pid}-waiter",
        )

        try:
            await asyncio.wait_for(startup, timeout=self.options.startup_timeout)
        except asyncio.TimeoutError as exc:
            raise SpawnError(
                f"chromedriver printed no startup banner within {self.options.startup_timeout}s"
            ) from exc

    async def _wait_ready_status(self, generation: int) -> SessionDescriptor | None:
        log.info("chromedriver starting success.")
        if not self._is_current(generation):
            return None

        def on_phase(phase: str) -> None:
            state = (
                DriverState.POLLING_STATUS if phase == STATUS_PHASE
                else DriverState.NEGOTIATING_SESSION
            )
            self._set_state(state, generation)

        prober = ReadinessProber(
            self.get_status,
            self.create_session,
            self._capabilities,
            interval=self.options.probe_interval,
            attempts=self.options.probe_attempts,
            on_phase=on_phase,
        )
        try:
            session = await prober.await_ready()
        except ReadinessTimeoutError as exc:
            log.warning("chromedriver never became ready: %s", exc)
            if self._is_current(generation):
                self._set_state(DriverState.FAILED, generation)
                await self._terminate()
            return None

        if not self._is_current(generation):
            log.info("Discarding session %s from a superseded start", session.session_id)
            return None

        self._session = session
        self._set_state(DriverState.READY, generation)
        log.info("chromedriver ready (session=%s)", session.session_id)
        self.events.emit_ready(session)
        return session

    async def _read_stdout(
        self,
        stream: asyncio.StreamReader,
        marker: StartupMarker,
        startup: asyncio.Future[None],
    ) -> None:
        """Buffer and log stdout; settle ``startup`` from the banner."""
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            while True:
                chunk = await stream.read(4096)
                if not chunk:
                    break
                text = decoder.decode(chunk)
                if not text:
                    continue
                self.stdout_buf.append(text)
                log.info("chromedriver: %s", text.rstrip())

                if startup.done() or marker.decided:
                    continue
                result = marker.feed(text)
                if result is MarkerResult.MATCHED:
                    startup.set_result(None)
                elif result is MarkerResult.MISMATCHED:
                    startup.set_exception(UnexpectedOutputError(marker.buffer))
        except asyncio.CancelledError:
            pass

    async def _read_stderr(self, stream: asyncio.StreamReader) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            while True:
                chunk = await stream.read(4096)
                if not chunk:
                    break
                text = decoder.decode(chunk)
                if text:
                    self.stderr_buf.append(text)
                    log.debug("chromedriver stderr: %s", text.rstrip())
        except asyncio.CancelledError:
            pass

    async def _wait_for_exit(
        self,
        process: asyncio.subprocess.Process,
        readers: list[asyncio.Task[None]],
        startup: asyncio.Future[None],
    ) -> None:
        """Wait for the process to exit, then settle startup and clear the handle."""
        returncode = await process.wait()
        # Browsers spawned by the driver can hold the pipes open past its exit
        await asyncio.wait(readers, timeout=1.0)

        code, sig = describe_exit(returncode)
        log.warning("chromedriver exit with code: %s, signal: %s", code, sig)
        if not startup.done():
            startup.set_exception(
                SpawnError(f"chromedriver exit with code: {code}, signal: {sig}")
            )

        if self._process is process:
            self._process = None
            if self._state is DriverState.READY:
                self._state = DriverState.FAILED

    async def _terminate(self, force: bool = False) -> None:
        """Signal our own child's process group and wait for it to go away."""
        process = self._process
        if process is not None and process.returncode is None:
            self._signal(process, force)
            try:
                await asyncio.wait_for(process.wait(), timeout=self.options.stop_timeout)
            except asyncio.TimeoutError:
                log.warning(
                    "chromedriver (pid=%d) ignored SIGTERM for %.1fs, killing",
                    process.pid, self.options.stop_timeout,
                )
                self._signal(process, force=True)
                try:
                    await asyncio.wait_for(process.wait(), timeout=5.0)
                except asyncio.TimeoutError:
                    log.error("chromedriver (pid=%d) survived SIGKILL", process.pid)

        for task in self._reader_tasks:
            task.cancel()
        self._reader_tasks = []
        if self._exit_task is not None:
            await asyncio.wait({self._exit_task}, timeout=2.0)
            self._exit_task = None

        if process is not None and self._process is process:
            self._process = None

    @staticmethod
    def _signal(process: asyncio.subprocess.Process, force: bool) -> None:
        try:
            if _IS_WINDOWS:
                if force:
                    process.kill()
                else:
                    process.terminate()
                return
            pgid = os.getpgid(process.pid)
            os.killpg(pgid, signal.SIGKILL if force else signal.SIGTERM)
        except (ProcessLookupError, OSError):
            pass
