"""MCP server exposing the chromedriver supervisor over HTTP."""

from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP

from chromedriver_supervisor.driver import ChromeDriver
from chromedriver_supervisor.errors import ChromeDriverError

# Default port for the control daemon
DEFAULT_PORT = 8902


def create_server(
    driver: ChromeDriver | None = None,
    port: int = DEFAULT_PORT,
) -> FastMCP:
    """Create and configure the MCP control server for one driver."""

    drv = driver or ChromeDriver()

    mcp = FastMCP(
        name="chromedriver",
        instructions=(
            "Controls a local chromedriver. Use start_driver to launch it and "
            "negotiate a session, driver_status and get_output to inspect it, "
            "send_command to forward WebDriver requests, and stop_driver to "
            "shut it down."
        ),
        host="127.0.0.1",
        port=port,
        stateless_http=True,
    )

    # ------------------------------------------------------------------
    # Tool: start_driver
    # ------------------------------------------------------------------
    @mcp.tool()
    async def start_driver(capabilities: dict[str, Any] | None = None) -> dict:
        """Start chromedriver and create a session.

        Stale chromedriver processes started with a --port argument are
        terminated first. Returns the negotiated session id, or the state
        the driver ended in if it never became ready.

        Args:
            capabilities: Desired capabilities, e.g. {"browserName": "chrome"}.
        """
        try:
            session = await drv.start(capabilities or {})
        except ChromeDriverError as exc:
            return {"status": "error", "state": drv.state.value, "error": str(exc)}
        if session is None:
            return {"status": "error", "state": drv.state.value, "error": "driver never became ready"}
        return {
            "status": drv.state.value,
            "pid": drv.pid,
            "session_id": session.session_id,
            "response": session.response,
        }

    # ------------------------------------------------------------------
    # Tool: stop_driver
    # ------------------------------------------------------------------
    @mcp.tool()
    async def stop_driver(force: bool = False) -> dict:
        """Stop chromedriver.

        Sends SIGTERM to the driver's process group, waits for it to exit,
        then escalates to SIGKILL.

        Args:
            force: If True, send SIGKILL immediately instead of SIGTERM.
        """
        await drv.stop(force=force)
        return {"status": drv.state.value}

    # ------------------------------------------------------------------
    # Tool: driver_status
    # ------------------------------------------------------------------
    @mcp.tool()
    async def driver_status() -> dict:
        """Report lifecycle state, pid, launch arguments and session id."""
        return drv.describe()

    # ------------------------------------------------------------------
    # Tool: send_command
    # ------------------------------------------------------------------
    @mcp.tool()
    async def send_command(path: str, method: str = "GET", body: dict[str, Any] | None = None) -> dict:
        """Forward one WebDriver request to chromedriver.

        Args:
            path: Path below the url base, e.g. "/status" or "/session/<id>/url".
            method: HTTP method.
            body: JSON body for POST requests.
        """
        try:
            return {"status": "ok", "response": await drv.send_command(path, method, body)}
        except ChromeDriverError as exc:
            return {"status": "error", "error": str(exc)}

    # ------------------------------------------------------------------
    # Tool: get_output
    # ------------------------------------------------------------------
    @mcp.tool()
    async def get_output(stream: str = "all", tail: int = 2000) -> dict:
        """Get buffered stdout/stderr output from chromedriver.

        Args:
            stream: Which stream(s) to retrieve: "stdout", "stderr", or "all".
            tail: Number of characters to retrieve from the end of the buffer.
        """
        return drv.get_output(stream=stream, tail=tail)

    return mcp
