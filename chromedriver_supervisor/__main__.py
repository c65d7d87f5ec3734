"""Run the chromedriver control daemon over HTTP.

Usage:
    python -m chromedriver_supervisor [--port PORT] [--env-file FILE]

Driver options come from the environment (``CHROMEDRIVER_*``), optionally
loaded from an env file first.
"""

import argparse
import asyncio
import logging
import signal
from pathlib import Path

import uvicorn

from chromedriver_supervisor.config import DriverOptions
from chromedriver_supervisor.driver import ChromeDriver
from chromedriver_supervisor.server import DEFAULT_PORT, create_server

log = logging.getLogger(__name__)


async def _run(port: int, options: DriverOptions) -> None:
    driver = ChromeDriver(options)
    server = create_server(driver=driver, port=port)

    app = server.streamable_http_app()
    config = uvicorn.Config(
        app, host="127.0.0.1", port=port, log_level="info",
    )
    uvi = uvicorn.Server(config)

    # _serve() skips uvicorn's capture_signals(), which would replace the
    # loop signal handlers installed below.
    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown.set)

    serve_task = asyncio.create_task(uvi._serve())

    await shutdown.wait()
    log.info("Signal received, shutting down")

    uvi.should_exit = True
    await serve_task
    log.info("Stopping chromedriver")
    await driver.stop()


def main() -> None:
    parser = argparse.ArgumentParser(description="chromedriver control daemon")
    parser.add_argument(
        "--port", type=int, default=DEFAULT_PORT,
        help=f"Port to listen on (default: {DEFAULT_PORT})",
    )
    parser.add_argument(
        "--env-file", type=Path, default=None,
        help="dotenv file with CHROMEDRIVER_* settings",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [chromedriver] %(levelname)s %(message)s",
    )

    # The MCP SDK logs a full traceback when an HTTP client disconnects
    # before its response is sent; report it as a DEBUG line instead.
    class _SuppressDisconnect(logging.Filter):
        def filter(self, record: logging.LogRecord) -> bool:
            if record.exc_info and record.exc_info[1] is not None:
                if "ClosedResourceError" in str(record.exc_info[1]):
                    record.levelno = logging.DEBUG
                    record.levelname = "DEBUG"
                    record.msg = "Client disconnected before response completed"
                    record.exc_info = None
                    record.exc_text = None
            return True

    logging.getLogger("mcp.server.streamable_http_manager").addFilter(
        _SuppressDisconnect()
    )

    options = DriverOptions.from_env(args.env_file)
    log.info("Starting chromedriver daemon on http://127.0.0.1:%d/mcp", args.port)
    asyncio.run(_run(args.port, options))


if __name__ == "__main__":
    main()
