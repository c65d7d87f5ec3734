"""Supervisor for a local chromedriver process.

Launches the driver, waits until it has both started and accepted a
session, and forwards WebDriver commands to it:

    driver = ChromeDriver({"proxyPort": 9515})
    driver.events.subscribe(on_ready=lambda session: print(session.session_id))
    await driver.start({"browserName": "chrome"})

Can also run as an MCP control daemon:
    python -m chromedriver_supervisor
"""

from chromedriver_supervisor.config import DriverOptions
from chromedriver_supervisor.driver import ChromeDriver
from chromedriver_supervisor.errors import (
    BinaryMissingError,
    ChromeDriverError,
    DriverBusyError,
    ProxyError,
    ReadinessTimeoutError,
    ReapError,
    SpawnError,
    UnexpectedOutputError,
    UnsupportedPlatformError,
)
from chromedriver_supervisor.events import DriverEvents, Subscription
from chromedriver_supervisor.models import DriverState, SessionDescriptor
from chromedriver_supervisor.proxy import Proxy
from chromedriver_supervisor.reaper import reap_stale_processes

__all__ = [
    "BinaryMissingError",
    "ChromeDriver",
    "ChromeDriverError",
    "DriverBusyError",
    "DriverEvents",
    "DriverOptions",
    "DriverState",
    "Proxy",
    "ProxyError",
    "ReadinessTimeoutError",
    "ReapError",
    "SessionDescriptor",
    "SpawnError",
    "Subscription",
    "UnexpectedOutputError",
    "UnsupportedPlatformError",
    "reap_stale_processes",
]
