from __future__ import annotations

import asyncio
import os

import psutil
import pytest

from chromedriver_supervisor import reaper
from chromedriver_supervisor.errors import ReapError, UnsupportedPlatformError
from chromedriver_supervisor.platforms import Platform


class FakeProc:
    def __init__(self, pid, name, cmdline=None, error=None):
        self.pid = pid
        self.info = {"pid": pid, "name": name, "cmdline": cmdline}
        self.error = error
        self.terminated = False
        self.killed = False

    def terminate(self):
        if self.error:
            raise self.error
        self.terminated = True

    def kill(self):
        if self.error:
            raise self.error
        self.killed = True


@pytest.fixture
def procs(monkeypatch):
    table: list[FakeProc] = []
    monkeypatch.setattr(reaper.psutil, "process_iter", lambda attrs=None: iter(table))
    return table


def test_unix_terminates_only_port_bearing_drivers(procs):
    driver = FakeProc(101, "chromedriver", ["/opt/exec/chromedriver", "--url-base=wd/hub", "--port=9515"])
    no_port = FakeProc(102, "chromedriver", ["chromedriver", "--version"])
    other = FakeProc(103, "python3", ["python3", "serve.py", "--port=8000"])
    by_path = FakeProc(104, "", ["/usr/local/bin/chromedriver", "--port=4444"])
    procs.extend([driver, no_port, other, by_path])

    count = asyncio.run(reaper.reap_stale_processes("chromedriver", Platform.LINUX))

    assert count == 2
    assert driver.terminated and by_path.terminated
    assert not no_port.terminated and not other.terminated


def test_unix_skips_own_process(procs):
    me = FakeProc(os.getpid(), "chromedriver", ["chromedriver", "--port=9515"])
    procs.append(me)

    assert asyncio.run(reaper.reap_stale_processes("chromedriver", Platform.MACOS)) == 0
    assert not me.terminated


def test_no_matches_is_success(procs):
    assert asyncio.run(reaper.reap_stale_processes("chromedriver", Platform.LINUX)) == 0


def test_vanished_process_is_ignored(procs):
    procs.append(FakeProc(201, "chromedriver", ["chromedriver", "--port=9515"], error=psutil.NoSuchProcess(201)))

    assert asyncio.run(reaper.reap_stale_processes("chromedriver", Platform.LINUX)) == 0


def test_access_denied_is_a_reap_failure(procs):
    procs.append(FakeProc(301, "chromedriver", ["chromedriver", "--port=9515"], error=psutil.AccessDenied(301)))

    with pytest.raises(ReapError):
        asyncio.run(reaper.reap_stale_processes("chromedriver", Platform.LINUX))


def test_windows_force_kills_by_image_name(procs):
    driver = FakeProc(401, "ChromeDriver.exe")
    other = FakeProc(402, "chrome.exe")
    procs.extend([driver, other])

    count = asyncio.run(reaper.reap_stale_processes("chromedriver.exe", Platform.WINDOWS))

    assert count == 1
    assert driver.killed and not other.killed


def test_windows_swallows_not_found(procs, caplog):
    procs.append(FakeProc(501, "chromedriver.exe", error=psutil.NoSuchProcess(501)))

    with caplog.at_level("DEBUG", logger="chromedriver_supervisor.reaper"):
        assert asyncio.run(reaper.reap_stale_processes("chromedriver.exe", Platform.WINDOWS)) == 0

    assert "Nothing to kill." in caplog.text


def test_unsupported_platform_rejects_before_scanning(monkeypatch):
    def explode(*args, **kwargs):
        raise AssertionError("process table must not be scanned")

    monkeypatch.setattr(reaper.psutil, "process_iter", explode)

    with pytest.raises(UnsupportedPlatformError):
        asyncio.run(reaper.reap_stale_processes(platform=Platform.UNKNOWN))
