from __future__ import annotations

import stat
import sys
import textwrap
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses shebang scripts as fake drivers")


class FakeProxy:
    """Scripted stand-in for Proxy.send.

    ``routes`` maps (method, path) to a list of outcomes consumed in order;
    an Exception outcome is raised, anything else is returned. The last
    outcome repeats once the list is exhausted.
    """

    def __init__(self, routes: dict[tuple[str, str], list[Any]] | None = None) -> None:
        self.routes = routes or {}
        self.calls: list[tuple[str, str, Any]] = []

    def calls_to(self, method: str, path: str) -> list[tuple[str, str, Any]]:
        return [c for c in self.calls if c[0] == method and c[1] == path]

    async def send(self, path: str, method: str = "GET", body: Any = None) -> Any:
        self.calls.append((method, path, body))
        outcomes = self.routes.get((method, path))
        if not outcomes:
            raise ConnectionError(f"no route for {method} {path}")
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def fake_proxy() -> FakeProxy:
    return FakeProxy()


async def no_reap() -> int:
    return 0


@pytest.fixture
def driver_script(tmp_path: Path) -> Callable[..., Path]:
    """Factory for executable scripts that impersonate chromedriver.

    The script records its argv to ``argv.txt`` next to itself, writes
    ``output`` to stdout, sleeps ``linger`` seconds, then exits. With
    ``ignore_sigterm`` it only goes away on SIGKILL.
    """

    def make(
        output: str = "",
        linger: float = 30.0,
        exit_code: int = 0,
        name: str = "chromedriver",
        ignore_sigterm: bool = False,
    ) -> Path:
        path = tmp_path / name
        argv_file = tmp_path / "argv.txt"
        path.write_text(
            f"#!{sys.executable}\n"
            + textwrap.dedent(
                f"""\
                import signal, sys, time
                if {ignore_sigterm!r}:
                    signal.signal(signal.SIGTERM, signal.SIG_IGN)
                with open({str(argv_file)!r}, "w") as fh:
                    fh.write("\\n".join(sys.argv[1:]))
                sys.stdout.write({output!r})
                sys.stdout.flush()
                time.sleep({linger!r})
                sys.exit({exit_code!r})
                """
            )
        )
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return make
