from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .platforms import default_binary_path

# camelCase option spellings accepted alongside the field names
_ALIASES = {
    "proxyHost": "proxy_host",
    "proxyPort": "proxy_port",
    "urlBase": "url_base",
    "binPath": "binary_path",
}


@dataclass(frozen=True)
class DriverOptions:
    proxy_host: str = "localhost"
    proxy_port: int = 9515
    url_base: str = "wd/hub"
    binary_path: Path = field(default_factory=default_binary_path)
    probe_interval: float = 1.0
    probe_attempts: int = 20
    startup_timeout: float = 30.0
    stop_timeout: float = 10.0
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.binary_path, Path):
            object.__setattr__(self, "binary_path", Path(self.binary_path))
        if self.probe_attempts < 1:
            raise ValueError(f"probe_attempts must be at least 1, got {self.probe_attempts}")

    @property
    def base_url(self) -> str:
        """Root URL the proxy forwards to, e.g. ``http://localhost:9515/wd/hub``."""
        base = self.url_base.strip("/")
        root = f"http://{self.proxy_host}:{self.proxy_port}"
        return f"{root}/{base}" if base else root

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any] | None) -> DriverOptions:
        """Build options from a loose dict.

        Recognised keys (snake_case or the camelCase aliases) become fields;
        anything else is kept verbatim in ``extra``.
        """
        known = {f.name for f in fields(cls)} - {"extra"}
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in (options or {}).items():
            name = _ALIASES.get(key, key)
            if name in known:
                kwargs[name] = value
            elif key == "extra" and isinstance(value, Mapping):
                extra.update(value)
            else:
                extra[key] = value
        return cls(**kwargs, extra=extra)

    @classmethod
    def from_env(cls, env_path: str | Path | None = None) -> DriverOptions:
        load_dotenv(env_path)

        kwargs: dict[str, Any] = {
            "proxy_host": os.getenv("CHROMEDRIVER_PROXY_HOST", "localhost"),
            "proxy_port": int(os.getenv("CHROMEDRIVER_PROXY_PORT", "9515")),
            "url_base": os.getenv("CHROMEDRIVER_URL_BASE", "wd/hub"),
            "probe_interval": float(os.getenv("CHROMEDRIVER_PROBE_INTERVAL", "1.0")),
            "probe_attempts": int(os.getenv("CHROMEDRIVER_PROBE_ATTEMPTS", "20")),
            "startup_timeout": float(os.getenv("CHROMEDRIVER_STARTUP_TIMEOUT", "30.0")),
            "stop_timeout": float(os.getenv("CHROMEDRIVER_STOP_TIMEOUT", "10.0")),
        }

        binary = os.getenv("CHROMEDRIVER_BINARY_PATH")
        if binary:
            kwargs["binary_path"] = Path(binary).expanduser()

        return cls(**kwargs)
