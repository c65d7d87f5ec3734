"""Forward protocol commands to the driver's local HTTP port."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from .errors import ProxyError

log = logging.getLogger(__name__)


class CommandSender(Protocol):
    async def send(self, path: str, method: str = "GET", body: Any = None) -> Any: ...


class Proxy:
    def __init__(
        self,
        proxy_host: str = "localhost",
        proxy_port: int = 9515,
        url_base: str = "wd/hub",
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.proxy_host = proxy_host
        self.proxy_port = proxy_port
        self.url_base = url_base.strip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def base_url(self) -> str:
        root = f"http://{self.proxy_host}:{self.proxy_port}"
        return f"{root}/{self.url_base}" if self.url_base else root

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def send(self, path: str, method: str = "GET", body: Any = None) -> Any:
        """Send one request and return the decoded JSON body.

        Raises ProxyError on transport failure or a non-2xx status.
        """
        url = self.url_for(path)
        method = method.upper()
        log.debug("%s %s", method, url)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport,
            ) as client:
                response = await client.request(method, url, json=body)
        except httpx.HTTPError as exc:
            raise ProxyError(f"{method} {url} failed: {exc}") from exc

        payload = _decode(response)
        if not response.is_success:
            raise ProxyError(
                f"{method} {url} returned {response.status_code}",
                status_code=response.status_code,
                body=payload,
            )
        return payload


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
