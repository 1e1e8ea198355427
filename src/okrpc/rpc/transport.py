"""JSON-over-HTTP transport backed by httpx."""
from __future__ import annotations

from typing import Any

import httpx

from okrpc.core.config import DEFAULT_TIMEOUT

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class JsonHttpRpcTransport:
    """
    POST payload to url, return the raw body. One AsyncClient per attempt (no pooling).
    Non-2xx responses raise httpx.HTTPStatusError; network errors raise httpx.RequestError.
    transport: optional httpx transport (MockTransport, ASGITransport) for tests and in-process use.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        headers: dict[str, str] | None = None,
        transport: Any = None,
    ) -> None:
        self._timeout = timeout
        self._headers = {**JSON_HEADERS, **(headers or {})}
        self._transport = transport

    async def call(self, url: str, method: str, payload: bytes) -> bytes:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            r = await client.post(url, content=payload, headers=self._headers)
            r.raise_for_status()
            return r.content
