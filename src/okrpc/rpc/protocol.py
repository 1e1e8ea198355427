"""RPC protocols and wire types: status envelope, transport, errors."""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

STATUS_OK = "ok"


class RpcError(Exception):
    """Base error for okrpc."""


class ErrorStatus(RpcError):
    """Raised by a server method: its message becomes the envelope status."""

    def __init__(self, status: str) -> None:
        super().__init__(status)
        self.status = status


class TransportError(RpcError):
    """One attempt did not yield a JSON response (network, HTTP status, bad body)."""


@dataclass(frozen=True)
class Envelope:
    """Top-level response object: status discriminator and result payload."""

    status: str | None
    result: Any = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    @classmethod
    def from_json(cls, data: Any) -> Envelope:
        # Any JSON value is accepted; non-objects carry no status.
        if not isinstance(data, dict):
            return cls(status=None)
        return cls(status=data.get("status"), result=data.get("result"))

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"status": self.status, "result": self.result}
        return {"status": self.status, "result": None}


def decode_envelope(body: bytes) -> Envelope:
    """Parse a response body. Raises TransportError if it is not JSON."""
    try:
        data = json.loads(body.decode() if body else "")
    except (UnicodeDecodeError, ValueError, RecursionError) as e:
        raise TransportError(f"invalid JSON response: {e}") from e
    return Envelope.from_json(data)


@runtime_checkable
class RpcTransport(Protocol):
    """RPC transport: send request, get raw response body. Raise on failure."""

    async def call(self, url: str, method: str, payload: bytes) -> bytes:
        ...
