"""Single config object: API server address and retry budget, read from env once at startup."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

DEFAULT_API_SERVER_ADDRESS = "http://127.0.0.1:8000"
DEFAULT_RETRIES = 10
DEFAULT_TIMEOUT = 5.0


@dataclass(frozen=True)
class Config:
    """
    Client config. Build it directly or via load_config_from_env();
    RpcCaller only reads it.
    """

    api_server_address: str = DEFAULT_API_SERVER_ADDRESS
    retries: int = DEFAULT_RETRIES
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def load_from_env(cls, prefix: str = "OKRPC_", **defaults: Any) -> dict[str, Any]:
        """Load from os.environ with prefix and defaults. Returns dict for Config(**Config.load_from_env())."""
        result = dict(defaults)
        for key, value in os.environ.items():
            if key.startswith(prefix):
                name = key[len(prefix):].lower()
                result[name] = value
        return result


def _as_int(value: Any, default: int, minimum: int | None = None) -> int:
    try:
        v = int(value)
    except (TypeError, ValueError):
        v = default
    if minimum is not None:
        v = max(minimum, v)
    return v


def _as_float(value: Any, default: float) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        return default
    return v if v > 0 else default


def load_config_from_env(prefix: str = "OKRPC_") -> Config:
    """
    Build Config from env vars: OKRPC_API_SERVER_ADDRESS, OKRPC_RETRIES, OKRPC_TIMEOUT.
    Unknown keys under the prefix (e.g. OKRPC_LOG_LEVEL) are ignored here.
    """
    raw = Config.load_from_env(prefix)
    address = (raw.get("api_server_address") or DEFAULT_API_SERVER_ADDRESS).strip()
    return Config(
        api_server_address=address,
        retries=_as_int(raw.get("retries"), DEFAULT_RETRIES, minimum=0),
        timeout=_as_float(raw.get("timeout"), DEFAULT_TIMEOUT),
    )
