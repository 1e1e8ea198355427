"""
RpcCaller — fire-and-forget client: POST args to {base}/{method}, hand the result of an
"ok" envelope to a callback. Transport failures are retried immediately up to the
configured budget; everything else is reported through logging only.
"""
from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

from okrpc.core.config import Config, load_config_from_env
from okrpc.core.logging import get_logger
from okrpc.rpc.protocol import Envelope, RpcTransport, TransportError, decode_envelope
from okrpc.rpc.transport import JsonHttpRpcTransport

logger = get_logger(__name__)

OnSuccess = Callable[[Any], Any]


def _noop(result: Any) -> None:
    return None


class RpcCaller:
    """
    Facade: call(method, args, on_success) schedules one logical call on the running loop.
    Each call owns its retry counter; calls share nothing but the transport and config.
    """

    def __init__(self, config: Config | None = None, transport: RpcTransport | None = None) -> None:
        self._config = config or load_config_from_env()
        self._transport = transport or JsonHttpRpcTransport(timeout=self._config.timeout)
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def config(self) -> Config:
        return self._config

    def url_for(self, method: str) -> str:
        return self._config.api_server_address.rstrip("/") + "/" + method

    def call(self, method: str, args: Any, on_success: OnSuccess | None = None) -> asyncio.Task[None]:
        """
        Returns immediately. The task resolves to None once the call is delivered,
        rejected or out of retries; it does not raise for any of those.
        Raises TypeError at once if args is not JSON-serializable, RuntimeError without a running loop.
        """
        payload = json.dumps(args).encode()
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run(method, payload, on_success or _noop))
        # The loop only keeps weak references to tasks.
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def call_now(self, method: str, args: Any, on_success: OnSuccess | None = None) -> None:
        """Same as call(), awaited in the current task."""
        payload = json.dumps(args).encode()
        await self._run(method, payload, on_success or _noop)

    async def _run(self, method: str, payload: bytes, on_success: OnSuccess) -> None:
        url = self.url_for(method)
        retry = self._config.retries
        attempts = 0
        while True:
            attempts += 1
            try:
                envelope = await self._send(url, method, payload)
                break
            except TransportError as e:
                if retry > 0:
                    retry -= 1
                    logger.warning("call %s error => %s (retrying, %d left)", method, e, retry)
                    continue
                logger.error("call %s error => %s (giving up after %d attempts)", method, e, attempts)
                return

        if not envelope.ok:
            logger.warning("call %s not ok => %r", method, envelope.status)
            return
        try:
            result = on_success(envelope.result)
            if hasattr(result, "__await__"):
                await result
        except Exception:
            logger.exception("call %s success callback failed", method)

    async def _send(self, url: str, method: str, payload: bytes) -> Envelope:
        try:
            body = await self._transport.call(url, method, payload)
        except TransportError:
            raise
        except Exception as e:
            # Any failure to obtain a response counts, including httpx.InvalidURL.
            raise TransportError(str(e) or type(e).__name__) from e
        return decode_envelope(body)

    async def drain(self) -> None:
        """Wait for every call scheduled by this caller so far."""
        if self._pending:
            await asyncio.gather(*list(self._pending))


_default_caller: RpcCaller | None = None


def get_default_caller() -> RpcCaller:
    """Caller built from env on first use, then reused."""
    global _default_caller
    if _default_caller is None:
        _default_caller = RpcCaller()
    return _default_caller


def configure(config: Config | None = None, transport: RpcTransport | None = None) -> RpcCaller:
    """Replace the default caller used by call()."""
    global _default_caller
    _default_caller = RpcCaller(config=config, transport=transport)
    return _default_caller


def call(method: str, args: Any, on_success: OnSuccess | None = None) -> asyncio.Task[None]:
    """Fire-and-forget call through the default caller."""
    return get_default_caller().call(method, args, on_success)
