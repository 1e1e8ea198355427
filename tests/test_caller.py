from __future__ import annotations

import asyncio
import json
import logging

import httpx
import pytest

import okrpc.rpc.caller as caller_module
from okrpc import Config, RpcCaller, TransportError, call, configure

OK_BODY = json.dumps({"status": "ok", "result": {"echo": "hi", "num": 42}}).encode()


class _ScriptedTransport:
    """Fails the first `failures` attempts, then returns `body`."""

    def __init__(self, body: bytes = OK_BODY, failures: int = 0) -> None:
        self.body = body
        self.failures = failures
        self.calls: list[tuple[str, str, bytes]] = []

    async def call(self, url: str, method: str, payload: bytes) -> bytes:
        self.calls.append((url, method, payload))
        await asyncio.sleep(0)
        if len(self.calls) <= self.failures:
            raise httpx.ConnectError("connection refused")
        return self.body


class _PerMethodTransport:
    def __init__(self, transports: dict[str, _ScriptedTransport]) -> None:
        self._transports = transports

    async def call(self, url: str, method: str, payload: bytes) -> bytes:
        return await self._transports[method].call(url, method, payload)


def _caller(transport, retries: int = 10) -> RpcCaller:  # noqa: ANN001
    return RpcCaller(Config(api_server_address="http://api.local/", retries=retries), transport)


@pytest.mark.asyncio
async def test_ok_envelope_invokes_callback_once() -> None:
    tr = _ScriptedTransport()
    results: list[object] = []
    await _caller(tr).call("Ping", {"greetings": "hi"}, results.append)
    assert results == [{"echo": "hi", "num": 42}]
    assert tr.calls == [("http://api.local/Ping", "Ping", b'{"greetings": "hi"}')]


@pytest.mark.asyncio
async def test_call_returns_before_any_request() -> None:
    tr = _ScriptedTransport()
    task = _caller(tr).call("Ping", {})
    assert tr.calls == []
    assert not task.done()
    assert await task is None
    assert len(tr.calls) == 1


@pytest.mark.asyncio
async def test_non_ok_status_is_logged_and_not_retried(caplog) -> None:  # noqa: ANN001
    caplog.set_level(logging.WARNING, logger="okrpc")
    tr = _ScriptedTransport(body=b'{"status": "error"}')
    results: list[object] = []
    await _caller(tr).call("Ping", {}, results.append)
    assert results == []
    assert len(tr.calls) == 1
    assert "not ok => 'error'" in caplog.text


@pytest.mark.asyncio
async def test_non_object_json_is_a_rejection() -> None:
    tr = _ScriptedTransport(body=b"[1, 2]")
    results: list[object] = []
    await _caller(tr).call("Ping", {}, results.append)
    assert results == []
    assert len(tr.calls) == 1


@pytest.mark.asyncio
async def test_transport_failure_exhausts_after_eleven_attempts(caplog) -> None:  # noqa: ANN001
    caplog.set_level(logging.WARNING, logger="okrpc")
    tr = _ScriptedTransport(failures=1000)
    results: list[object] = []
    task = _caller(tr).call("Ping", {}, results.append)
    assert await task is None
    assert len(tr.calls) == 11
    assert results == []
    retried = [r for r in caplog.records if r.levelno == logging.WARNING]
    gave_up = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(retried) == 10
    assert len(gave_up) == 1
    assert "giving up after 11 attempts" in gave_up[0].getMessage()


@pytest.mark.asyncio
@pytest.mark.parametrize("failures", [1, 3, 10])
async def test_recovers_after_transient_failures(failures: int) -> None:
    tr = _ScriptedTransport(failures=failures)
    results: list[object] = []
    await _caller(tr).call("Ping", {"a": 1}, results.append)
    assert len(tr.calls) == failures + 1
    assert results == [{"echo": "hi", "num": 42}]
    assert len({c for c in tr.calls}) == 1


@pytest.mark.asyncio
async def test_invalid_json_body_is_retried() -> None:
    tr = _ScriptedTransport(body=b"<html>oops</html>")
    await _caller(tr, retries=2).call("Ping", {})
    assert len(tr.calls) == 3


@pytest.mark.asyncio
async def test_zero_retry_budget_makes_single_attempt() -> None:
    tr = _ScriptedTransport(failures=5)
    await _caller(tr, retries=0).call("Ping", {})
    assert len(tr.calls) == 1


@pytest.mark.asyncio
async def test_missing_callback_is_fine() -> None:
    tr = _ScriptedTransport()
    assert await _caller(tr).call("Ping", {}) is None


@pytest.mark.asyncio
async def test_callback_error_is_logged_not_retried(caplog) -> None:  # noqa: ANN001
    caplog.set_level(logging.ERROR, logger="okrpc")
    tr = _ScriptedTransport()

    def boom(result: object) -> None:
        raise RuntimeError("callback bug")

    await _caller(tr).call("Ping", {}, boom)
    assert len(tr.calls) == 1
    assert "success callback failed" in caplog.text


@pytest.mark.asyncio
async def test_async_callback_is_awaited() -> None:
    tr = _ScriptedTransport()
    results: list[object] = []

    async def on_ok(result: object) -> None:
        await asyncio.sleep(0)
        results.append(result)

    await _caller(tr).call("Ping", {}, on_ok)
    assert results == [{"echo": "hi", "num": 42}]


@pytest.mark.asyncio
async def test_independent_retry_budgets() -> None:
    bad = _ScriptedTransport(failures=1000)
    good = _ScriptedTransport(failures=5)
    rpc = _caller(_PerMethodTransport({"bad": bad, "good": good}))
    results: list[object] = []
    rpc.call("bad", {})
    rpc.call("good", {}, results.append)
    await rpc.drain()
    assert len(bad.calls) == 11
    assert len(good.calls) == 6
    assert results == [{"echo": "hi", "num": 42}]


@pytest.mark.asyncio
async def test_call_now_runs_in_current_task() -> None:
    tr = _ScriptedTransport(failures=2)
    results: list[object] = []
    await _caller(tr).call_now("Ping", {}, results.append)
    assert len(tr.calls) == 3
    assert results == [{"echo": "hi", "num": 42}]


@pytest.mark.asyncio
async def test_transport_error_from_custom_transport_is_retried() -> None:
    class _Flaky:
        def __init__(self) -> None:
            self.n = 0

        async def call(self, url: str, method: str, payload: bytes) -> bytes:
            self.n += 1
            if self.n == 1:
                raise TransportError("reset")
            if self.n == 2:
                raise OSError("unreachable")
            return OK_BODY

    tr = _Flaky()
    results: list[object] = []
    await _caller(tr).call("Ping", {}, results.append)
    assert tr.n == 3
    assert len(results) == 1


@pytest.mark.asyncio
async def test_unserializable_args_fail_fast() -> None:
    tr = _ScriptedTransport()
    with pytest.raises(TypeError):
        _caller(tr).call("Ping", {"x": object()})
    assert tr.calls == []


def test_call_needs_running_loop() -> None:
    with pytest.raises(RuntimeError):
        _caller(_ScriptedTransport()).call("Ping", {})


@pytest.mark.asyncio
async def test_module_level_call_uses_configured_caller(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(caller_module, "_default_caller", None)
    tr = _ScriptedTransport()
    configure(Config(api_server_address="http://other:9000"), tr)
    results: list[object] = []
    await call("Ping", [1, 2], results.append)
    assert tr.calls[0][0] == "http://other:9000/Ping"
    assert tr.calls[0][2] == b"[1, 2]"
    assert len(results) == 1


def test_default_caller_reads_env_once(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(caller_module, "_default_caller", None)
    monkeypatch.setenv("OKRPC_API_SERVER_ADDRESS", "http://from-env:1234")
    monkeypatch.setenv("OKRPC_RETRIES", "4")
    first = caller_module.get_default_caller()
    monkeypatch.setenv("OKRPC_API_SERVER_ADDRESS", "http://changed:1")
    assert caller_module.get_default_caller() is first
    assert first.url_for("Ping") == "http://from-env:1234/Ping"
    assert first.config.api_server_address == "http://from-env:1234"
    assert first.config.retries == 4


@pytest.mark.asyncio
async def test_deeply_nested_body_is_retried() -> None:
    tr = _ScriptedTransport(body=b"[" * 100000 + b"]" * 100000)
    results: list[object] = []
    task = _caller(tr, retries=1).call("Ping", {}, results.append)
    assert await task is None
    assert len(tr.calls) == 2
    assert results == []
