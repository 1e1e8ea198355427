"""
Handler — server side of the status envelope protocol.
register(api) exposes public methods of an object; each request POSTs JSON args to /{method}
and always gets HTTP 200 with {"status": "ok", "result": ...} or {"status": "<error>"}.
"""
from __future__ import annotations

import inspect
import json
from dataclasses import dataclass
from typing import Any, Callable

from starlette.applications import Starlette
from starlette.requests import ClientDisconnect, Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from okrpc.core.logging import get_logger
from okrpc.rpc.protocol import STATUS_OK, Envelope, ErrorStatus

logger = get_logger(__name__)

Hook = Callable[[Request], Any]

STATUS_NO_SUCH_METHOD = "no such method"
STATUS_BAD_REQUEST_BODY = "bad request body"
STATUS_BAD_REQUEST = "bad request"
STATUS_CALL_ERROR = "call error"


@dataclass(frozen=True)
class CallInfo:
    """What is being called; set on request.state.call_info before the method runs."""

    method: str
    args: Any
    raw: bytes


@dataclass(frozen=True)
class _Method:
    name: str
    fn: Callable[..., Any]
    wants_request: bool


def last_path_segment(request: Request) -> str:
    """Default method name: last segment of the URL path ("" for "/")."""
    return request.url.path.rstrip("/").rsplit("/", 1)[-1]


def _positional_arity(fn: Callable[..., Any]) -> int | None:
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        return None
    n = 0
    for param in sig.parameters.values():
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
            if param.default is not param.empty:
                continue
            n += 1
        elif param.kind is param.KEYWORD_ONLY and param.default is param.empty:
            return None
    return n


def envelope_response(envelope: Envelope) -> Response:
    return JSONResponse(envelope.to_dict())


def status_response(status: str) -> Response:
    return envelope_response(Envelope(status=status))


class Handler:
    """
    Method registry + hooks. Methods: fn(args) or fn(args, request), sync or async.
    Raise ErrorStatus("...") to choose the status; other exceptions become "call error".
    Hooks run first: hook(request), sync or async; raising rejects with str(exc) as status.
    """

    def __init__(self, *hooks: Hook, method_name: Callable[[Request], str] = last_path_segment) -> None:
        self._methods: dict[str, _Method] = {}
        self._hooks: list[Hook] = list(hooks)
        self._method_name = method_name

    @property
    def methods(self) -> list[str]:
        return sorted(self._methods)

    def register(self, api: Any, method_name: Callable[[Request], str] | None = None) -> int:
        """Register public methods of api taking (args) or (args, request). Returns how many."""
        count = 0
        for name in dir(api):
            if name.startswith("_"):
                continue
            fn = getattr(api, name, None)
            if not callable(fn) or isinstance(fn, type):
                continue
            arity = _positional_arity(fn)
            if arity not in (1, 2):
                continue
            self._methods[name] = _Method(name=name, fn=fn, wants_request=arity == 2)
            count += 1
        if method_name is not None:
            self._method_name = method_name
        return count

    async def dispatch(self, request: Request) -> Response:
        for hook in self._hooks:
            try:
                out = hook(request)
                if hasattr(out, "__await__"):
                    await out
            except Exception as e:
                return status_response(str(e))

        what = self._method_name(request)
        method = self._methods.get(what)
        if method is None:
            return status_response(STATUS_NO_SUCH_METHOD)

        try:
            content = await request.body()
        except ClientDisconnect:
            return status_response(STATUS_BAD_REQUEST_BODY)
        try:
            args = json.loads(content)
        except ValueError as e:
            logger.info("method %s: %s", what, e)
            return status_response(STATUS_BAD_REQUEST)

        request.state.call_info = CallInfo(method=what, args=args, raw=content)

        try:
            result = method.fn(args, request) if method.wants_request else method.fn(args)
            if hasattr(result, "__await__"):
                result = await result
        except ErrorStatus as e:
            logger.info("method %s: %s", what, e.status)
            return status_response(e.status)
        except Exception:
            logger.exception("method %s failed", what)
            return status_response(STATUS_CALL_ERROR)

        # Unserializable results raise here and surface as a server error.
        return envelope_response(Envelope(status=STATUS_OK, result=result))

    def routes(self, path_prefix: str = "") -> list[Route]:
        prefix = path_prefix.rstrip("/")
        return [
            Route(prefix + "/", self.dispatch, methods=["POST"]),
            Route(prefix + "/{method}", self.dispatch, methods=["POST"]),
        ]

    def app(self, path_prefix: str = "") -> Starlette:
        """ASGI application serving POST {prefix}/{method}."""
        return Starlette(routes=self.routes(path_prefix))
