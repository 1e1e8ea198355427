"""
okrpc — status envelope RPC over HTTP+JSON.
Client: call(method, args, on_success) posts to {base}/{method} and retries transport failures.
Server: Handler exposes an object's methods and answers {"status": ..., "result": ...}.
"""
from okrpc.core import Config, get_logger, load_config_from_env
from okrpc.rpc import (
    CallInfo,
    Envelope,
    ErrorStatus,
    Handler,
    JsonHttpRpcTransport,
    RpcCaller,
    RpcError,
    TransportError,
    call,
    configure,
)

__all__ = [
    "CallInfo",
    "Config",
    "Envelope",
    "ErrorStatus",
    "Handler",
    "JsonHttpRpcTransport",
    "RpcCaller",
    "RpcError",
    "TransportError",
    "call",
    "configure",
    "get_logger",
    "load_config_from_env",
]
