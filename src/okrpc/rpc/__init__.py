from okrpc.rpc.caller import RpcCaller, call, configure, get_default_caller
from okrpc.rpc.handler import CallInfo, Handler
from okrpc.rpc.protocol import STATUS_OK, Envelope, ErrorStatus, RpcError, RpcTransport, TransportError
from okrpc.rpc.transport import JsonHttpRpcTransport

__all__ = [
    "CallInfo",
    "Envelope",
    "ErrorStatus",
    "Handler",
    "JsonHttpRpcTransport",
    "RpcCaller",
    "RpcError",
    "RpcTransport",
    "STATUS_OK",
    "TransportError",
    "call",
    "configure",
    "get_default_caller",
]
