"""
In-process round trip: Handler serves an object, call() reaches it through httpx's ASGI transport.
Against a real server, drop the transport argument and set OKRPC_API_SERVER_ADDRESS.
"""
import asyncio

import httpx

from okrpc import Config, ErrorStatus, Handler, JsonHttpRpcTransport, call, configure


class Greeter:
    def hello(self, args):
        return {"greeting": f"hello, {args['name']}"}

    def fail(self, args):
        raise ErrorStatus("not today")


handler = Handler()
handler.register(Greeter())
app = handler.app()  # serve with any ASGI server


async def main() -> None:
    configure(
        Config(api_server_address="http://greeter"),
        JsonHttpRpcTransport(transport=httpx.ASGITransport(app=app)),
    )
    await call("hello", {"name": "world"}, print)
    await call("fail", {}, print)  # logged, callback not invoked


if __name__ == "__main__":
    asyncio.run(main())
